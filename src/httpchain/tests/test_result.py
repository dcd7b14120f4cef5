"""Tests for the Result type carried by every loader."""

from __future__ import annotations

from typing import Callable

import pytest

from httpchain import Err, HTTPError, HTTPErrorCode, HTTPRequest, Ok, Result


# ═════════════════════════════════════════════════════════════════════════════
# Functor / Monad Laws
# ═════════════════════════════════════════════════════════════════════════════


def test_functor_identity() -> None:
    """fmap id = id"""
    assert Ok(42).map(lambda x: x) == Ok(42)
    assert Err("fail").map(lambda x: x) == Err("fail")


def test_functor_composition() -> None:
    f: Callable[[int], int] = lambda x: x + 1
    g: Callable[[int], int] = lambda x: x * 2
    assert Ok(5).map(lambda x: f(g(x))) == Ok(5).map(g).map(f)


def test_monad_left_identity() -> None:
    f: Callable[[int], Result[int, str]] = lambda x: Ok(x * 2)
    assert Ok(21).flat_map(f) == f(21)


def test_flat_map_short_circuits_on_err() -> None:
    calls: list[int] = []

    def step(x: int) -> Result[int, str]:
        calls.append(x)
        return Ok(x)

    assert Err("stop").flat_map(step) == Err("stop")
    assert calls == []


# ═════════════════════════════════════════════════════════════════════════════
# Extraction
# ═════════════════════════════════════════════════════════════════════════════


def test_unwrap_err_raises_on_ok() -> None:
    with pytest.raises(RuntimeError):
        Ok(1).unwrap_err()


def test_unwrap_raises_carried_http_error() -> None:
    error = HTTPError(HTTPErrorCode.CANNOT_CONNECT, HTTPRequest.get("/x", host="h.example"))
    with pytest.raises(HTTPError) as info:
        Err(error).unwrap()
    assert info.value is error


def test_unwrap_non_exception_err() -> None:
    with pytest.raises(RuntimeError, match="fail"):
        Err("fail").unwrap()


def test_inspection_helpers() -> None:
    assert Ok(3).ok() == 3 and Ok(3).err() is None
    assert Err("e").err() == "e" and Err("e").ok() is None
    assert Err("e").unwrap_or(7) == 7
    assert list(Ok(3)) == [3] and list(Err("e")) == []
    assert bool(Ok(0)) and not bool(Err("e"))


def test_match_and_structural_pattern() -> None:
    assert Ok(2).match(ok=lambda v: v * 10, err=len) == 20
    assert Err("abc").match(ok=lambda v: v * 10, err=len) == 3

    match Ok("value"):
        case Result(inner):
            assert inner == "value"


def test_map_err_rewrites_failure() -> None:
    assert Err("e").map_err(str.upper) == Err("E")
    assert Ok(1).map_err(str.upper) == Ok(1)
