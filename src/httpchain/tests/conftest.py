"""Shared fixtures: scripted transports and a clean settings cache."""

from __future__ import annotations

import asyncio
from collections import deque
from pathlib import Path

import pytest

from httpchain import HTTPRequest, ServerEnvironment, TransportResponse, WireRequest, clear_settings_cache


class FakeTransport:
    """Scripted stand-in for the network.

    Queued items are consumed FIFO: a ``TransportResponse`` is returned, an
    exception is raised. With nothing queued every send answers 200.
    """

    def __init__(self) -> None:
        self.outcomes: deque[TransportResponse | BaseException] = deque()
        self.sent: list[WireRequest] = []
        self.upload_paths: list[Path] = []
        self.uploads: list[bytes] = []

    def queue(self, *outcomes: TransportResponse | BaseException) -> FakeTransport:
        self.outcomes.extend(outcomes)
        return self

    async def send(self, wire: WireRequest, *, upload: Path | None = None) -> TransportResponse:
        self.sent.append(wire)
        if upload is not None:
            self.upload_paths.append(upload)
            self.uploads.append(upload.read_bytes())
        outcome = self.outcomes.popleft() if self.outcomes else TransportResponse(200)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class HangingTransport:
    """Never answers; records whether its exchange was cancelled."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.was_cancelled = False

    async def send(self, wire: WireRequest, *, upload: Path | None = None) -> TransportResponse:
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.was_cancelled = True
            raise
        raise AssertionError("unreachable")


@pytest.fixture(autouse=True)
def clean_settings() -> object:
    """Reload settings around each test so env patches take effect."""
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def hanging_transport() -> HangingTransport:
    return HangingTransport()


@pytest.fixture
def prod() -> ServerEnvironment:
    return ServerEnvironment(host="api.example.com", path_prefix="v1")


@pytest.fixture
def user_request() -> HTTPRequest:
    """A fully resolved GET request."""
    return HTTPRequest.get("/users/42", host="api.example.com")
