"""Tests for settings, logging setup and exception classification."""

from __future__ import annotations

import asyncio
import io
import logging
import ssl

import httpx
import orjson
import pytest

from httpchain import (
    HttpchainSettings,
    HTTPErrorCode,
    TransportCancelled,
    classify_exception,
    configure_logging,
    get_settings,
)

# ═════════════════════════════════════════════════════════════════════════════
# Settings
# ═════════════════════════════════════════════════════════════════════════════


def test_defaults() -> None:
    settings = HttpchainSettings()
    assert settings.retry.max_retries == 1
    assert settings.retry.backoff is False
    assert settings.cache.default_expiry == 86400.0
    assert settings.transport.follow_redirects is True
    assert settings.upload_chunk_bytes == 1024 * 1024
    assert "authorization" in settings.logging.redact_headers


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HTTPCHAIN_DEBUG", "true")
    monkeypatch.setenv("HTTPCHAIN_RETRY_MAX_RETRIES", "3")
    monkeypatch.setenv("HTTPCHAIN_CACHE_DEFAULT_EXPIRY", "60")
    monkeypatch.setenv("HTTPCHAIN_TRANSPORT_UPLOAD_CHUNK_SIZE", "64KiB")
    monkeypatch.setenv("HTTPCHAIN_LOG_LEVEL", "debug")

    settings = get_settings()

    assert settings.debug is True
    assert settings.retry.max_retries == 3
    assert settings.cache.default_expiry == 60.0
    assert settings.upload_chunk_bytes == 64 * 1024
    assert settings.logging.level == "DEBUG"


def test_settings_are_cached() -> None:
    assert get_settings() is get_settings()


def test_redact_headers_from_json_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HTTPCHAIN_LOG_REDACT_HEADERS", '["X-Api-Key", " Authorization "]')
    assert get_settings().logging.redact_headers == frozenset({"x-api-key", "authorization"})


def test_retry_limit_is_bounded(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HTTPCHAIN_RETRY_MAX_RETRIES", "256")
    with pytest.raises(ValueError):
        get_settings()


# ═════════════════════════════════════════════════════════════════════════════
# Logging
# ═════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def httpchain_logger() -> logging.Logger:
    logger = logging.getLogger("httpchain")
    saved = (list(logger.handlers), logger.level)
    yield logger
    logger.handlers[:], logger.level = saved[0], saved[1]


def test_configure_logging_is_idempotent(httpchain_logger: logging.Logger) -> None:
    configure_logging()
    configure_logging(level="DEBUG")

    ours = [h for h in httpchain_logger.handlers if getattr(h, "_httpchain", False)]
    assert len(ours) == 1
    assert httpchain_logger.level == logging.DEBUG


def test_json_log_lines_carry_extras(httpchain_logger: logging.Logger) -> None:
    out = io.StringIO()
    configure_logging(level="INFO", format="json", output=out)

    logging.getLogger("httpchain.loaders").info("Retrying %s", "GET", extra={"request_id": "abc"})

    record = orjson.loads(out.getvalue().splitlines()[-1])
    assert record["event"] == "Retrying GET"
    assert record["logger"] == "httpchain.loaders"
    assert record["level"] == "info"
    assert record["request_id"] == "abc"


def test_text_log_lines(httpchain_logger: logging.Logger) -> None:
    out = io.StringIO()
    configure_logging(level="WARNING", format="text", output=out)

    logging.getLogger("httpchain.transport").info("hidden")
    logging.getLogger("httpchain.transport").warning("GET %s failed", "https://x")

    lines = out.getvalue().splitlines()
    assert len(lines) == 1
    assert "[warning] httpchain.transport: GET https://x failed" in lines[0]


# ═════════════════════════════════════════════════════════════════════════════
# Classification
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.parametrize(
    ("exc", "code"),
    [
        (asyncio.CancelledError(), HTTPErrorCode.CANCELLED),
        (TransportCancelled("stop"), HTTPErrorCode.CANCELLED),
        (ssl.SSLError("bad handshake"), HTTPErrorCode.INSECURE_CONNECTION),
        (httpx.ConnectError("certificate verify failed"), HTTPErrorCode.INSECURE_CONNECTION),
        (httpx.ConnectError("connection refused"), HTTPErrorCode.CANNOT_CONNECT),
        (httpx.ConnectTimeout("slow"), HTTPErrorCode.CANNOT_CONNECT),
        (httpx.TooManyRedirects("loop"), HTTPErrorCode.CANNOT_CONNECT),
        (httpx.UnsupportedProtocol("gopher"), HTTPErrorCode.INVALID_REQUEST),
        (httpx.RemoteProtocolError("garbage"), HTTPErrorCode.INVALID_RESPONSE),
        (ConnectionResetError(), HTTPErrorCode.CANNOT_CONNECT),
        (TimeoutError(), HTTPErrorCode.CANNOT_CONNECT),
        (ValueError("DNS lookup failed"), HTTPErrorCode.CANNOT_CONNECT),
        (KeyError("x"), HTTPErrorCode.UNKNOWN),
    ],
)
def test_classify_exception(exc: BaseException, code: HTTPErrorCode) -> None:
    assert classify_exception(exc) is code
