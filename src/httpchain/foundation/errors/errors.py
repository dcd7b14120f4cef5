"""Error taxonomy for the request pipeline.

Every failure that leaves a loader is an ``HTTPError`` classified into one
``HTTPErrorCode``. Raw transport exceptions are classified at the boundary
where they are first observed and kept as ``underlying`` for debugging.
"""

from __future__ import annotations

import asyncio
import ssl
from enum import StrEnum
from functools import lru_cache
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from httpchain.http.request import HTTPRequest
    from httpchain.http.response import HTTPResponse


class HTTPErrorCode(StrEnum):
    """High-level classification of a pipeline failure."""
    INVALID_REQUEST = "invalid_request"  # request could not be turned into a wire request
    CANNOT_CONNECT = "cannot_connect"
    CANCELLED = "cancelled"
    INSECURE_CONNECTION = "insecure_connection"
    INVALID_RESPONSE = "invalid_response"  # no usable HTTP response
    TOKEN_REFRESH_FAILURE = "token_refresh_failure"
    OUTDATED_APP_VERSION = "outdated_app_version"
    RESET_IN_PROGRESS = "reset_in_progress"
    UNKNOWN = "unknown"


class HttpchainError(Exception):
    """Base class for all httpchain exceptions."""


class EncodingError(HttpchainError):
    """A request body could not be serialized."""


class LoaderConfigurationError(HttpchainError):
    """A loader chain was wired incorrectly."""


class TransportCancelled(HttpchainError):
    """Raised by a transport whose in-flight call was aborted."""


class HTTPError(HttpchainError):
    """Classified failure raised or carried while loading a request.

    Attributes:
        code: High-level classification of the failure
        request: The request that produced the failure
        response: Partial or complete response, when one was received
        underlying: Lower-level exception that caused this failure, if any
    """

    def __init__(
        self,
        code: HTTPErrorCode,
        request: HTTPRequest,
        response: HTTPResponse | None = None,
        underlying: BaseException | None = None,
    ) -> None:
        self.code = HTTPErrorCode(code)
        self.request = request
        self.response = response
        self.underlying = underlying
        super().__init__(self._message())

    def _message(self) -> str:
        status = f" (status {self.response.status_code})" if self.response is not None else ""
        cause = f": {self.underlying}" if self.underlying is not None else ""
        return f"{self.code.value} for {self.request.method} {self.request.url or '<unresolved>'}{status}{cause}"

    def __repr__(self) -> str:
        return f"HTTPError(code={self.code.value!r}, request={self.request.identifier})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HTTPError):
            return NotImplemented
        return (
            self.code == other.code
            and self.request == other.request
            and self.response == other.response
        )

    __hash__ = Exception.__hash__


class ResponseValidationError(HttpchainError):
    """A response was rejected by a Connection's response validator.

    Kept apart from ``HTTPError`` so a rejected response is never mistaken
    for a transport failure such as ``invalid_response``.
    """

    def __init__(self, response: HTTPResponse, message: str) -> None:
        self.response = response
        super().__init__(message)


class DecodingError(HttpchainError):
    """A successful, validated response could not be decoded into the requested type."""

    def __init__(self, response: HTTPResponse, message: str) -> None:
        self.response = response
        super().__init__(message)


# Pattern -> code mapping for exceptions that are not httpx/ssl types
_PATTERN_CODES: dict[str, HTTPErrorCode] = {
    "cancel": HTTPErrorCode.CANCELLED,
    "ssl": HTTPErrorCode.INSECURE_CONNECTION,
    "certificate": HTTPErrorCode.INSECURE_CONNECTION,
    "timeout": HTTPErrorCode.CANNOT_CONNECT,
    "timed out": HTTPErrorCode.CANNOT_CONNECT,
    "connect": HTTPErrorCode.CANNOT_CONNECT,
    "network": HTTPErrorCode.CANNOT_CONNECT,
    "dns": HTTPErrorCode.CANNOT_CONNECT,
    "redirect": HTTPErrorCode.CANNOT_CONNECT,
    "url": HTTPErrorCode.INVALID_REQUEST,
    "protocol": HTTPErrorCode.INVALID_RESPONSE,
}
_PATTERN_KEYS = tuple(_PATTERN_CODES)


@lru_cache(maxsize=256)
def _classify_cached(exc_key: str) -> HTTPErrorCode:
    haystack = exc_key.lower()
    for pattern in _PATTERN_KEYS:
        if pattern in haystack:
            return _PATTERN_CODES[pattern]
    return HTTPErrorCode.UNKNOWN


def classify_exception(exc: BaseException) -> HTTPErrorCode:
    """Map a transport-level exception to an error code."""
    if isinstance(exc, (asyncio.CancelledError, TransportCancelled)):
        return HTTPErrorCode.CANCELLED
    if isinstance(exc, ssl.SSLError) or isinstance(exc.__cause__, ssl.SSLError):
        return HTTPErrorCode.INSECURE_CONNECTION
    if isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
        return HTTPErrorCode.INVALID_REQUEST
    if isinstance(exc, httpx.ConnectError) and "certificate" in str(exc).lower():
        return HTTPErrorCode.INSECURE_CONNECTION
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.TooManyRedirects)):
        return HTTPErrorCode.CANNOT_CONNECT
    if isinstance(exc, (httpx.RemoteProtocolError, httpx.LocalProtocolError, httpx.DecodingError)):
        return HTTPErrorCode.INVALID_RESPONSE
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return HTTPErrorCode.CANNOT_CONNECT
    return _classify_cached(f"{type(exc).__name__} {exc}")
