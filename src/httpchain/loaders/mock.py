"""Scripted responses for tests and previews.

``MockLoader`` answers requests from a FIFO queue of handlers, or from the
request's own ``MockLoadMethod`` option, and records everything it answers so
tests can assert on traffic.

Example:
    >>> mock = MockLoader()
    >>> mock.set_next_mock(mock_response(200, {"id": 42})).set_next_mock(mock_response(503))
    >>> chain = LoaderChain([RetryLoader(), mock])
"""

from __future__ import annotations

import inspect
from collections import deque
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass

from httpchain.foundation.errors import EncodingError, Err, HTTPError, HTTPErrorCode, Ok
from httpchain.http import (
    HTTPRequest,
    HTTPResponse,
    HTTPResult,
    MockFile,
    MockJSON,
    MockLoadMethod,
    MockValue,
    NoMock,
    dump_json,
)

from .base import Loader

MockHandler = Callable[[HTTPRequest], HTTPResult | Awaitable[HTTPResult]]


@dataclass(slots=True)
class Invocation:
    """Record of a single answered request."""
    request: HTTPRequest
    result: HTTPResult


def _as_bytes(body: object) -> bytes:
    if isinstance(body, bytes):
        return body
    if isinstance(body, str):
        return body.encode()
    return dump_json(body)


def mock_response(
    status_code: int = 200,
    body: object = b"",
    headers: Mapping[str, str] | None = None,
) -> MockHandler:
    """Handler answering with a fixed response.

    ``body`` may be bytes, text, or any JSON-serializable value.
    """
    payload = _as_bytes(body)

    def handler(request: HTTPRequest) -> HTTPResult:
        return Ok(HTTPResponse(request=request, status_code=status_code, headers=dict(headers or {}), body=payload))
    return handler


def mock_error(code: HTTPErrorCode, underlying: BaseException | None = None) -> MockHandler:
    """Handler failing with ``code`` and no response."""
    def handler(request: HTTPRequest) -> HTTPResult:
        return Err(HTTPError(code, request, underlying=underlying))
    return handler


class MockLoader(Loader):
    """Answer requests from scripted handlers instead of the network.

    Resolution order:
        1. A per-request ``MockJSON``/``MockFile``/``MockValue`` option
           answers with a 200 response carrying that content.
        2. Otherwise the oldest queued handler is consumed. A handler that
           raises yields ``invalid_response`` with the exception attached.
        3. With nothing queued, the request is forwarded to the successor,
           or fails ``cannot_connect`` when this is the last stage.
    """

    def __init__(self, *handlers: MockHandler) -> None:
        super().__init__()
        self._handlers: deque[MockHandler] = deque(handlers)
        self.invocations: list[Invocation] = []

    def set_next_mock(self, handler: MockHandler) -> MockLoader:
        self._handlers.append(handler)
        return self

    @property
    def pending(self) -> int:
        """Handlers still queued."""
        return len(self._handlers)

    @property
    def call_count(self) -> int:
        return len(self.invocations)

    @property
    def last_request(self) -> HTTPRequest | None:
        return self.invocations[-1].request if self.invocations else None

    async def resolve(self, request: HTTPRequest) -> HTTPResult:
        method = request.mock_load_method
        if not isinstance(method, NoMock):
            return self._record(request, self._from_option(request, method))
        if not self._handlers:
            return await self.forward(request)

        handler = self._handlers.popleft()
        try:
            outcome = handler(request)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as e:
            outcome = Err(HTTPError(HTTPErrorCode.INVALID_RESPONSE, request, underlying=e))
        return self._record(request, outcome)

    def _from_option(self, request: HTTPRequest, method: MockLoadMethod) -> HTTPResult:
        try:
            match method:
                case MockJSON(text=text):
                    body = text.encode()
                case MockFile(path=path):
                    body = path.read_bytes()
                case MockValue(value=value):
                    body = dump_json(value)
                case _:
                    raise TypeError(f"Unsupported mock load method {method!r}")
        except (OSError, EncodingError, TypeError) as e:
            return Err(HTTPError(HTTPErrorCode.INVALID_RESPONSE, request, underlying=e))
        return Ok(HTTPResponse(
            request=request,
            status_code=200,
            headers={"Content-Type": "application/json"},
            body=body,
        ))

    def _record(self, request: HTTPRequest, result: HTTPResult) -> HTTPResult:
        self.invocations.append(Invocation(request, result))
        return result

    def reset(self) -> None:
        """Drop queued handlers and recorded invocations."""
        self._handlers.clear()
        self.invocations.clear()

    def __repr__(self) -> str:
        return f"MockLoader(pending={self.pending}, calls={self.call_count})"
