"""Terminal stage: put requests on the wire.

``TransportLoader`` is the only stage that performs I/O. It turns the
request into a ``WireRequest``, hands it to a ``Transport`` and classifies
whatever comes back into an ``HTTPResult``. Raw transport exceptions never
leave this module.

Multipart bodies are staged to a temporary file first and streamed from
disk, so large uploads are never held in memory.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

import httpx
from pydantic import ValidationError

from httpchain.foundation.concurrency import current_scope
from httpchain.foundation.config import TransportSettings, get_settings
from httpchain.foundation.errors import (
    EncodingError,
    Err,
    HTTPError,
    HTTPErrorCode,
    Ok,
    TransportCancelled,
    classify_exception,
)
from httpchain.http import HTTPRequest, HTTPResponse, HTTPResult, MultipartFormBody, TempFileSink, WireRequest

from .base import Loader

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger("httpchain.transport")

VersionCheck = Callable[[Mapping[str, str]], bool]

UPLOAD_HEADERS = {"Connection": "keep-alive", "Keep-Alive": "300"}


@dataclass(frozen=True, slots=True)
class TransportResponse:
    """Raw status, headers and body as received."""
    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""


@runtime_checkable
class Transport(Protocol):
    """Performs one HTTP exchange.

    ``upload`` names a file whose bytes are the request content; when given,
    ``wire.content`` is None. Raise ``TransportCancelled`` (or let
    ``asyncio.CancelledError`` through) when the exchange is aborted.
    """

    async def send(self, wire: WireRequest, *, upload: Path | None = None) -> TransportResponse: ...


class HttpxTransport:
    """Transport backed by an ``httpx.AsyncClient``.

    The client is created lazily from ``TransportSettings`` unless one is
    passed in; a passed-in client is not closed by ``aclose()``.

    Example:
        >>> async with HttpxTransport() as transport:
        ...     chain = LoaderChain([EnvironmentLoader(prod), TransportLoader(transport)])
    """

    def __init__(self, client: httpx.AsyncClient | None = None, settings: TransportSettings | None = None) -> None:
        self._settings = settings or get_settings().transport
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create httpx async client."""
        if self._client is None:
            s = self._settings
            self._client = httpx.AsyncClient(
                follow_redirects=s.follow_redirects,
                max_redirects=s.max_redirects,
                verify=s.verify_ssl,
                timeout=s.timeout,
                headers={"User-Agent": s.user_agent},
            )
        return self._client

    async def send(self, wire: WireRequest, *, upload: Path | None = None) -> TransportResponse:
        client = self._get_client()
        content = wire.content if upload is None else _file_chunks(upload, int(self._settings.upload_chunk_size))
        response = await client.request(wire.method, wire.url, headers=wire.headers, content=content)
        return TransportResponse(response.status_code, dict(response.headers.items()), response.content)

    async def aclose(self) -> None:
        """Close the httpx client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()


async def _file_chunks(path: Path, chunk_size: int) -> AsyncIterator[bytes]:
    """Read ``path`` in chunks off the event loop."""
    handle = await asyncio.to_thread(path.open, "rb")
    try:
        while chunk := await asyncio.to_thread(handle.read, chunk_size):
            yield chunk
    finally:
        handle.close()


def _is_upload(request: HTTPRequest) -> bool:
    return isinstance(request.body, MultipartFormBody) and not request.body.is_empty


class TransportLoader(Loader):
    """Terminal loader performing the network exchange.

    Args:
        transport: Wire implementation (``HttpxTransport`` by default)
        sink: Where multipart uploads are staged (named temp files by default)
        version_check: Called with response headers; returning True marks the
            client as outdated and fails with ``outdated_app_version``
    """

    terminal = True

    def __init__(
        self,
        transport: Transport | None = None,
        sink: TempFileSink | None = None,
        version_check: VersionCheck | None = None,
    ) -> None:
        super().__init__()
        self.transport: Transport = transport if transport is not None else HttpxTransport()
        self.sink = sink
        self.version_check = version_check

    async def resolve(self, request: HTTPRequest) -> HTTPResult:
        staged: Path | None = None
        try:
            try:
                if _is_upload(request):
                    wire = request.to_upload_wire()
                    staged = await self._stage(request)
                    wire = self._with_upload_headers(request, wire, staged)
                else:
                    wire = request.to_wire()
            except HTTPError as e:
                if e.code is not HTTPErrorCode.CANCELLED:
                    logger.warning("Cannot build %s request: %s", request.method.value, e)
                return Err(e)

            try:
                received = await self._send(wire, staged)
            except TransportCancelled as e:
                return Err(HTTPError(HTTPErrorCode.CANCELLED, request, underlying=e))
            except Exception as e:
                code = classify_exception(e)
                logger.warning("%s %s failed: %s (%s)", wire.method, wire.url, code.value, e)
                return Err(HTTPError(code, request, underlying=e))
        finally:
            if staged is not None:
                staged.unlink(missing_ok=True)

        return self._to_result(request, received)

    async def _stage(self, request: HTTPRequest) -> Path:
        """Write the multipart body to a staging file."""
        assert isinstance(request.body, MultipartFormBody)
        try:
            return await request.body.materialize_to_file(self.sink)
        except TransportCancelled as e:
            raise HTTPError(HTTPErrorCode.CANCELLED, request, underlying=e) from e
        except EncodingError as e:
            raise HTTPError(HTTPErrorCode.INVALID_REQUEST, request, underlying=e) from e

    def _with_upload_headers(self, request: HTTPRequest, wire: WireRequest, staged: Path) -> WireRequest:
        try:
            size = staged.stat().st_size
        except OSError as e:
            raise HTTPError(HTTPErrorCode.INVALID_REQUEST, request, underlying=e) from e
        return replace(wire, headers={**wire.headers, **UPLOAD_HEADERS, "Content-Length": str(size)})

    async def _send(self, wire: WireRequest, upload: Path | None) -> TransportResponse:
        """Run the exchange, aborting it if the ambient scope is cancelled first."""
        logger.debug("%s %s", wire.method, wire.url)
        scope = current_scope()
        if scope is None:
            return await self.transport.send(wire, upload=upload)

        exchange = asyncio.ensure_future(self.transport.send(wire, upload=upload))
        cancelled = asyncio.ensure_future(scope.wait())
        try:
            done, _ = await asyncio.wait({exchange, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()
            if not exchange.done():
                exchange.cancel()
                await asyncio.wait({exchange})
        if exchange in done:
            return exchange.result()
        raise TransportCancelled(f"{wire.method} {wire.url} was cancelled")

    def _to_result(self, request: HTTPRequest, received: TransportResponse) -> HTTPResult:
        try:
            response = HTTPResponse(
                request=request,
                status_code=received.status_code,
                headers=dict(received.headers),
                body=received.body,
            )
        except ValidationError as e:
            return Err(HTTPError(HTTPErrorCode.INVALID_RESPONSE, request, underlying=e))

        if self.version_check is not None and self.version_check(response.headers):
            return Err(HTTPError(HTTPErrorCode.OUTDATED_APP_VERSION, request, response=response))
        return Ok(response)

    def __repr__(self) -> str:
        return f"TransportLoader(transport={type(self.transport).__name__})"
