"""Multipart form bodies with streamed file staging.

Wire framing, per part::

    --{boundary}\\r\\n
    Content-Disposition: form-data; name="{key}"[; filename="{name}"]\\r\\n
    Content-Type: {type}\\r\\n
    \\r\\n
    {bytes}\\r\\n

terminated by ``--{boundary}--``. The boundary is unique per body instance
unless one is given, and encoding is deterministic for a fixed boundary.

``encode()`` builds the whole payload in memory. ``materialize_to_file()``
writes the same bytes incrementally to a temp file, streaming file-backed
parts in bounded chunks, and is what the transport stage uses for uploads.

Example:
    >>> body = MultipartFormBody([
    ...     Part.text("caption", "holiday"),
    ...     Part.media_file("photo", "/tmp/beach.jpg", MediaKind.JPEG),
    ... ])
    >>> path = await body.materialize_to_file()
"""

from __future__ import annotations

import asyncio
import mimetypes
import os
import tempfile
import uuid
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import IO, TYPE_CHECKING, Protocol, runtime_checkable
from urllib.parse import unquote, urlparse

from httpchain.foundation.concurrency import is_cancelled
from httpchain.foundation.config import get_settings
from httpchain.foundation.errors import EncodingError, TransportCancelled

from .body import RequestBody

if TYPE_CHECKING:
    from typing import BinaryIO

CRLF = b"\r\n"
DEFAULT_CHUNK_SIZE = 1024 * 1024


class MediaKind(Enum):
    """Typed media with a fixed MIME type and default filename rule."""

    PNG = ("image/png", "")
    JPEG = ("image/jpeg", "")
    PDF = ("application/pdf", ".pdf")
    MP4 = ("video/mp4", "")

    @property
    def mime_type(self) -> str:
        return self.value[0]

    def default_filename(self, key: str) -> str:
        return f"{key}{self.value[1]}"


@dataclass(frozen=True, slots=True)
class Part:
    """One named form part: inline bytes or a reference to a local file.

    Build parts with the factory classmethods rather than directly.
    """

    key: str
    content_type: str
    data: bytes | None = None
    path: Path | None = None
    filename: str | None = None

    @classmethod
    def raw(cls, key: str, data: bytes) -> Part:
        return cls(key, "application/octet-stream", data=bytes(data))

    @classmethod
    def json(cls, key: str, data: bytes) -> Part:
        return cls(key, "application/json; charset=utf-8", data=bytes(data))

    @classmethod
    def text(cls, key: str, text: str) -> Part:
        return cls(key, "text/plain; charset=utf-8", data=text.encode())

    @classmethod
    def media(cls, key: str, data: bytes, kind: MediaKind, filename: str | None = None) -> Part:
        """In-memory PNG/JPEG/PDF/MP4 content."""
        return cls(key, kind.mime_type, data=bytes(data), filename=filename or kind.default_filename(key))

    @classmethod
    def media_file(cls, key: str, path: str | os.PathLike[str], kind: MediaKind, filename: str | None = None) -> Part:
        """PNG/JPEG/PDF/MP4 content read from a local file at encode time."""
        return cls(key, kind.mime_type, path=_as_path(path), filename=filename or kind.default_filename(key))

    @classmethod
    def file(
        cls,
        key: str,
        path: str | os.PathLike[str],
        content_type: str | None = None,
        filename: str | None = None,
    ) -> Part:
        """Any local file; the type is guessed from its name when not given."""
        p = _as_path(path)
        guessed = content_type or mimetypes.guess_type(p.name)[0] or "application/octet-stream"
        return cls(key, guessed, path=p, filename=filename or p.name)

    @property
    def is_file_backed(self) -> bool:
        return self.path is not None

    def header_bytes(self) -> bytes:
        disposition = f'Content-Disposition: form-data; name="{_quote_param(self.key)}"'
        if self.filename is not None:
            disposition += f'; filename="{_quote_param(self.filename)}"'
        return f"{disposition}\r\nContent-Type: {self.content_type}\r\n\r\n".encode()

    def read(self) -> bytes:
        """Resolve the part's source bytes. Raises EncodingError if unreadable."""
        if self.data is not None:
            return self.data
        assert self.path is not None
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise EncodingError(f"Cannot read multipart source for '{self.key}': {e}") from e

    def describe(self) -> str:
        if self.path is not None:
            return f"{self.key}: filename {self.filename} {self.path} ({self.content_type})"
        size = len(self.data or b"")
        if self.filename is not None:
            return f"{self.key}: filename {self.filename} {size} bytes"
        if self.content_type.startswith("text/plain"):
            return f"{self.key}: {(self.data or b'').decode('utf-8', errors='replace')}"
        return f"{self.key}: {size} bytes"


# ─────────────────────────────────────────────────────────────────────────────
# Temp file staging
# ─────────────────────────────────────────────────────────────────────────────

@runtime_checkable
class TempFileSink(Protocol):
    """Creates writable handles used to stage multipart uploads."""

    def create(self) -> BinaryIO: ...


class NamedTempFileSink:
    """Stages uploads as named files in the system temp directory (or ``directory``)."""

    __slots__ = ("directory", "prefix")

    def __init__(self, directory: str | os.PathLike[str] | None = None, prefix: str = "httpchain-upload-") -> None:
        self.directory = directory
        self.prefix = prefix

    def create(self) -> BinaryIO:
        return tempfile.NamedTemporaryFile(  # noqa: SIM115 - closed by materialize_to_file
            mode="wb", prefix=self.prefix, suffix=".multipart", dir=self.directory, delete=False
        )


# ─────────────────────────────────────────────────────────────────────────────
# Body
# ─────────────────────────────────────────────────────────────────────────────

class MultipartFormBody(RequestBody):
    """multipart/form-data body."""

    __slots__ = ("parts", "boundary")

    def __init__(self, parts: Sequence[Part], boundary: str | None = None) -> None:
        self.parts: tuple[Part, ...] = tuple(parts)
        self.boundary = boundary or f"Boundary-{uuid.uuid4()}"

    @property
    def is_empty(self) -> bool:
        return not self.parts

    @property
    def additional_headers(self) -> Mapping[str, str]:
        return {"Content-Type": f"multipart/form-data; boundary={self.boundary}"}

    def _frames(self) -> Iterator[tuple[bytes, Part, bytes]]:
        """(leading bytes, part, trailing bytes) for each part."""
        opener = f"--{self.boundary}".encode() + CRLF
        for part in self.parts:
            yield opener + part.header_bytes(), part, CRLF

    def _closer(self) -> bytes:
        return f"--{self.boundary}--".encode()

    def encode(self) -> bytes:
        chunks: list[bytes] = []
        for head, part, tail in self._frames():
            chunks.extend((head, part.read(), tail))
        chunks.append(self._closer())
        return b"".join(chunks)

    async def materialize_to_file(
        self,
        sink: TempFileSink | None = None,
        chunk_size: int | None = None,
    ) -> Path:
        """Write the encoded body to a staged file and return its path.

        Inline parts are written as-is; file-backed parts are copied in
        ``chunk_size`` pieces (settings default, 1 MiB) with the event loop
        free between reads. On failure the staged file is removed and
        ``EncodingError`` is raised, or ``TransportCancelled`` when the ambient
        scope is cancelled while a file part is being copied.
        """
        sink = sink or NamedTempFileSink()
        chunk_size = chunk_size or get_settings().upload_chunk_bytes or DEFAULT_CHUNK_SIZE
        try:
            handle = sink.create()
        except OSError as e:
            raise EncodingError(f"Cannot create staging file: {e}") from e
        target = Path(handle.name)
        try:
            with handle:
                for head, part, tail in self._frames():
                    handle.write(head)
                    if part.data is not None:
                        handle.write(part.data)
                    else:
                        await _stream_into(part, handle, chunk_size)
                    handle.write(tail)
                handle.write(self._closer())
                handle.flush()
        except OSError as e:
            target.unlink(missing_ok=True)
            raise EncodingError(f"Cannot write staging file {target}: {e}") from e
        except BaseException:
            target.unlink(missing_ok=True)
            raise
        return target

    def describe(self) -> str:
        return "".join(f"\n{part.describe()}" for part in self.parts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultipartFormBody):
            return NotImplemented
        return self.parts == other.parts and self.boundary == other.boundary

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"MultipartFormBody({len(self.parts)} parts, boundary={self.boundary!r})"


async def _stream_into(part: Part, handle: IO[bytes], chunk_size: int) -> None:
    assert part.path is not None
    try:
        source = await asyncio.to_thread(part.path.open, "rb")
    except OSError as e:
        raise EncodingError(f"Cannot read multipart source for '{part.key}': {e}") from e
    try:
        while True:
            if is_cancelled():
                raise TransportCancelled(f"Staging of '{part.key}' was cancelled")
            try:
                chunk = await asyncio.to_thread(source.read, chunk_size)
            except OSError as e:
                raise EncodingError(f"Cannot read multipart source for '{part.key}': {e}") from e
            if not chunk:
                break
            handle.write(chunk)
    finally:
        source.close()


_PARAM_ESCAPES = str.maketrans({'"': "%22", "\r": "%0D", "\n": "%0A"})


def _quote_param(value: str) -> str:
    """Percent-escape quotes and line breaks in a Content-Disposition parameter."""
    return value.translate(_PARAM_ESCAPES)


def _as_path(path: str | os.PathLike[str]) -> Path:
    """Accept local paths and file:// URLs."""
    raw = os.fspath(path)
    if raw.startswith("file://"):
        return Path(unquote(urlparse(raw).path))
    return Path(raw)
