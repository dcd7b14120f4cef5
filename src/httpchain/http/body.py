"""Request bodies.

Every body reports ``is_empty``, the ``additional_headers`` it needs on the
wire, and ``encode()`` to bytes. Empty bodies contribute neither bytes nor
headers. Structured bodies serialize with orjson and raise ``EncodingError``
when a value cannot be serialized.

Variants:
    - EmptyBody: no bytes, no headers
    - DataBody: raw bytes with caller-supplied headers
    - JSONBody / ArrayJSONBody: a JSON object / a JSON array of objects
    - JSONEncodableBody: any orjson-serializable value or pydantic model
    - FormBody: application/x-www-form-urlencoded pairs
    - MultipartFormBody: see ``httpchain.http.multipart``
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from urllib.parse import quote

import orjson
from pydantic import BaseModel

from httpchain.foundation.errors import EncodingError

JSON_CONTENT_TYPE = "application/json; charset=utf-8"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=utf-8"

_NO_HEADERS: Mapping[str, str] = {}


class RequestBody(ABC):
    """Base class for request payloads."""

    __slots__ = ()

    @property
    def is_empty(self) -> bool:
        return False

    @property
    def additional_headers(self) -> Mapping[str, str]:
        return _NO_HEADERS

    @abstractmethod
    def encode(self) -> bytes:
        """Serialize the body. Raises EncodingError on failure."""
        ...

    def describe(self) -> str:
        """Short human-readable rendering for debug logs."""
        try:
            return pretty_json(self.encode()) or self.encode().decode("utf-8", errors="replace")
        except EncodingError:
            return "UNAVAILABLE"


class EmptyBody(RequestBody):
    """A request body with no data."""

    __slots__ = ()

    @property
    def is_empty(self) -> bool:
        return True

    def encode(self) -> bytes:
        return b""

    def describe(self) -> str:
        return "--"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, EmptyBody)

    def __hash__(self) -> int:
        return hash(EmptyBody)

    def __repr__(self) -> str:
        return "EmptyBody()"


class DataBody(RequestBody):
    """A raw bytes body."""

    __slots__ = ("_data", "_headers")

    def __init__(self, data: bytes, additional_headers: Mapping[str, str] | None = None) -> None:
        self._data = bytes(data)
        self._headers = dict(additional_headers or {})

    @property
    def is_empty(self) -> bool:
        return not self._data

    @property
    def additional_headers(self) -> Mapping[str, str]:
        return self._headers

    def encode(self) -> bytes:
        return self._data

    def describe(self) -> str:
        return self._data.decode("utf-8", errors="replace")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DataBody):
            return NotImplemented
        return self._data == other._data and self._headers == other._headers

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"DataBody({len(self._data)} bytes)"


class _JSONBodyBase(RequestBody):
    __slots__ = ()

    @property
    def additional_headers(self) -> Mapping[str, str]:
        return {"Content-Type": JSON_CONTENT_TYPE}


class JSONBody(_JSONBodyBase):
    """A JSON object body built from a dict."""

    __slots__ = ("values",)

    def __init__(self, values: Mapping[str, object]) -> None:
        self.values = dict(values)

    @property
    def is_empty(self) -> bool:
        return not self.values

    def encode(self) -> bytes:
        return dump_json(self.values)

    def describe(self) -> str:
        return "".join(f"\n{k}: {v}" for k, v in self.values.items())

    def __eq__(self, other: object) -> bool:
        return self.values == other.values if isinstance(other, JSONBody) else NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"JSONBody({self.values!r})"


class ArrayJSONBody(_JSONBodyBase):
    """A top-level JSON array of objects."""

    __slots__ = ("values",)

    def __init__(self, values: Sequence[Mapping[str, object]]) -> None:
        self.values = [dict(v) for v in values]

    @property
    def is_empty(self) -> bool:
        return not self.values

    def encode(self) -> bytes:
        return dump_json(self.values)

    def __eq__(self, other: object) -> bool:
        return self.values == other.values if isinstance(other, ArrayJSONBody) else NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ArrayJSONBody({len(self.values)} items)"


class JSONEncodableBody(_JSONBodyBase):
    """Any orjson-serializable value (dataclasses, datetimes, UUIDs) or pydantic model.

    Serialization is deferred to ``encode()`` so an unserializable value fails
    as an invalid request when it reaches the wire, not at construction.
    """

    __slots__ = ("value",)

    def __init__(self, value: object) -> None:
        self.value = value

    def encode(self) -> bytes:
        return dump_json(self.value)

    def __eq__(self, other: object) -> bool:
        return self.value == other.value if isinstance(other, JSONEncodableBody) else NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"JSONEncodableBody({type(self.value).__name__})"


class FormBody(RequestBody):
    """A form url encoded body.

    Names and values are percent-encoded leaving only ASCII letters and
    digits unescaped, and joined with ``&`` in the given order.
    """

    __slots__ = ("values",)

    def __init__(self, values: Mapping[str, str | None] | Sequence[tuple[str, str | None]]) -> None:
        items = values.items() if isinstance(values, Mapping) else values
        self.values: list[tuple[str, str | None]] = [(name, value) for name, value in items]

    @property
    def is_empty(self) -> bool:
        return not self.values

    @property
    def additional_headers(self) -> Mapping[str, str]:
        return {"Content-Type": FORM_CONTENT_TYPE}

    def encode(self) -> bytes:
        pieces = (f"{form_encode(name)}={form_encode(value or '')}" for name, value in self.values)
        return "&".join(pieces).encode()

    def describe(self) -> str:
        return "".join(f"\n{name}: {value or ''}" for name, value in self.values)

    def __eq__(self, other: object) -> bool:
        return self.values == other.values if isinstance(other, FormBody) else NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"FormBody({self.values!r})"


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def form_encode(value: str) -> str:
    """Percent-encode everything except ASCII alphanumerics."""
    return quote(value, safe="").replace("-", "%2D").replace(".", "%2E").replace("_", "%5F").replace("~", "%7E")


def dump_json(value: object) -> bytes:
    """Serialize with orjson; pydantic models go through ``model_dump(mode="json")``."""
    try:
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json")
        return orjson.dumps(value, option=orjson.OPT_NON_STR_KEYS)
    except (orjson.JSONEncodeError, TypeError, ValueError) as e:
        raise EncodingError(f"Cannot serialize {type(value).__name__} as JSON: {e}") from e


def pretty_json(data: bytes) -> str | None:
    """Indented rendering of JSON bytes for debug output, or None if not JSON."""
    if not data:
        return None
    try:
        return orjson.dumps(orjson.loads(data), option=orjson.OPT_INDENT_2).decode()
    except orjson.JSONDecodeError:
        return None
