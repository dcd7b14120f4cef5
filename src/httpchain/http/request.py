"""Immutable request descriptor.

``HTTPRequest`` is a frozen pydantic model: every stage that changes a request
produces a copy through ``replace()`` or one of the ``with_*`` helpers, and the
``identifier`` survives every copy so a request and its resubmissions can be
correlated in logs.

Example:
    >>> req = HTTPRequest.get("/users/42", host="api.example.com", query={"expand": "team"})
    >>> req.url
    'https://api.example.com/users/42?expand=team'
    >>> retried = req.replace(retry_count=1)
    >>> retried.identifier == req.identifier
    True
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Annotated, Any
from urllib.parse import quote, urlencode

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from httpchain.foundation.errors import EncodingError, HTTPError, HTTPErrorCode

from .body import EmptyBody, JSONBody, JSONEncodableBody, RequestBody
from .environment import ServerEnvironment
from .multipart import MultipartFormBody, Part
from .options import (
    AUTH_METHOD,
    CACHE_METHOD,
    MOCK_LOAD_METHOD,
    SERVER_ENVIRONMENT,
    AuthMethod,
    Capability,
    CacheMethod,
    MockLoadMethod,
    OptionsBag,
)

_PATH_SAFE = "/:@!$&'()*+,;=%-._~"
_TOKEN_PREFIXES = ("Bearer ", "Basic ")


class Method(StrEnum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


@dataclass(frozen=True, slots=True)
class WireRequest:
    """What a transport needs to put a request on the wire."""

    method: str
    url: str
    headers: dict[str, str]
    content: bytes | None = None


def find_header(headers: Mapping[str, str], name: str) -> str | None:
    """Header value by case-insensitive name (O(n) but headers are small)."""
    name_lower = name.lower()
    return next((v for k, v in headers.items() if k.lower() == name_lower), None)


def has_header(headers: Mapping[str, str], name: str) -> bool:
    name_lower = name.lower()
    return any(k.lower() == name_lower for k in headers)


def _as_query(v: Any) -> Any:
    """Normalize a mapping or sequence of pairs to a tuple of string pairs."""
    if v is None:
        return ()
    if isinstance(v, Mapping):
        return tuple((str(k), str(val)) for k, val in v.items())
    if isinstance(v, (list, tuple)):
        return tuple((str(k), str(val)) for k, val in v)
    return v


class HTTPRequest(BaseModel):
    """Immutable description of one HTTP request.

    Attributes:
        identifier: Unique per constructed request, preserved across copies
        scheme: URL scheme, ``https`` unless overridden
        host: Target host; filled in by EnvironmentLoader when missing
        port: Explicit port, if any
        path: URL path
        query: Ordered (name, value) pairs
        method: HTTP method
        headers: Request headers
        body: Request payload
        can_retry: Whether RetryLoader may resubmit this request
        retry_count: Resubmissions so far
        options: Per-request capability values
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
        revalidate_instances="never",
    )

    identifier: uuid.UUID = Field(default_factory=uuid.uuid4)
    scheme: str = "https"
    host: str | None = None
    port: Annotated[int, Field(ge=1, le=65535)] | None = None
    path: str = ""
    query: tuple[tuple[str, str], ...] = ()
    method: Method = Method.GET
    headers: dict[str, str] = Field(default_factory=dict, repr=False)
    body: RequestBody = Field(default_factory=EmptyBody, repr=False)
    can_retry: bool = False
    retry_count: Annotated[int, Field(ge=0, le=255)] = 0
    options: OptionsBag = Field(default_factory=OptionsBag, repr=False)

    @model_validator(mode="before")
    @classmethod
    def _params_to_body(cls, data: Any) -> Any:
        """``params={...}`` is shorthand for a JSONBody."""
        if isinstance(data, dict) and "params" in data:
            data = dict(data)
            params = data.pop("params")
            if params is not None:
                data["body"] = JSONBody(params)
        return data

    @field_validator("query", mode="before")
    @classmethod
    def _query_pairs(cls, v: Any) -> Any:
        return _as_query(v)

    @field_validator("method", mode="before")
    @classmethod
    def _upper_method(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    # ─── URL ─────────────────────────────────────────────────────────

    @property
    def url(self) -> str | None:
        """Absolute URL, or None while no host is known."""
        if not self.host:
            return None
        authority = f"{self.host}:{self.port}" if self.port is not None else self.host
        path = quote(self.path, safe=_PATH_SAFE)
        if path and not path.startswith("/"):
            path = f"/{path}"
        query = f"?{urlencode(self.query, quote_via=quote)}" if self.query else ""
        return f"{self.scheme}://{authority}{path}{query}"

    # ─── Copies ──────────────────────────────────────────────────────

    def replace(self, **changes: Any) -> HTTPRequest:
        """Validated copy with the given fields changed; the identifier is kept.

        The copy owns its headers, so mutating one request never shows
        through another. Raises ``pydantic.ValidationError`` for values the
        constructor would reject.
        """
        fields = {name: getattr(self, name) for name in type(self).model_fields}
        fields["headers"] = dict(self.headers)
        fields.update(changes)
        return type(self).model_validate(fields)

    def with_option(self, capability: Capability[Any], value: Any) -> HTTPRequest:
        return self.replace(options=self.options.with_value(capability, value))

    def with_header(self, name: str, value: str) -> HTTPRequest:
        return self.with_headers({name: value})

    def with_headers(self, headers: Mapping[str, str]) -> HTTPRequest:
        """Merge headers; later values win."""
        return self.replace(headers={**self.headers, **headers})

    def with_bearer_token(self, token: str) -> HTTPRequest:
        return self.with_header("Authorization", f"Bearer {token}")

    # ─── Options ─────────────────────────────────────────────────────

    @property
    def auth_method(self) -> AuthMethod:
        return self.options.get(AUTH_METHOD)

    @property
    def cache_method(self) -> CacheMethod:
        return self.options.get(CACHE_METHOD)

    @property
    def server_environment(self) -> ServerEnvironment | None:
        return self.options.get(SERVER_ENVIRONMENT)

    @property
    def mock_load_method(self) -> MockLoadMethod:
        return self.options.get(MOCK_LOAD_METHOD)

    def with_auth_method(
        self,
        method: AuthMethod,
        cache_policy: Callable[[AuthMethod], CacheMethod | None] | None = None,
    ) -> HTTPRequest:
        """Set the auth method.

        ``cache_policy`` may derive a cache method from the new auth method;
        when it returns None (or is not given) the cache method is untouched.
        """
        request = self.with_option(AUTH_METHOD, method)
        if cache_policy is not None and (derived := cache_policy(method)) is not None:
            request = request.with_option(CACHE_METHOD, derived)
        return request

    def with_cache_method(self, method: CacheMethod) -> HTTPRequest:
        return self.with_option(CACHE_METHOD, method)

    def with_server_environment(self, environment: ServerEnvironment | None) -> HTTPRequest:
        return self.with_option(SERVER_ENVIRONMENT, environment)

    def with_mock_load_method(self, method: MockLoadMethod) -> HTTPRequest:
        return self.with_option(MOCK_LOAD_METHOD, method)

    @property
    def access_token(self) -> str | None:
        """Authorization header value without its Bearer/Basic scheme."""
        token = find_header(self.headers, "Authorization")
        if token is None:
            return None
        for prefix in _TOKEN_PREFIXES:
            if token.startswith(prefix):
                return token[len(prefix):]
        return token

    # ─── Constructors ────────────────────────────────────────────────

    @classmethod
    def get(
        cls,
        path: str,
        *,
        host: str | None = None,
        query: Mapping[str, str] | Sequence[tuple[str, str]] | None = None,
        headers: Mapping[str, str] | None = None,
        **fields: Any,
    ) -> HTTPRequest:
        return cls(method=Method.GET, path=path, host=host, query=query, headers=dict(headers or {}), **fields)

    @classmethod
    def post(
        cls,
        path: str,
        body: object = None,
        *,
        host: str | None = None,
        headers: Mapping[str, str] | None = None,
        **fields: Any,
    ) -> HTTPRequest:
        """POST with a JSON body built from any serializable value."""
        if body is None:
            payload: RequestBody = EmptyBody()
        elif isinstance(body, RequestBody):
            payload = body
        else:
            payload = JSONEncodableBody(body)
        return cls(method=Method.POST, path=path, host=host, headers=dict(headers or {}), body=payload, **fields)

    @classmethod
    def multipart_form_post(
        cls,
        path: str,
        parts: Sequence[Part],
        *,
        host: str | None = None,
        headers: Mapping[str, str] | None = None,
        boundary: str | None = None,
        **fields: Any,
    ) -> HTTPRequest:
        body = MultipartFormBody(parts, boundary=boundary)
        return cls(method=Method.POST, path=path, host=host, headers=dict(headers or {}), body=body, **fields)

    # ─── Wire ────────────────────────────────────────────────────────

    def _wire_headers(self) -> dict[str, str]:
        """Body headers (non-empty bodies only) overlaid by the request's own."""
        merged: dict[str, str] = {}
        if not self.body.is_empty:
            merged.update(
                (k, v) for k, v in self.body.additional_headers.items() if not has_header(self.headers, k)
            )
        merged.update(self.headers)
        return merged

    def _require_url(self) -> str:
        url = self.url
        if url is None:
            raise HTTPError(HTTPErrorCode.INVALID_REQUEST, self)
        return url

    def to_wire(self) -> WireRequest:
        """Build the wire form. Raises HTTPError(invalid_request) when that is impossible."""
        url = self._require_url()
        content: bytes | None = None
        if not self.body.is_empty:
            try:
                content = self.body.encode()
            except EncodingError as e:
                raise HTTPError(HTTPErrorCode.INVALID_REQUEST, self, underlying=e) from e
        return WireRequest(self.method.value, url, self._wire_headers(), content)

    def to_upload_wire(self) -> WireRequest:
        """Wire form without content, for bodies streamed from a file."""
        return WireRequest(self.method.value, self._require_url(), self._wire_headers())

    # ─── Debugging ───────────────────────────────────────────────────

    def describe(self, redact: frozenset[str] = frozenset()) -> str:
        """Multi-line description; headers named in ``redact`` (lowercase) are masked."""
        headers = "".join(
            f"{k}: {'***' if k.lower() in redact else v}\n" for k, v in self.headers.items()
        )
        return (
            "++++++++++++++++++++++++++++++++\n"
            f"<{self.identifier}> [REQUEST] {self.method.value} {self.url or ''}\n\n"
            "-------------HEADERS-------------\n"
            f"{headers}\n"
            "--------------BODY---------------\n"
            f"{self.body.describe()}\n"
            "++++++++++++++++++++++++++++++++"
        )

    def __hash__(self) -> int:
        return hash((self.identifier, self.retry_count))
