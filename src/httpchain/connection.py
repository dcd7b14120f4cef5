"""Typed request execution on top of a loader chain.

A ``Request[T]`` pairs an ``HTTPRequest`` with a decoder producing ``T``.
``Connection`` loads it through a chain, validates the response, and decodes.
The three failure kinds stay distinct:

    - ``HTTPError``: the chain failed (raised untouched)
    - whatever the validator raises (propagated as-is; ``require_success``
      raises ``ResponseValidationError``)
    - ``DecodingError``: a validated response could not be decoded

Example:
    >>> class User(BaseModel):
    ...     id: int
    ...     name: str
    >>> connection = Connection(default_chain(prod), validate_response=require_success)
    >>> user = await connection.request(Request.json(HTTPRequest.get("/users/42"), User))
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

from pydantic import TypeAdapter

from httpchain.foundation.errors import DecodingError, ResponseValidationError
from httpchain.http import HTTPRequest, HTTPResponse
from httpchain.loaders import SupportsLoad

logger = logging.getLogger("httpchain.connection")

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

ResponseValidator = Callable[[HTTPResponse], None]


@runtime_checkable
class Decoder(Protocol[T_co]):
    """Turns a response into a value."""

    def decode(self, response: HTTPResponse) -> T_co: ...


class JSONDecoder(Generic[T]):
    """Decode JSON bodies into ``type_`` with a pydantic TypeAdapter.

    Adapters are built once per decoder; ``type_`` may be a model, a
    dataclass, a TypedDict or any annotation pydantic understands.
    """

    __slots__ = ("_adapter",)

    def __init__(self, type_: Any) -> None:
        self._adapter: TypeAdapter[T] = TypeAdapter(type_)

    def decode(self, response: HTTPResponse) -> T:
        return self._adapter.validate_json(response.body)


@dataclass(frozen=True, slots=True)
class Request(Generic[T]):
    """An ``HTTPRequest`` paired with how to decode its response."""

    underlying_request: HTTPRequest
    decode: Callable[[HTTPResponse], T]

    @classmethod
    def decoded(cls, request: HTTPRequest, decoder: Decoder[T]) -> Request[T]:
        return cls(request, decoder.decode)

    @classmethod
    def json(cls, request: HTTPRequest, type_: type[T] | Any) -> Request[T]:
        """Decode the JSON body into ``type_``."""
        return cls(request, JSONDecoder(type_).decode)

    @classmethod
    def raw(cls, request: HTTPRequest) -> Request[bytes]:
        """Return the body bytes unchanged."""
        return Request(request, _body_bytes)


def _body_bytes(response: HTTPResponse) -> bytes:
    return response.body


def require_success(response: HTTPResponse) -> None:
    """Validator rejecting non-2xx responses with ``ResponseValidationError``."""
    if not response.is_status_code_valid:
        raise ResponseValidationError(
            response, f"Unexpected status {response.status_code} from {response.request.url}"
        )


class Connection:
    """Runs typed requests through a loader chain.

    Args:
        loader: A ``LoaderChain`` or any single loader stage
        validate_response: Called with every successful response before
            decoding; raise to reject it
    """

    __slots__ = ("loader", "_validate_response")

    def __init__(self, loader: SupportsLoad, validate_response: ResponseValidator | None = None) -> None:
        self.loader = loader
        self._validate_response = validate_response

    async def request(self, request: Request[T]) -> T:
        """Load, validate and decode.

        Raises:
            HTTPError: The chain returned a failure
            DecodingError: The decoder raised for a validated response
        """
        result = await self.loader.load(request.underlying_request)
        if result.is_err():
            raise result.unwrap_err()

        response = result.unwrap()
        self.validate(response)
        try:
            return request.decode(response)
        except Exception as e:
            logger.debug("Decoding %s failed: %s", response.request.url, e)
            raise DecodingError(response, f"Cannot decode response from {response.request.url}: {e}") from e

    def validate(self, response: HTTPResponse) -> None:
        """Run only the response validator."""
        if self._validate_response is not None:
            self._validate_response(response)
