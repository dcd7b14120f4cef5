"""Responses and the HTTPResult alias."""

from __future__ import annotations

from http import HTTPStatus
from typing import TypeAlias

from pydantic import BaseModel, ConfigDict, Field

from httpchain.foundation.errors import HTTPError, Result

from .body import pretty_json
from .request import HTTPRequest, find_header


class HTTPResponse(BaseModel):
    """A received HTTP response, tied to the request that produced it."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
        revalidate_instances="never",
    )

    request: HTTPRequest = Field(repr=False)
    status_code: int = Field(ge=100, le=599)
    headers: dict[str, str] = Field(default_factory=dict, repr=False)
    body: bytes = Field(default=b"", repr=False)

    @property
    def is_status_code_valid(self) -> bool:
        """Whether the status is 2xx."""
        return 200 <= self.status_code < 300

    @property
    def message(self) -> str:
        """Standard reason phrase for the status code."""
        try:
            return HTTPStatus(self.status_code).phrase
        except ValueError:
            return "Unknown"

    def header(self, name: str) -> str | None:
        return find_header(self.headers, name)

    def describe(self, redact: frozenset[str] = frozenset()) -> str:
        headers = "".join(
            f"{k}: {'***' if k.lower() in redact else v}\n" for k, v in self.headers.items()
        )
        body = pretty_json(self.body) or self.body.decode("utf-8", errors="replace") or "UNAVAILABLE"
        return (
            "++++++++++++++++++++++++++++++++\n"
            f"<{self.request.identifier}> [RESPONSE] {self.status_code} ({self.message.upper()}) "
            f"{self.request.method.value} {self.request.url or ''}\n\n"
            "-------------HEADERS-------------\n"
            f"{headers}\n"
            "--------------BODY---------------\n"
            f"{body}\n"
            "++++++++++++++++++++++++++++++++"
        )

    def __hash__(self) -> int:
        return hash((self.request.identifier, self.status_code))


HTTPResult: TypeAlias = Result[HTTPResponse, HTTPError]


def request_of(result: HTTPResult) -> HTTPRequest:
    """The request a result belongs to, for either variant."""
    return result.match(ok=lambda r: r.request, err=lambda e: e.request)


def response_of(result: HTTPResult) -> HTTPResponse | None:
    """The (possibly partial) response carried by either variant."""
    return result.match(ok=lambda r: r, err=lambda e: e.response)


def error_of(result: HTTPResult) -> HTTPError | None:
    return result.err()


def describe_result(result: HTTPResult, redact: frozenset[str] = frozenset()) -> str:
    response = response_of(result)
    if response is None:
        return f"<{request_of(result).identifier}> [FAILURE] {result.unwrap_err()}"
    return response.describe(redact)
