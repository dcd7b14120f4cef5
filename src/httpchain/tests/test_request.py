"""Tests for the request descriptor, wire building and environment resolution."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from httpchain import (
    CacheWithLimit,
    EncodingError,
    EnvironmentLoader,
    HTTPError,
    HTTPErrorCode,
    HTTPRequest,
    JSONBody,
    JSONEncodableBody,
    LoaderChain,
    Method,
    MockLoader,
    NeverCache,
    Part,
    ServerEnvironment,
    mock_response,
)


# ═════════════════════════════════════════════════════════════════════════════
# Descriptor
# ═════════════════════════════════════════════════════════════════════════════


def test_defaults() -> None:
    request = HTTPRequest()
    assert request.scheme == "https"
    assert request.method is Method.GET
    assert request.retry_count == 0
    assert request.can_retry is False
    assert request.body.is_empty
    assert request.url is None


def test_url_composition() -> None:
    request = HTTPRequest.get("/users/42", host="api.example.com", query={"expand": "team", "q": "a b"})
    assert request.url == "https://api.example.com/users/42?expand=team&q=a%20b"
    assert request.replace(port=8443).url == "https://api.example.com:8443/users/42?expand=team&q=a%20b"
    assert HTTPRequest(host="h", path="x").url == "https://h/x"


def test_identifier_unique_and_preserved_across_copies() -> None:
    first, second = HTTPRequest.get("/"), HTTPRequest.get("/")
    assert first.identifier != second.identifier
    copy = first.replace(retry_count=3).with_header("X-A", "1")
    assert copy.identifier == first.identifier
    assert copy.retry_count == 3
    assert first.retry_count == 0
    assert first.headers == {}


def test_copies_do_not_share_mutable_state() -> None:
    original = HTTPRequest.get("/", host="h", headers={"A": "1"})
    retried = original.replace(retry_count=1).with_cache_method(CacheWithLimit(seconds=60))

    retried.headers["X-Extra"] = "1"

    assert original.headers == {"A": "1"}
    assert original.options is not retried.options
    assert original.cache_method == NeverCache()
    assert not hasattr(original.options, "set")


def test_replace_validates_like_the_constructor() -> None:
    request = HTTPRequest.get("/x", host="h").replace(method="post", query={"a": 1})
    assert request.method is Method.POST
    assert request.query == (("a", "1"),)
    assert request.to_wire().method == "POST"

    with pytest.raises(ValidationError):
        request.replace(port=99999)
    with pytest.raises(ValidationError):
        request.replace(retry_count=999)
    with pytest.raises(ValidationError):
        request.replace(bogus=True)


def test_headers_merge_last_write_wins() -> None:
    request = HTTPRequest.get("/", headers={"A": "1"}).with_headers({"A": "2", "B": "3"})
    assert request.headers == {"A": "2", "B": "3"}


def test_access_token_strips_scheme() -> None:
    assert HTTPRequest.get("/").with_bearer_token("abc").access_token == "abc"
    assert HTTPRequest.get("/", headers={"authorization": "Basic dXNlcg=="}).access_token == "dXNlcg=="
    assert HTTPRequest.get("/", headers={"Authorization": "raw"}).access_token == "raw"
    assert HTTPRequest.get("/").access_token is None


def test_params_keyword_builds_json_body() -> None:
    request = HTTPRequest(method="post", host="h", path="/p", params={"a": 1})
    assert request.method is Method.POST
    assert request.body == JSONBody({"a": 1})


def test_post_wraps_values_in_json_encodable_body() -> None:
    request = HTTPRequest.post("/items", {"name": "x"}, host="h")
    assert isinstance(request.body, JSONEncodableBody)
    assert request.to_wire().content == b'{"name":"x"}'


def test_multipart_form_post() -> None:
    request = HTTPRequest.multipart_form_post("/upload", [Part.text("a", "b")], host="h", boundary="B")
    assert request.method is Method.POST
    assert request.to_upload_wire().headers["Content-Type"] == "multipart/form-data; boundary=B"
    assert request.to_upload_wire().content is None


# ═════════════════════════════════════════════════════════════════════════════
# Wire
# ═════════════════════════════════════════════════════════════════════════════


def test_to_wire_without_host_is_invalid_request() -> None:
    request = HTTPRequest.get("/users")
    with pytest.raises(HTTPError) as exc:
        request.to_wire()
    assert exc.value.code is HTTPErrorCode.INVALID_REQUEST
    assert exc.value.request is request


def test_to_wire_encoding_failure_keeps_underlying() -> None:
    request = HTTPRequest.post("/x", JSONEncodableBody(object()), host="h")
    with pytest.raises(HTTPError) as exc:
        request.to_wire()
    assert exc.value.code is HTTPErrorCode.INVALID_REQUEST
    assert isinstance(exc.value.underlying, EncodingError)


def test_explicit_headers_win_over_body_headers() -> None:
    request = HTTPRequest(host="h", params={"a": 1}, headers={"content-type": "application/vnd.custom+json"})
    wire = request.to_wire()
    assert wire.headers == {"content-type": "application/vnd.custom+json"}
    assert wire.content == b'{"a":1}'


def test_empty_body_adds_no_headers() -> None:
    wire = HTTPRequest(host="h", body=JSONBody({})).to_wire()
    assert wire.headers == {}
    assert wire.content is None


def test_describe_mentions_identifier_and_redacts() -> None:
    request = HTTPRequest.get("/u", host="h").with_bearer_token("secret")
    text = request.describe(frozenset({"authorization"}))
    assert str(request.identifier) in text
    assert "secret" not in text
    assert "[REQUEST] GET https://h/u" in text


# ═════════════════════════════════════════════════════════════════════════════
# Environment
# ═════════════════════════════════════════════════════════════════════════════


def test_environment_prefix_is_normalized() -> None:
    assert ServerEnvironment(host="h", path_prefix="v1").path_prefix == "/v1"
    assert ServerEnvironment(host="h").path_prefix == "/"


@pytest.mark.asyncio
async def test_environment_resolution_scenario(prod: ServerEnvironment) -> None:
    mock = MockLoader().set_next_mock(mock_response(200))
    chain = LoaderChain([EnvironmentLoader(prod), mock])
    await chain.load(HTTPRequest.get("/users/42"))
    assert mock.last_request is not None
    assert mock.last_request.url == "https://api.example.com/v1/users/42"


@pytest.mark.asyncio
async def test_environment_application_is_idempotent(prod: ServerEnvironment) -> None:
    once = await EnvironmentLoader.apply(HTTPRequest.get("/users/42"), prod)
    twice = await EnvironmentLoader.apply(once, prod)
    assert once.path == twice.path == "/v1/users/42"
    assert twice.url == once.url


@pytest.mark.asyncio
async def test_root_prefix_is_a_no_op() -> None:
    env = ServerEnvironment(host="h")
    resolved = await EnvironmentLoader.apply(HTTPRequest.get("/users"), env)
    assert resolved.path == "/users"


@pytest.mark.asyncio
async def test_environment_does_not_override_request_values() -> None:
    env = ServerEnvironment(host="env.example.com", port=8080, headers={"Authorization": "Bearer env", "X-App": "1"})
    request = HTTPRequest.get("/", host="mine.example.com", headers={"authorization": "Bearer mine"}).replace(port=443)
    resolved = await EnvironmentLoader.apply(request, env)
    assert resolved.host == "mine.example.com"
    assert resolved.port == 443
    assert resolved.headers == {"authorization": "Bearer mine", "X-App": "1"}


@pytest.mark.asyncio
async def test_empty_host_is_filled() -> None:
    env = ServerEnvironment(host="env.example.com", port=8080)
    resolved = await EnvironmentLoader.apply(HTTPRequest(host="", path="/x"), env)
    assert resolved.url == "https://env.example.com:8080/x"


@pytest.mark.asyncio
async def test_async_header_provider() -> None:
    async def tokens() -> dict[str, str]:
        return {"Authorization": "Bearer fresh"}

    env = ServerEnvironment(host="h", headers={"Authorization": "Bearer stale", "X-A": "1"}, header_provider=tokens)
    assert await env.resolve_headers() == {"Authorization": "Bearer fresh", "X-A": "1"}


@pytest.mark.asyncio
async def test_request_environment_option_wins(prod: ServerEnvironment) -> None:
    staging = ServerEnvironment(host="staging.example.com", path_prefix="/v2")
    mock = MockLoader().set_next_mock(mock_response(200))
    chain = LoaderChain([EnvironmentLoader(prod), mock])
    await chain.load(HTTPRequest.get("/users").with_server_environment(staging))
    assert mock.last_request is not None
    assert mock.last_request.url == "https://staging.example.com/v2/users"
