"""httpchain - Composable async HTTP request pipeline.

Requests are immutable descriptors that flow through a chain of loader
stages. Each stage can rewrite the request, answer it, or forward it and
post-process the result; the terminal stage performs the network exchange.
Failures are returned as values (``Result[HTTPResponse, HTTPError]``) and
classified into a small, closed set of error codes.

Quick Start:
    >>> from httpchain import HTTPRequest, ServerEnvironment, default_chain
    >>>
    >>> prod = ServerEnvironment(host="api.example.com", path_prefix="/v1")
    >>> chain = default_chain(prod)
    >>> result = await chain.load(HTTPRequest.get("/users/42"))
    >>> result.unwrap().status_code
    200

Typed Requests:
    >>> from httpchain import Connection, Request, require_success
    >>>
    >>> connection = Connection(chain, validate_response=require_success)
    >>> user = await connection.request(Request.json(HTTPRequest.get("/users/42"), User))

Custom Chains:
    >>> from httpchain import LoaderChain, RetryLoader, CacheLoader, TransportLoader
    >>>
    >>> chain = LoaderChain([
    ...     EnvironmentLoader(prod),
    ...     RetryLoader(max_retry_count=2, backoff=ExponentialBackoff()),
    ...     CacheLoader(),
    ...     TransportLoader(),
    ... ])

Testing:
    >>> from httpchain import MockLoader, mock_response
    >>>
    >>> mock = MockLoader().set_next_mock(mock_response(200, {"id": 42}))
    >>> chain = LoaderChain([EnvironmentLoader(prod), mock])

Cancellation:
    >>> from httpchain import CancelScope
    >>>
    >>> async with CancelScope(timeout=5.0):
    ...     result = await chain.load(request)  # Err(cancelled) once the scope fires
"""

from .cache import CacheEntry, KeyedCache, MemoryCache
from .connection import Connection, Decoder, JSONDecoder, Request, require_success
from .foundation import (
    CancelScope,
    DecodingError,
    EncodingError,
    Err,
    HttpchainError,
    HttpchainSettings,
    HTTPError,
    HTTPErrorCode,
    LoaderConfigurationError,
    Ok,
    ResponseValidationError,
    Result,
    TransportCancelled,
    classify_exception,
    clear_settings_cache,
    configure_logging,
    current_scope,
    get_settings,
    is_cancelled,
)
from .http import (
    AUTH_METHOD,
    CACHE_METHOD,
    MOCK_LOAD_METHOD,
    SERVER_ENVIRONMENT,
    ArrayJSONBody,
    AuthMethod,
    CacheMethod,
    CacheUntilDate,
    CacheWithLimit,
    CacheWithoutExpiry,
    Capability,
    DataBody,
    EmptyBody,
    FormBody,
    HTTPRequest,
    HTTPResponse,
    HTTPResult,
    JSONBody,
    JSONEncodableBody,
    MediaKind,
    Method,
    MockFile,
    MockJSON,
    MockLoadMethod,
    MockValue,
    MultipartFormBody,
    NamedTempFileSink,
    NeverCache,
    NoMock,
    OptionsBag,
    Part,
    RequestBody,
    ServerEnvironment,
    TempFileSink,
    WireRequest,
    describe_result,
    error_of,
    request_of,
    response_of,
)
from .loaders import (
    Backoff,
    CacheLoader,
    ConstantBackoff,
    EnvironmentLoader,
    ExponentialBackoff,
    HttpxTransport,
    Loader,
    LoaderChain,
    LoggingLoader,
    MockLoader,
    ModifierLoader,
    RetryLoader,
    Transport,
    TransportLoader,
    TransportResponse,
    default_chain,
    mock_error,
    mock_response,
)

__version__ = "1.0.0"

__all__ = [
    # Requests & responses
    "HTTPRequest", "Method", "WireRequest", "HTTPResponse", "HTTPResult",
    "request_of", "response_of", "error_of", "describe_result", "ServerEnvironment",
    # Bodies
    "RequestBody", "EmptyBody", "DataBody", "JSONBody", "ArrayJSONBody",
    "JSONEncodableBody", "FormBody", "MultipartFormBody", "Part", "MediaKind",
    "TempFileSink", "NamedTempFileSink",
    # Options
    "Capability", "OptionsBag", "AUTH_METHOD", "CACHE_METHOD", "SERVER_ENVIRONMENT",
    "MOCK_LOAD_METHOD", "AuthMethod", "CacheMethod", "NeverCache", "CacheWithLimit",
    "CacheUntilDate", "CacheWithoutExpiry", "MockLoadMethod", "NoMock", "MockFile",
    "MockJSON", "MockValue",
    # Loaders
    "Loader", "LoaderChain", "default_chain", "ModifierLoader", "EnvironmentLoader",
    "LoggingLoader", "RetryLoader", "CacheLoader", "MockLoader", "TransportLoader",
    "Backoff", "ConstantBackoff", "ExponentialBackoff", "mock_response", "mock_error",
    "Transport", "TransportResponse", "HttpxTransport",
    # Cache
    "CacheEntry", "KeyedCache", "MemoryCache",
    # Connection
    "Connection", "Request", "Decoder", "JSONDecoder", "require_success",
    # Errors
    "HTTPErrorCode", "HttpchainError", "HTTPError", "EncodingError", "DecodingError",
    "LoaderConfigurationError", "ResponseValidationError", "TransportCancelled", "classify_exception",
    "Result", "Ok", "Err",
    # Runtime
    "CancelScope", "current_scope", "is_cancelled",
    "HttpchainSettings", "get_settings", "clear_settings_cache", "configure_logging",
]
