"""Request/response model: descriptors, bodies, options and environments."""

from .body import (
    ArrayJSONBody,
    DataBody,
    EmptyBody,
    FormBody,
    JSONBody,
    JSONEncodableBody,
    RequestBody,
    dump_json,
    form_encode,
)
from .environment import ServerEnvironment
from .multipart import MediaKind, MultipartFormBody, NamedTempFileSink, Part, TempFileSink
from .options import (
    AUTH_METHOD,
    CACHE_METHOD,
    MOCK_LOAD_METHOD,
    SERVER_ENVIRONMENT,
    AuthMethod,
    CacheMethod,
    CacheUntilDate,
    CacheWithLimit,
    CacheWithoutExpiry,
    Capability,
    MockFile,
    MockJSON,
    MockLoadMethod,
    MockValue,
    NeverCache,
    NoMock,
    OptionsBag,
)
from .request import HTTPRequest, Method, WireRequest, find_header
from .response import HTTPResponse, HTTPResult, describe_result, error_of, request_of, response_of

__all__ = [
    # Bodies
    "RequestBody", "EmptyBody", "DataBody", "JSONBody", "ArrayJSONBody",
    "JSONEncodableBody", "FormBody", "MultipartFormBody", "Part", "MediaKind",
    "TempFileSink", "NamedTempFileSink", "dump_json", "form_encode",
    # Options
    "Capability", "OptionsBag", "AUTH_METHOD", "CACHE_METHOD", "SERVER_ENVIRONMENT",
    "MOCK_LOAD_METHOD", "AuthMethod", "CacheMethod", "NeverCache", "CacheWithLimit",
    "CacheUntilDate", "CacheWithoutExpiry", "MockLoadMethod", "NoMock", "MockFile",
    "MockJSON", "MockValue",
    # Model
    "ServerEnvironment", "HTTPRequest", "Method", "WireRequest", "find_header",
    "HTTPResponse", "HTTPResult", "request_of", "response_of", "error_of", "describe_result",
]
