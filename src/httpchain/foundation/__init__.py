"""Foundation layer: errors, configuration, cancellation and logging."""

from .concurrency import CancelScope, cancellable_sleep, current_scope, is_cancelled
from .config import HttpchainSettings, clear_settings_cache, get_settings
from .errors import (
    DecodingError,
    EncodingError,
    Err,
    HttpchainError,
    HTTPError,
    HTTPErrorCode,
    LoaderConfigurationError,
    Ok,
    ResponseValidationError,
    Result,
    TransportCancelled,
    classify_exception,
)
from .logging import configure_logging

__all__ = [
    "CancelScope", "cancellable_sleep", "current_scope", "is_cancelled",
    "HttpchainSettings", "get_settings", "clear_settings_cache",
    "HTTPErrorCode", "classify_exception",
    "HttpchainError", "HTTPError", "EncodingError", "DecodingError",
    "LoaderConfigurationError", "ResponseValidationError", "TransportCancelled",
    "Result", "Ok", "Err",
    "configure_logging",
]
