"""Unified error handling for httpchain.

- HTTPErrorCode: closed set of failure classifications
- HTTPError: classified pipeline failure carrying request and partial response
- EncodingError/DecodingError/ResponseValidationError/LoaderConfigurationError:
  non-transport failures
- Result/Ok/Err: success/failure values returned by loaders
"""

from .errors import (
    DecodingError,
    EncodingError,
    HttpchainError,
    HTTPError,
    HTTPErrorCode,
    LoaderConfigurationError,
    ResponseValidationError,
    TransportCancelled,
    classify_exception,
)
from .result import Err, Ok, Result

__all__ = [
    # Taxonomy
    "HTTPErrorCode", "classify_exception",
    # Exceptions
    "HttpchainError", "HTTPError", "EncodingError", "DecodingError",
    "LoaderConfigurationError", "ResponseValidationError", "TransportCancelled",
    # Result
    "Result", "Ok", "Err",
]
