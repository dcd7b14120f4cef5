"""Loader stages and chain composition.

Stages, in the order a typical chain uses them:
    ModifierLoader: rewrite requests with a function
    EnvironmentLoader: resolve host, port, path prefix and default headers
    LoggingLoader: trace requests and results at DEBUG
    RetryLoader: resubmit retryable non-2xx responses
    CacheLoader: serve and store responses by URL
    MockLoader: answer from scripted handlers (tests, previews)
    TransportLoader: terminal network stage
"""

from .backoff import Backoff, ConstantBackoff, ExponentialBackoff
from .base import Loader, LoaderChain, SupportsLoad
from .builder import default_chain
from .cache import CacheLoader
from .environment import EnvironmentLoader
from .logging import LoggingLoader
from .mock import Invocation, MockHandler, MockLoader, mock_error, mock_response
from .modifier import ModifierLoader
from .retry import RetryLoader
from .transport import HttpxTransport, Transport, TransportLoader, TransportResponse

__all__ = [
    # Chain
    "Loader", "LoaderChain", "SupportsLoad", "default_chain",
    # Stages
    "ModifierLoader", "EnvironmentLoader", "LoggingLoader", "RetryLoader",
    "CacheLoader", "MockLoader", "TransportLoader",
    # Retry
    "Backoff", "ConstantBackoff", "ExponentialBackoff",
    # Mocking
    "MockHandler", "Invocation", "mock_response", "mock_error",
    # Transport
    "Transport", "TransportResponse", "HttpxTransport",
]
