"""Standard chain assembly from settings."""

from __future__ import annotations

from collections.abc import Sequence

from httpchain.cache import KeyedCache
from httpchain.foundation.config import HttpchainSettings, get_settings
from httpchain.http import ServerEnvironment

from .backoff import Backoff, ExponentialBackoff
from .base import Loader, LoaderChain
from .cache import CacheLoader
from .environment import EnvironmentLoader
from .logging import LoggingLoader
from .retry import RetryLoader
from .transport import Transport, TransportLoader


def default_chain(
    environment: ServerEnvironment | None = None,
    *,
    transport: Transport | None = None,
    cache: KeyedCache | None = None,
    settings: HttpchainSettings | None = None,
    extra: Sequence[Loader] = (),
) -> LoaderChain:
    """Build the usual pipeline.

    Order: ``extra`` stages, EnvironmentLoader, LoggingLoader (only with
    ``settings.debug``), RetryLoader, CacheLoader, TransportLoader. Retry
    limits, backoff, cache expiry and redaction come from ``settings``.

    Example:
        >>> chain = default_chain(
        ...     ServerEnvironment(host="api.example.com", path_prefix="/v1"),
        ...     extra=[ModifierLoader(lambda r: r.with_bearer_token(token_store.current))],
        ... )
    """
    settings = settings or get_settings()
    stages: list[Loader] = [*extra, EnvironmentLoader(environment)]
    if settings.debug:
        stages.append(LoggingLoader(redact_headers=settings.logging.redact_headers))
    stages.append(RetryLoader(settings.retry.max_retries, backoff=_backoff(settings)))
    stages.append(CacheLoader(cache, default_expiry=settings.cache.default_expiry))
    stages.append(TransportLoader(transport))
    return LoaderChain(stages)


def _backoff(settings: HttpchainSettings) -> Backoff | None:
    retry = settings.retry
    if not retry.backoff:
        return None
    return ExponentialBackoff(base=retry.base_delay, max_delay=retry.max_delay, jitter=retry.jitter)
