"""Response caching stage keyed by the request URL."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from httpchain.cache import CacheEntry, KeyedCache, MemoryCache
from httpchain.foundation.config import get_settings
from httpchain.foundation.errors import Ok
from httpchain.http import (
    CacheMethod,
    CacheUntilDate,
    CacheWithLimit,
    CacheWithoutExpiry,
    HTTPRequest,
    HTTPResponse,
    HTTPResult,
    NeverCache,
)

from .base import Loader

logger = logging.getLogger("httpchain.cache")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class CacheLoader(Loader):
    """Serve fresh cached responses and store successful ones.

    Requests whose cache method is ``NeverCache``, or that have no URL yet,
    pass through untouched. A fresh entry for the URL is answered without
    going downstream; a stale one is dropped before forwarding. Only ``Ok``
    results with a 2xx status are stored, with an expiry taken from the cache
    method of the request that produced them.

    Args:
        cache: Entry store (a new ``MemoryCache`` by default)
        clock: Source of the current time, timezone-aware
        default_expiry: Lifetime for ``CacheWithoutExpiry`` entries, seconds
            or timedelta (settings default, one day)
    """

    def __init__(
        self,
        cache: KeyedCache | None = None,
        clock: Clock | None = None,
        default_expiry: float | timedelta | None = None,
    ) -> None:
        super().__init__()
        self.cache: KeyedCache = cache if cache is not None else MemoryCache()
        self.clock: Clock = clock or utc_now
        if default_expiry is None:
            default_expiry = get_settings().cache.default_expiry
        self.default_expiry = (
            default_expiry if isinstance(default_expiry, timedelta) else timedelta(seconds=default_expiry)
        )

    async def resolve(self, request: HTTPRequest) -> HTTPResult:
        url = request.url
        if isinstance(request.cache_method, NeverCache) or url is None:
            return await self.forward(request)

        entry = self.cache.get(url)
        if entry is not None:
            if entry.is_fresh(self.clock()):
                logger.debug("Cache hit for %s", url, extra={"request_id": str(request.identifier)})
                return Ok(HTTPResponse(
                    request=request,
                    status_code=entry.status_code,
                    headers=dict(entry.headers),
                    body=entry.body,
                ))
            self.cache.remove(url)

        result = await self.forward(request)
        if result.is_ok():
            self._store(url, result.unwrap())
        return result

    def _store(self, url: str, response: HTTPResponse) -> None:
        if not response.is_status_code_valid:
            return
        now = self.clock()
        expires_at = self.expiry_for(response.request.cache_method, now)
        if expires_at is None or expires_at <= now:
            return
        self.cache.put(url, CacheEntry(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=response.body,
            expires_at=expires_at,
        ))
        logger.debug("Cached %s until %s", url, expires_at.isoformat())

    def expiry_for(self, method: CacheMethod, now: datetime) -> datetime | None:
        """Absolute expiry for a cache method, or None when it never caches."""
        match method:
            case CacheWithLimit(seconds=seconds):
                return now + timedelta(seconds=seconds)
            case CacheUntilDate(expires_at=expires_at):
                return expires_at
            case CacheWithoutExpiry():
                return now + self.default_expiry
            case _:
                return None
