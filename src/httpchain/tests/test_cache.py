"""Tests for the memory cache store and CacheLoader."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from httpchain import (
    CacheEntry,
    CacheLoader,
    CacheUntilDate,
    CacheWithLimit,
    CacheWithoutExpiry,
    HTTPErrorCode,
    HTTPRequest,
    KeyedCache,
    LoaderChain,
    MemoryCache,
    MockLoader,
    mock_error,
    mock_response,
)

T0 = datetime(2030, 1, 1, 12, 0, tzinfo=UTC)


class Clock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


def entry(expires_at: datetime, body: bytes = b"x") -> CacheEntry:
    return CacheEntry(status_code=200, headers={}, body=body, expires_at=expires_at)


def cached_request(method: object = None) -> HTTPRequest:
    return HTTPRequest.get("/catalog", host="api.example.com").with_cache_method(
        method or CacheWithLimit(seconds=60)
    )


# ═════════════════════════════════════════════════════════════════════════════
# MemoryCache
# ═════════════════════════════════════════════════════════════════════════════


def test_memory_cache_basic() -> None:
    cache = MemoryCache(max_entries=10)
    e = entry(T0)
    cache.put("k", e)
    assert cache.get("k") is e
    assert cache.get("other") is None
    cache.remove("k")
    assert cache.get("k") is None
    cache.remove("k")  # removing a missing key is fine


def test_memory_cache_evicts_earliest_expiry() -> None:
    cache = MemoryCache(max_entries=2)
    cache.put("late", entry(T0 + timedelta(hours=2)))
    cache.put("early", entry(T0 + timedelta(hours=1)))
    cache.put("new", entry(T0 + timedelta(hours=3)))
    assert cache.size == 2
    assert "early" not in cache
    assert "late" in cache and "new" in cache


def test_memory_cache_overwrite_does_not_evict() -> None:
    cache = MemoryCache(max_entries=1)
    cache.put("k", entry(T0, b"a"))
    cache.put("k", entry(T0, b"b"))
    assert cache.size == 1
    assert cache.get("k").body == b"b"


def test_memory_cache_clear_and_protocol() -> None:
    cache = MemoryCache(max_entries=5)
    cache.put("a", entry(T0))
    cache.clear()
    assert cache.size == 0
    assert isinstance(cache, KeyedCache)


def test_memory_cache_rejects_zero_capacity() -> None:
    with pytest.raises(ValueError):
        MemoryCache(max_entries=0)


# ═════════════════════════════════════════════════════════════════════════════
# CacheLoader
# ═════════════════════════════════════════════════════════════════════════════


def build(clock: Clock, *handlers: object, cache: MemoryCache | None = None) -> tuple[LoaderChain, MockLoader]:
    mock = MockLoader(*handlers)  # type: ignore[arg-type]
    loader = CacheLoader(cache or MemoryCache(max_entries=10), clock=clock, default_expiry=3600)
    return LoaderChain([loader, mock]), mock


@pytest.mark.asyncio
async def test_fresh_entry_is_served_without_going_downstream() -> None:
    clock = Clock()
    chain, mock = build(clock, mock_response(200, b"v1", {"ETag": "1"}))

    first = await chain.load(cached_request())
    clock.advance(seconds=59)
    second = await chain.load(cached_request())

    assert mock.call_count == 1
    assert second.unwrap().body == b"v1"
    assert second.unwrap().header("etag") == "1"
    assert first.unwrap().status_code == second.unwrap().status_code == 200


@pytest.mark.asyncio
async def test_stale_entry_is_refetched() -> None:
    clock = Clock()
    cache = MemoryCache(max_entries=10)
    chain, mock = build(clock, mock_response(200, b"v1"), mock_response(200, b"v2"), cache=cache)

    await chain.load(cached_request())
    clock.advance(seconds=60)
    result = await chain.load(cached_request())

    assert mock.call_count == 2
    assert result.unwrap().body == b"v2"
    assert cache.get("https://api.example.com/catalog").body == b"v2"


@pytest.mark.asyncio
async def test_never_cache_passes_through() -> None:
    chain, mock = build(Clock(), mock_response(200), mock_response(200))
    request = HTTPRequest.get("/catalog", host="api.example.com")
    await chain.load(request)
    await chain.load(request)
    assert mock.call_count == 2


@pytest.mark.asyncio
async def test_request_without_url_is_forwarded_uncached() -> None:
    cache = MemoryCache(max_entries=10)
    chain, mock = build(Clock(), mock_response(200), cache=cache)
    await chain.load(HTTPRequest.get("/catalog").with_cache_method(CacheWithoutExpiry()))
    assert mock.call_count == 1
    assert cache.size == 0


@pytest.mark.asyncio
async def test_failures_and_non_2xx_are_not_cached() -> None:
    cache = MemoryCache(max_entries=10)
    chain, mock = build(
        Clock(),
        mock_response(404),
        mock_error(HTTPErrorCode.CANNOT_CONNECT),
        mock_response(200),
        cache=cache,
    )
    assert (await chain.load(cached_request())).unwrap().status_code == 404
    assert (await chain.load(cached_request())).unwrap_err().code is HTTPErrorCode.CANNOT_CONNECT
    assert cache.size == 0
    assert (await chain.load(cached_request())).is_ok()
    assert cache.size == 1


@pytest.mark.asyncio
async def test_expiry_per_cache_method() -> None:
    clock = Clock()
    cache = MemoryCache(max_entries=10)
    until = T0 + timedelta(days=3)
    url = "https://api.example.com/catalog"

    chain, _ = build(clock, mock_response(200), cache=cache)
    await chain.load(cached_request(CacheWithLimit(seconds=30)))
    assert cache.get(url).expires_at == T0 + timedelta(seconds=30)

    cache.clear()
    chain, _ = build(clock, mock_response(200), cache=cache)
    await chain.load(cached_request(CacheUntilDate(expires_at=until)))
    assert cache.get(url).expires_at == until

    cache.clear()
    chain, _ = build(clock, mock_response(200), cache=cache)
    await chain.load(cached_request(CacheWithoutExpiry()))
    assert cache.get(url).expires_at == T0 + timedelta(seconds=3600)


@pytest.mark.asyncio
async def test_past_expiry_date_is_not_stored() -> None:
    cache = MemoryCache(max_entries=10)
    chain, _ = build(Clock(), mock_response(200), cache=cache)
    await chain.load(cached_request(CacheUntilDate(expires_at=T0 - timedelta(seconds=1))))
    assert cache.size == 0


def test_default_expiry_comes_from_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HTTPCHAIN_CACHE_DEFAULT_EXPIRY", "120")
    assert CacheLoader(MemoryCache(max_entries=1)).default_expiry == timedelta(seconds=120)
