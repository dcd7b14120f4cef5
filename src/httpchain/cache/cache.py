"""Response cache storage keyed by resolved URL.

``CacheLoader`` talks to any ``KeyedCache``; ``MemoryCache`` is the default
in-process implementation. Expiry is decided by the loader's clock, so stores
keep entries until asked to remove them or until capacity forces eviction.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, runtime_checkable

from httpchain.foundation.config import get_settings

logger = logging.getLogger("httpchain.cache")


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A stored response with its absolute expiry."""
    status_code: int
    headers: dict[str, str] = field(repr=False)
    body: bytes = field(repr=False)
    expires_at: datetime

    def is_fresh(self, now: datetime) -> bool:
        return now < self.expires_at


@runtime_checkable
class KeyedCache(Protocol):
    """Protocol for response stores (enables custom implementations)."""

    def get(self, key: str) -> CacheEntry | None: ...
    def put(self, key: str, entry: CacheEntry) -> None: ...
    def remove(self, key: str) -> None: ...


class MemoryCache:
    """Thread-safe in-memory response store.

    Uses RLock for synchronization, safe under concurrent access. When full,
    the entry with the earliest expiry is evicted to make room.

    Args:
        max_entries: Maximum number of entries before eviction (settings default)

    Example:
        >>> cache = MemoryCache(max_entries=2)
        >>> cache.put("https://api.example.com/a", entry)
        >>> cache.get("https://api.example.com/a") is entry
        True
    """

    __slots__ = ("_entries", "_max_entries", "_lock")

    def __init__(self, max_entries: int | None = None) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._max_entries = max_entries if max_entries is not None else get_settings().cache.max_entries
        if self._max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._lock = threading.RLock()

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            if key not in self._entries and len(self._entries) >= self._max_entries:
                self._evict_unlocked()
            self._entries[key] = entry

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _evict_unlocked(self) -> None:
        """Drop the entry that expires first. Caller must hold lock."""
        victim = min(self._entries, key=lambda k: self._entries[k].expires_at)
        del self._entries[victim]
        logger.debug("Evicted cache entry %s", victim)

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries
