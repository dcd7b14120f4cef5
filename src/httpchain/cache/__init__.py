"""Response cache stores."""

from .cache import CacheEntry, KeyedCache, MemoryCache

__all__ = ["CacheEntry", "KeyedCache", "MemoryCache"]
