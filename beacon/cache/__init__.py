"""Aggregation cache.

Summaries are memoized for a fixed TTL. Event ingestion never invalidates
entries, so a cached summary can lag new events by at most that TTL.
"""

from beacon.cache.base import CacheBackend, build_cache_key, create_cache
from beacon.cache.memory import MemoryCache
from beacon.cache.redis import RedisCache

__all__ = [
    "CacheBackend",
    "MemoryCache",
    "RedisCache",
    "build_cache_key",
    "create_cache",
]
