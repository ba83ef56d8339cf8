"""Cache protocol, key builder and backend factory."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable
from urllib.parse import quote

from beacon.cache.memory import MemoryCache
from beacon.cache.redis import RedisCache
from beacon.config import CacheConfig

# Stands in for an absent (unbounded) query parameter
UNBOUNDED = "all"


@runtime_checkable
class CacheBackend(Protocol):
    """Async key-value cache with per-entry TTL.

    Values must be JSON-compatible so every backend round-trips them.
    """

    async def get(self, key: str) -> Any | None:
        """Return the cached value, or None on miss or expiry."""
        ...

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store a value for ttl_seconds."""
        ...

    async def delete(self, key: str) -> bool:
        """Drop a key. Returns True if it was present."""
        ...


def build_cache_key(namespace: str, *parts: object) -> str:
    """Build a deterministic cache key.

    ``None`` parts become the ``all`` sentinel. Parts are percent-encoded
    so a ``:`` inside a value (event names, ISO timestamps) can never make
    two different queries produce the same key.

    Args:
        namespace: Key family, e.g. ``event-summary``
        *parts: Query parameters in a fixed order

    Returns:
        Key like ``event-summary:app-1:click:2024-01-01:all``
    """
    encoded = [
        UNBOUNDED if part is None else quote(str(part), safe="")
        for part in parts
    ]
    return ":".join([namespace, *encoded])


def create_cache(config: CacheConfig) -> CacheBackend:
    """Create the configured cache backend."""
    if config.backend == "redis":
        return RedisCache.from_url(config.redis_url)

    return MemoryCache(maxsize=config.maxsize)
