"""In-process TTL cache."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Any

import structlog

logger = structlog.get_logger()


class MemoryCache:
    """Dict-backed cache with monotonic-clock expiry.

    Entries expire lazily on read. When ``maxsize`` is reached the oldest
    entry is evicted. Safe for concurrent use from one event loop.
    """

    def __init__(
        self,
        *,
        maxsize: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if maxsize is not None and maxsize < 1:
            raise ValueError(f"maxsize must be at least 1, got {maxsize}")
        self._maxsize = maxsize
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = asyncio.Lock()
        self.hits = 0
        self.misses = 0

    async def get(self, key: str) -> Any | None:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                self.misses += 1
                return None
            self.hits += 1
            return value

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        async with self._lock:
            # Re-insert so dict order tracks write age
            self._entries.pop(key, None)
            if self._maxsize is not None and len(self._entries) >= self._maxsize:
                self._evict_one()
            self._entries[key] = (self._clock() + ttl_seconds, value)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, None) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def _evict_one(self) -> None:
        now = self._clock()
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        if expired:
            for k in expired:
                del self._entries[k]
            return
        if not self._entries:
            return
        oldest = next(iter(self._entries))
        del self._entries[oldest]
        logger.debug("cache.evicted", key=oldest)
