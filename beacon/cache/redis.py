"""Redis-backed cache.

The cache is an optimisation: if Redis is unreachable, reads behave as
misses and writes are dropped, both with an error log.
"""

from __future__ import annotations

import json
from typing import Any

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

logger = structlog.get_logger()


class RedisCache:
    """Async Redis cache storing JSON values with SETEX."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> RedisCache:
        client = redis.from_url(url, encoding="utf-8", decode_responses=True)
        return cls(client)

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self._client.get(key)
        except RedisError as e:
            logger.error("cache.redis.get_failed", key=key, error=str(e))
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("cache.redis.corrupt_entry", key=key)
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            await self._client.setex(key, ttl_seconds, json.dumps(value))
        except RedisError as e:
            logger.error("cache.redis.set_failed", key=key, error=str(e))

    async def delete(self, key: str) -> bool:
        try:
            return await self._client.delete(key) > 0
        except RedisError as e:
            logger.error("cache.redis.delete_failed", key=key, error=str(e))
            return False

    async def close(self) -> None:
        await self._client.aclose()
