"""Redis-backed cache store."""

from __future__ import annotations

import redis.asyncio as aioredis
from loguru import logger
from redis.exceptions import RedisError

from oltmon.cache.base import BaseCache
from oltmon.config import RedisSettings
from oltmon.exceptions import CacheUnavailable, CacheWriteFailed


class RedisCache(BaseCache):
    """Cache on a shared Redis instance (GET / SET EX)."""

    def __init__(self, client: aioredis.Redis) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: RedisSettings) -> "RedisCache":
        pool = aioredis.BlockingConnectionPool(
            host=settings.host,
            port=settings.port,
            password=settings.password or None,
            db=settings.db,
            max_connections=settings.pool_size,
            timeout=settings.pool_timeout,
            decode_responses=True,
        )
        return cls(aioredis.Redis(connection_pool=pool))

    async def get(self, key: str) -> str | None:
        try:
            value = await self._client.get(key)
        except RedisError as e:
            raise CacheUnavailable(f"redis GET {key} failed: {e}") from e
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set(self, key: str, ttl: int, payload: str) -> None:
        try:
            await self._client.set(key, payload, ex=ttl)
        except RedisError as e:
            raise CacheWriteFailed(f"redis SET {key} failed: {e}") from e

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.error(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        await self._client.aclose()
