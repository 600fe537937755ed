"""Cache stores for computed ONU listings."""

from oltmon.cache.base import BaseCache
from oltmon.cache.memory import MemoryCache
from oltmon.cache.redis_store import RedisCache

__all__ = ["BaseCache", "MemoryCache", "RedisCache"]
