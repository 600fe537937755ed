"""In-process cache store with fixed expiry."""

from __future__ import annotations

import time
from typing import Callable

from oltmon.cache.base import BaseCache
from oltmon.exceptions import CacheUnavailable, CacheWriteFailed


class MemoryCache(BaseCache):
    """Dict cache. ``clock`` is injectable so expiry can be tested without sleeping.

    Set ``unavailable`` / ``read_only`` to emulate a store outage.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[float, str]] = {}
        self.unavailable = False
        self.read_only = False

    async def get(self, key: str) -> str | None:
        if self.unavailable:
            raise CacheUnavailable(f"cache unavailable reading {key}")
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, payload = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return payload

    async def set(self, key: str, ttl: int, payload: str) -> None:
        if self.unavailable or self.read_only:
            raise CacheWriteFailed(f"cache unavailable writing {key}")
        self._entries[key] = (self._clock() + ttl, payload)

    def keys(self) -> list[str]:
        return sorted(self._entries)
