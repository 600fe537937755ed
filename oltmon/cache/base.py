"""Abstract base cache store."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseCache(ABC):
    """Key/value store with fixed per-entry expiry.

    ``get`` raises CacheUnavailable and ``set`` raises CacheWriteFailed when the
    backing store cannot be reached. Payloads are JSON strings.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the payload stored under ``key`` or None on miss / expiry."""

    @abstractmethod
    async def set(self, key: str, ttl: int, payload: str) -> None:
        """Store ``payload`` under ``key`` for ``ttl`` seconds from now."""

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        """Release connections."""
