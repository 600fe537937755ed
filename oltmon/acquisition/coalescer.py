"""Collapse concurrent identical requests into a single execution."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

T = TypeVar("T")


class RequestCoalescer:
    """Per-key in-flight deduplication (singleflight).

    While a call for ``key`` is running, further calls with the same key wait for
    it and receive the same result or the same exception. The call runs in its
    own task, so cancelling any one caller (the first included) leaves the others
    waiting on it. Once it finishes the key is forgotten; nothing is cached.
    """

    def __init__(self) -> None:
        self._inflight: dict[str, asyncio.Future[Any]] = {}

    async def do(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._release(key, t))
        else:
            logger.debug(f"Joining in-flight request {key}")
        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Future[Any]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # mark retrieved so a failure nobody awaited does not warn at GC time
            task.exception()

    def in_flight(self) -> list[str]:
        return sorted(self._inflight)
