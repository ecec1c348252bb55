"""Concurrency primitives shared by the walker, downloader and client."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Iterable
from typing import Any, TypeVar

T = TypeVar("T")


class RequestScheduler:
    """Ensure a minimum delay between request starts."""

    def __init__(self, delay_sec: float) -> None:
        self.delay_sec = max(0.0, delay_sec)
        self._lock = asyncio.Lock()
        self._next_allowed = 0.0

    async def wait_turn(self) -> None:
        """Sleep as needed so requests are spaced by configured delay."""
        if self.delay_sec <= 0:
            return
        async with self._lock:
            now = time.monotonic()
            wait_for = self._next_allowed - now
            if wait_for > 0:
                await asyncio.sleep(wait_for)
                now = time.monotonic()
            self._next_allowed = now + self.delay_sec


class ConcurrencyGate:
    """Cap the number of simultaneous remote/file operations.

    Only hold a slot around a single leaf operation, never while awaiting
    child traversals; otherwise a deep tree can starve itself of slots.
    """

    def __init__(self, limit: int) -> None:
        self.limit = max(1, limit)
        self._sem = asyncio.Semaphore(self.limit)
        self.in_flight = 0
        self.peak = 0

    async def __aenter__(self) -> ConcurrencyGate:
        await self._sem.acquire()
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.in_flight -= 1
        self._sem.release()


async def fan_out(awaitables: Iterable[Awaitable[T]]) -> list[T]:
    """Run all branches concurrently; return results in submission order.

    The first failure is re-raised unchanged after every still-pending sibling
    has been cancelled and has finished unwinding.
    """
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    if not tasks:
        return []
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
