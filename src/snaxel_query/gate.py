"""Concurrency gate bounding how many source fetches run at once."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConcurrencyGate:
    """Admit at most ``capacity`` operations at a time.

    Waiting operations are admitted in submission order. ``asyncio.Semaphore``
    queues waiters FIFO and a new acquirer never overtakes a queued one, so a
    released permit always goes to the oldest waiter.

    Usage:
        gate = ConcurrencyGate(3)
        result = await gate.run(lambda: fetch(query))
    """

    def __init__(self, capacity: int):
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ValueError(f"Gate capacity must be a positive integer, got {capacity!r}")
        self._capacity = capacity
        self._semaphore = asyncio.Semaphore(capacity)
        self._in_flight = 0
        self._waiting = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_flight(self) -> int:
        """Number of operations currently holding a permit."""
        return self._in_flight

    @property
    def waiting(self) -> int:
        """Number of operations queued for a permit."""
        return self._waiting

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` once a permit is free and return its result.

        Errors raised by the operation propagate unchanged. The permit is
        released on success, failure and cancellation.
        """
        self._waiting += 1
        try:
            await self._semaphore.acquire()
        finally:
            self._waiting -= 1

        self._in_flight += 1
        logger.debug(f"Gate admitted operation ({self._in_flight}/{self._capacity} in flight, {self._waiting} waiting)")
        try:
            return await operation()
        finally:
            self._in_flight -= 1
            self._semaphore.release()
