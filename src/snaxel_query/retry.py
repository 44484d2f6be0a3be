"""Exponential backoff retry for fallible async operations."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryHook = Callable[[int, int, float, Exception], None]


def backoff_delay(retry_index: int, base_delay: float, max_delay: float | None = None) -> float:
    """Delay before retry number ``retry_index`` (0 for the first retry)."""
    delay = base_delay * (2**retry_index)
    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay


def backoff_delays(max_attempts: int, base_delay: float, max_delay: float | None = None) -> list[float]:
    """Sleeps performed by a call whose every attempt fails."""
    return [backoff_delay(i, base_delay, max_delay) for i in range(max_attempts - 1)]


def _log_retry(attempt: int, max_attempts: int, delay: float, error: Exception) -> None:
    logger.warning(f"Retry {attempt}/{max_attempts} after {delay * 1000:.0f}ms: {error}")


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int,
    base_delay: float,
    max_delay: float | None = None,
    on_retry: RetryHook | None = _log_retry,
) -> T:
    """Await ``operation`` up to ``max_attempts`` times.

    After failed attempt ``i`` (0-based) the next one starts after
    ``base_delay * 2**i`` seconds, clamped to ``max_delay`` when given.
    The first success is returned immediately. When all attempts fail the
    last attempt's exception is re-raised unchanged.

    Args:
        operation: Zero-argument callable returning an awaitable.
        max_attempts: Total number of attempts (>= 1).
        base_delay: Base delay in seconds (>= 0).
        max_delay: Optional ceiling for a single delay.
        on_retry: Called as ``(attempt, max_attempts, delay, error)`` before each sleep.

    Returns:
        The result of the first successful attempt.
    """
    if isinstance(max_attempts, bool) or not isinstance(max_attempts, int) or max_attempts < 1:
        raise ValueError(f"max_attempts must be a positive integer, got {max_attempts!r}")
    if base_delay < 0:
        raise ValueError(f"base_delay must be non-negative, got {base_delay!r}")
    if max_delay is not None and max_delay < 0:
        raise ValueError(f"max_delay must be non-negative, got {max_delay!r}")

    for attempt in range(max_attempts):
        try:
            return await operation()
        except Exception as e:
            if attempt == max_attempts - 1:
                raise
            delay = backoff_delay(attempt, base_delay, max_delay)
            if on_retry is not None:
                on_retry(attempt + 1, max_attempts, delay, e)
            await asyncio.sleep(delay)

    raise AssertionError("unreachable")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry parameters shared by the source fetchers."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be a positive integer, got {self.max_attempts!r}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay must be non-negative, got {self.base_delay!r}")

    @property
    def delays(self) -> list[float]:
        return backoff_delays(self.max_attempts, self.base_delay, self.max_delay)

    async def run(self, operation: Callable[[], Awaitable[T]], on_retry: RetryHook | None = _log_retry) -> T:
        return await retry_with_backoff(
            operation,
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            on_retry=on_retry,
        )
