"""
Request-rate governor for searches.

Design:
- Fixed quota window (default 10 requests per 60 s). When the window is
  exhausted, callers fail fast with RateLimitExceeded carrying the wait time
  instead of queueing.
- Independent concurrency cap (default 5 in flight). Excess callers queue on
  an asyncio.Semaphore in submission order; they are never rejected.
- The window counter is incremented synchronously before the first await,
  so concurrent callers cannot race past the quota.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, TypeVar

from src.search.errors import RateLimitExceeded
from src.utils.logging import get_logger

if TYPE_CHECKING:
    from src.utils.config import RateLimitConfig

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class RateLimiterWindow:
    """Quota window state."""

    window_start: float
    request_count: int = 0
    max_requests: int = 10
    window_seconds: float = 60.0

    def expired(self, now: float) -> bool:
        return now - self.window_start >= self.window_seconds

    def remaining_seconds(self, now: float) -> float:
        return max(0.0, self.window_seconds - (now - self.window_start))


class RateLimiter:
    """Quota window plus in-flight concurrency cap.

    Example:
        limiter = RateLimiter(max_requests=10, max_concurrent=5)
        response = await limiter.execute(lambda: run_search(query))
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        max_concurrent: int = 5,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize rate limiter.

        Args:
            max_requests: Tasks admitted per window.
            window_seconds: Window duration.
            max_concurrent: Maximum simultaneously running tasks.
            clock: Monotonic clock used for window arithmetic.
            wall_clock: Epoch clock used only for the reported reset_time.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self._clock = clock
        self._wall_clock = wall_clock
        self._window = RateLimiterWindow(
            window_start=clock(),
            max_requests=max_requests,
            window_seconds=window_seconds,
        )
        self._max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._in_flight = 0

        logger.debug(
            "RateLimiter initialized",
            max_requests=max_requests,
            window_seconds=window_seconds,
            max_concurrent=max_concurrent,
        )

    @classmethod
    def from_config(cls, config: RateLimitConfig) -> RateLimiter:
        return cls(
            max_requests=config.max_requests_per_window,
            window_seconds=config.window_seconds,
            max_concurrent=config.max_concurrent,
        )

    async def execute(self, task: Callable[[], Awaitable[T]]) -> T:
        """Run task if the current window still has quota.

        Args:
            task: Zero-argument callable returning an awaitable.

        Returns:
            The task's result.

        Raises:
            RateLimitExceeded: If the window's quota is exhausted.
        """
        now = self._clock()
        window = self._window

        if window.expired(now):
            window.window_start = now
            window.request_count = 0

        if window.request_count >= window.max_requests:
            wait_seconds = window.remaining_seconds(now)
            logger.warning(
                "Rate limit exceeded",
                request_count=window.request_count,
                max_requests=window.max_requests,
                wait_seconds=round(wait_seconds, 1),
            )
            raise RateLimitExceeded(wait_seconds)

        # Count before the first suspension point
        window.request_count += 1

        async with self._semaphore:
            self._in_flight += 1
            try:
                return await task()
            finally:
                self._in_flight -= 1

    def get_status(self) -> dict[str, Any]:
        """Quota window state.

        Returns:
            Dict with request_count, max_requests and reset_time
            (epoch milliseconds at which the window rolls over).
        """
        window = self._window
        remaining = window.remaining_seconds(self._clock())
        return {
            "request_count": window.request_count,
            "max_requests": window.max_requests,
            "reset_time": int((self._wall_clock() + remaining) * 1000),
        }

    def get_stats(self) -> dict[str, Any]:
        """Status plus concurrency figures for monitoring."""
        return {
            **self.get_status(),
            "in_flight": self._in_flight,
            "max_concurrent": self._max_concurrent,
            "window_seconds": self._window.window_seconds,
        }

