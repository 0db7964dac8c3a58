"""Request pacing for third-party APIs.

A small token bucket: each request takes one token, tokens refill at a
fixed rate, and `acquire()` sleeps until a token is available. With the
default capacity of one this spaces requests by at least `interval`
seconds, which is what the archive API expects from a free client.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """Async token bucket.

    Args:
        interval: Seconds needed to refill one token (0 disables pacing)
        capacity: Maximum burst size
        clock: Monotonic clock, injectable for tests
        sleep: Async sleep function, injectable for tests
    """

    def __init__(
        self,
        interval: float = 0.4,
        capacity: int = 1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if interval < 0:
            raise ValueError("interval must be >= 0")
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.interval = interval
        self.capacity = capacity
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(capacity)
        self._updated = clock()
        self.total_wait = 0.0

    def _refill(self) -> None:
        now = self._clock()
        if self.interval > 0:
            elapsed = now - self._updated
            self._tokens = min(self.capacity, self._tokens + elapsed / self.interval)
        else:
            self._tokens = float(self.capacity)
        self._updated = now

    def wait_time(self) -> float:
        """Seconds until a token is available (0 if one is ready now)."""
        self._refill()
        if self._tokens >= 1:
            return 0.0
        return (1 - self._tokens) * self.interval

    async def acquire(self) -> float:
        """Take one token, sleeping first if none is available.

        Returns:
            Seconds spent waiting
        """
        delay = self.wait_time()
        if delay > 0:
            logger.debug(f"Rate limiter sleeping {delay:.3f}s")
            await self._sleep(delay)
            self.total_wait += delay
            self._refill()
        # Sleep may undershoot by a few microseconds
        self._tokens = max(0.0, self._tokens - 1)
        return delay

    def penalize(self, seconds: float) -> None:
        """Push the next token out after the server asked us to back off."""
        if seconds <= 0:
            return
        self._refill()
        self._tokens = min(self._tokens, 0.0)
        self._updated = self._clock() + seconds
