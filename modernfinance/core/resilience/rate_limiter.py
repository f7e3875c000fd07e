"""
Provider Rate Limiter

Process-local fixed-window limiter, one instance per external provider.
Callers over quota wait for the window to roll over instead of being
rejected, so the outbound call rate is serialized rather than failed.

Algorithm:
1. Reset the window if ``period`` seconds have passed since it opened
2. If the window still has room, take a slot and return
3. Otherwise sleep until the window closes and go to 1

Waiters queue on an asyncio.Lock, so slots are granted in arrival order.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable

from modernfinance.core.logging.logger import get_logger, log_stage

logger = get_logger(__name__)


class RateLimiter:
    """
    Fixed-window limiter: at most ``max_calls`` acquisitions per ``period``.

    Usage:
        limiter = RateLimiter("alpha_vantage", max_calls=5, period=60)

        async with limiter:
            response = await client.get(...)
    """

    def __init__(
        self,
        name: str,
        max_calls: int,
        period: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_calls < 1:
            raise ValueError("max_calls must be at least 1")
        if period <= 0:
            raise ValueError("period must be positive")

        self.name = name
        self.max_calls = max_calls
        self.period = period
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._window_start = clock()
        self._count = 0

    async def acquire(self, permits: int = 1) -> None:
        """
        Take ``permits`` call slots, waiting for the next window if necessary.

        STAGE-RL.1: Slot acquisition

        Raises:
            ValueError: If ``permits`` can never fit in one window
        """
        if not 1 <= permits <= self.max_calls:
            raise ValueError(f"permits must be between 1 and {self.max_calls}")

        async with self._lock:
            while True:
                now = self._clock()
                if now - self._window_start >= self.period:
                    self._window_start = now
                    self._count = 0

                if self._count + permits <= self.max_calls:
                    self._count += permits
                    return

                wait = self._window_start + self.period - now
                log_stage(
                    logger,
                    "RL.1",
                    "Provider rate limit reached, waiting for next window",
                    level="warning",
                    provider=self.name,
                    wait_seconds=round(wait, 2),
                )
                await self._sleep(wait)

    def remaining(self) -> int:
        """Slots left in the current window."""
        if self._clock() - self._window_start >= self.period:
            return self.max_calls
        return self.max_calls - self._count

    async def __aenter__(self) -> "RateLimiter":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None
