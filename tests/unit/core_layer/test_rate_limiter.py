"""
Unit Tests for RateLimiter

Tests fixed-window accounting and that callers over quota wait for the
next window instead of failing.
"""

import pytest

from modernfinance.core.resilience.rate_limiter import RateLimiter
from tests.test_fixtures.cache_factory import FakeClock


class RecordingSleep:
    """Fake asyncio.sleep that advances the fake clock."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.waits: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)
        self.clock.advance(seconds)


@pytest.fixture
def limiter_clock():
    return FakeClock(start=0.0)


@pytest.fixture
def sleep(limiter_clock):
    return RecordingSleep(limiter_clock)


@pytest.fixture
def limiter(limiter_clock, sleep):
    return RateLimiter("alpha_vantage", max_calls=5, period=60.0, clock=limiter_clock, sleep=sleep)


@pytest.mark.unit
class TestRateLimiter:
    @pytest.mark.asyncio
    async def test_calls_within_quota_do_not_wait(self, limiter, sleep):
        for _ in range(5):
            await limiter.acquire()

        assert sleep.waits == []
        assert limiter.remaining() == 0

    @pytest.mark.asyncio
    async def test_call_over_quota_waits_for_next_window(self, limiter, limiter_clock, sleep):
        for _ in range(5):
            await limiter.acquire()
        limiter_clock.advance(20.0)

        await limiter.acquire()

        assert sleep.waits == [pytest.approx(40.0)]
        assert limiter.remaining() == 4

    @pytest.mark.asyncio
    async def test_window_resets_after_period(self, limiter, limiter_clock, sleep):
        for _ in range(5):
            await limiter.acquire()
        limiter_clock.advance(60.0)

        assert limiter.remaining() == 5
        await limiter.acquire()
        assert sleep.waits == []

    @pytest.mark.asyncio
    async def test_permits_consume_several_slots(self, limiter, sleep):
        await limiter.acquire(2)
        await limiter.acquire(2)
        assert limiter.remaining() == 1

        await limiter.acquire(2)

        assert len(sleep.waits) == 1
        assert limiter.remaining() == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("permits", [0, 6])
    async def test_permits_outside_window_capacity_rejected(self, limiter, permits):
        with pytest.raises(ValueError):
            await limiter.acquire(permits)

    @pytest.mark.asyncio
    async def test_async_context_manager_takes_one_slot(self, limiter):
        async with limiter:
            pass

        assert limiter.remaining() == 4

    @pytest.mark.parametrize("max_calls, period", [(0, 60.0), (5, 0.0)])
    def test_invalid_configuration(self, max_calls, period):
        with pytest.raises(ValueError):
            RateLimiter("x", max_calls=max_calls, period=period)
