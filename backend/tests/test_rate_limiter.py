"""
Tests for the token bucket rate limiter.
"""

import asyncio

import pytest

from article_aggregator.errors import Cancelled, InvalidConfiguration
from article_aggregator.services.ingestion import CancellationToken, RateLimiter

from conftest import FakeClock


def max_in_window(timestamps: list[float], window: float = 1.0) -> int:
    """Largest number of timestamps inside any half-open window [t, t + window)."""
    ordered = sorted(timestamps)
    best = 0
    for i, start in enumerate(ordered):
        # Small tolerance for float drift in the refill arithmetic
        count = sum(1 for t in ordered[i:] if t < start + window - 1e-9)
        best = max(best, count)
    return best


class TestRateLimiter:
    """Tests for RateLimiter."""

    @pytest.mark.parametrize("rate", [0, -1])
    def test_non_positive_rate_is_rejected(self, rate):
        with pytest.raises(InvalidConfiguration):
            RateLimiter(rate)

    def test_capacity_never_exceeds_rate(self):
        assert RateLimiter(5).capacity == 1.0
        assert RateLimiter(5, burst=3).capacity == 3.0
        assert RateLimiter(5, burst=50).capacity == 5.0

    async def test_first_request_is_immediate(self):
        clock = FakeClock()
        limiter = RateLimiter(2, clock=clock, sleep=clock.sleep)

        await limiter.admit()

        assert clock.sleeps == []

    async def test_sustained_contention_respects_rate(self):
        """Twice as many concurrent callers as the rate never exceed it per second."""
        rate = 4
        clock = FakeClock()
        limiter = RateLimiter(rate, clock=clock, sleep=clock.sleep)
        admitted: list[float] = []

        async def caller():
            await limiter.admit()
            admitted.append(clock())

        await asyncio.gather(*(caller() for _ in range(rate * 2 * 3)))

        assert len(admitted) == rate * 6
        assert max_in_window(admitted) <= rate
        # Continuous refill: the whole batch takes (n - 1) / rate seconds
        assert clock.now == pytest.approx((rate * 6 - 1) / rate)

    async def test_refills_while_idle(self):
        clock = FakeClock()
        limiter = RateLimiter(1, clock=clock, sleep=clock.sleep)

        await limiter.admit()
        clock.now += 5.0
        await limiter.admit()

        assert clock.sleeps == []
        # Bucket is capped, so idle time does not bank extra requests
        assert limiter.status()["available"] == 0.0

    async def test_cancel_while_waiting(self):
        token = CancellationToken()
        limiter = RateLimiter(1)
        await limiter.admit(token)

        waiter = asyncio.create_task(limiter.admit(token))
        await asyncio.sleep(0.05)
        token.cancel()

        with pytest.raises(Cancelled):
            await asyncio.wait_for(waiter, timeout=0.5)

    async def test_cancelled_token_is_not_admitted(self):
        token = CancellationToken()
        token.cancel()

        with pytest.raises(Cancelled):
            await RateLimiter(10).admit(token)

    def test_status(self):
        status = RateLimiter(3).status()

        assert status["requests_per_second"] == 3.0
        assert status["capacity"] == 1.0
        assert status["available"] == 1.0
