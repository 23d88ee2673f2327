"""
Rate limiting for outgoing requests.

One limiter is shared by every request of a run, across all sources.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

import structlog

from article_aggregator.errors import InvalidConfiguration
from article_aggregator.services.ingestion.cancellation import CancellationToken

logger = structlog.get_logger(__name__)


class RateLimiter:
    """
    Token bucket rate limiter.

    Features:
    - Continuous refill at `requests_per_second`
    - Async-safe with a lock; waiters are admitted in lock order
    - Bucket capacity derived from the rate (one token by default, so
      admissions are spaced 1/rate apart)
    - Cancellable waits
    """

    def __init__(
        self,
        requests_per_second: float,
        burst: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if requests_per_second <= 0:
            raise InvalidConfiguration("requests_per_second must be greater than 0")

        self.rate = float(requests_per_second)
        # Never more than one second's worth of requests in the bucket
        self.capacity = float(min(max(burst or 1, 1), max(self.rate, 1.0)))

        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._tokens = self.capacity
        self._updated = clock()

    def _refill(self, now: float) -> None:
        elapsed = max(now - self._updated, 0.0)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
        self._updated = now

    async def admit(self, cancel_token: Optional[CancellationToken] = None) -> None:
        """
        Wait until one request may proceed.

        Args:
            cancel_token: Raises `Cancelled` instead of admitting once set
        """
        async with self._lock:
            while True:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()

                self._refill(self._clock())
                if self._tokens >= 1.0:
                    self._tokens -= 1.0
                    return

                wait_seconds = (1.0 - self._tokens) / self.rate
                logger.debug("Rate limited, waiting", wait_seconds=round(wait_seconds, 3))

                if cancel_token is None:
                    await self._sleep(wait_seconds)
                else:
                    await self._wait_or_cancel(wait_seconds, cancel_token)

    async def _wait_or_cancel(self, seconds: float, cancel_token: CancellationToken) -> None:
        sleeper = asyncio.ensure_future(self._sleep(seconds))
        canceller = asyncio.ensure_future(cancel_token.wait())
        try:
            await asyncio.wait({sleeper, canceller}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, canceller):
                task.cancel()

    def status(self) -> dict:
        """Snapshot of the bucket, without refilling."""
        return {
            "requests_per_second": self.rate,
            "capacity": self.capacity,
            "available": round(self._tokens, 3),
        }
