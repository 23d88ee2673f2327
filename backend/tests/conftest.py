"""
Shared fakes for the pipeline tests.

Nothing here touches the network: sources are in-memory and time is
either faked or kept in the millisecond range.
"""

import asyncio
from typing import Any, Callable, Iterable, Optional

import pytest

from article_aggregator.models.domain import Item
from article_aggregator.services.ingestion import (
    CancellationToken,
    RateLimiter,
    RetryingFetcher,
)
from article_aggregator.services.metrics import Metrics
from article_aggregator.sources.base import ItemSource


class FakeClock:
    """Monotonic clock that only moves when something sleeps on it."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class FakeSource(ItemSource):
    """In-memory source; targets listed in `fail` always raise."""

    def __init__(
        self,
        name: str,
        targets: Iterable[Any],
        fail: Iterable[Any] = (),
        delay: float = 0.0,
        list_error: Optional[Exception] = None,
        on_fetch: Optional[Callable[[Any], None]] = None,
    ):
        self._name = name
        self.targets = list(targets)
        self.fail = set(fail)
        self.delay = delay
        self.list_error = list_error
        self.on_fetch = on_fetch

        self.list_calls = 0
        self.fetched: list[Any] = []
        self.in_flight = 0
        self.max_in_flight = 0

    @property
    def name(self) -> str:
        return self._name

    async def list_targets(self) -> list[Any]:
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        return list(self.targets)

    async def fetch_one(self, target: Any) -> Item:
        self.fetched.append(target)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.on_fetch is not None:
                self.on_fetch(target)
            if target in self.fail:
                raise ValueError(f"target {target} is broken")
            return make_item(self._name, target)
        finally:
            self.in_flight -= 1


def make_item(source: str, target: Any, title: Optional[str] = None) -> Item:
    return Item(
        title=title or f"{source} item {target}",
        locator=f"https://example.com/{source}/{target}",
        source=source,
    )


@pytest.fixture
def cancel_token() -> CancellationToken:
    return CancellationToken()


@pytest.fixture
def metrics() -> Metrics:
    return Metrics()


@pytest.fixture
def make_fetcher(cancel_token, metrics):
    """Factory for fetchers with a generous rate limit and no backoff delay."""

    def factory(max_attempts: int = 2, timeout: float = 1.0, base_backoff: float = 0.0, **kwargs):
        return RetryingFetcher(
            RateLimiter(1000, burst=1000),
            cancel_token,
            metrics=metrics,
            max_attempts=max_attempts,
            per_attempt_timeout=timeout,
            base_backoff=base_backoff,
            **kwargs,
        )

    return factory
