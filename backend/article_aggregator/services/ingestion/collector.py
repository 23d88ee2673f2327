"""
Per-source collection: list targets, fan out bounded fetches, keep what
succeeds.
"""

import asyncio
from typing import Any, Iterator, Optional

import structlog

from article_aggregator.errors import (
    AggregatorError,
    Cancelled,
    ExtractionFailure,
    InvalidConfiguration,
    NoItemsFound,
)
from article_aggregator.models.domain import Item
from article_aggregator.services.ingestion.retry import RetryingFetcher
from article_aggregator.services.metrics import Metrics, NullMetrics
from article_aggregator.sources.base import ItemSource

logger = structlog.get_logger(__name__)


class SourceCollector:
    """
    Collects items from one source.

    A fixed pool of workers drains the target list, so at most
    `max_concurrent_requests` fetches are in flight at once. Items are
    returned in completion order. A failing target is logged and skipped;
    only a failed listing step fails the whole source.
    """

    def __init__(
        self,
        source: ItemSource,
        fetcher: RetryingFetcher,
        max_concurrent_requests: int = 10,
        per_source_item_cap: int = 30,
        metrics: Optional[Metrics] = None,
    ):
        if max_concurrent_requests <= 0:
            raise InvalidConfiguration("max_concurrent_requests must be greater than 0")
        if per_source_item_cap <= 0:
            raise InvalidConfiguration("per_source_item_cap must be greater than 0")

        self.source = source
        self.fetcher = fetcher
        self.max_concurrent_requests = max_concurrent_requests
        self.per_source_item_cap = per_source_item_cap
        self.metrics = metrics or NullMetrics()

    @property
    def name(self) -> str:
        return self.source.name

    async def collect(self) -> list[Item]:
        """
        Fetch every reachable item from the source.

        Raises:
            Cancelled: Cancellation was observed during the run
            NoItemsFound: Nothing could be fetched
            NetworkFailure, FetchTimeout: The listing step failed
        """
        cancel_token = self.fetcher.cancel_token
        cancel_token.raise_if_cancelled()

        logger.info("Fetching targets", source=self.name)
        targets = await self.fetcher.execute(
            self.source.list_targets,
            target=f"{self.name}:listing",
        )
        targets = list(targets)[: self.per_source_item_cap]
        logger.info("Fetched targets", source=self.name, target_count=len(targets))

        items: list[Item] = []
        pending = iter(targets)
        workers = min(self.max_concurrent_requests, len(targets))
        await asyncio.gather(*(self._worker(pending, items) for _ in range(workers)))

        if cancel_token.is_cancelled:
            logger.info("Collection cancelled", source=self.name, item_count=len(items))
            raise Cancelled()

        if not items:
            raise NoItemsFound(self.name)

        logger.info("Collected items", source=self.name, item_count=len(items))
        return items

    async def _worker(self, pending: Iterator[Any], items: list[Item]) -> None:
        # Workers share one iterator, so every target is taken exactly once
        for target in pending:
            if self.fetcher.cancel_token.is_cancelled:
                return

            label = self.source.describe(target)
            try:
                item = await self._fetch(target, label)
            except AggregatorError as e:
                if isinstance(e, Cancelled) and self.fetcher.cancel_token.is_cancelled:
                    return
                logger.warning("Failed to fetch item", source=self.name, target=label, error=str(e))
                self.metrics.item_failed()
                continue

            items.append(item)
            self.metrics.item_fetched()

    async def _fetch(self, target: Any, label: str) -> Item:
        if not self.source.fetch_is_local:
            return await self.fetcher.execute(
                lambda: self.source.fetch_one(target),
                target=label,
            )

        # No request is made, so no rate limit token or retry
        try:
            return await self.source.fetch_one(target)
        except AggregatorError:
            raise
        except Exception as e:
            raise ExtractionFailure(self.name, e) from e
