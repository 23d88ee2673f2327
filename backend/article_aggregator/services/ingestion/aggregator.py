"""
Source Aggregator - Runs every source collector and merges the results.

Sources run concurrently and fail independently. The run only fails when
no source produced anything, when configuration is invalid, or when it
was cancelled before any source finished.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Optional, Sequence
from urllib.parse import parse_qs, urlparse

import structlog

from article_aggregator.errors import (
    Cancelled,
    InvalidConfiguration,
    NoItemsFound,
)
from article_aggregator.models.domain import Item
from article_aggregator.services.ingestion.cancellation import CancellationToken
from article_aggregator.services.ingestion.collector import SourceCollector

logger = structlog.get_logger(__name__)

TRACKING_PARAMS = {
    'utm_source', 'utm_medium', 'utm_campaign', 'utm_content', 'utm_term',
    'ref', 'via', 'fbclid', 'gclid',
}


@dataclass
class SourceReport:
    """Outcome of collecting from one source."""
    source: str
    items_fetched: int = 0
    error: Optional[str] = None
    cancelled: bool = False
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None and not self.cancelled

    def __str__(self) -> str:
        if self.cancelled:
            status = "cancelled"
        elif self.success:
            status = "ok"
        else:
            status = f"failed ({self.error})"
        return (
            f"{self.source}: {status}, items={self.items_fetched}, "
            f"time={self.duration_seconds:.1f}s"
        )


class Aggregator:
    """
    Aggregates items from multiple sources.

    Features:
    - Concurrent collection from all sources
    - Per-source failure isolation with a report per source
    - Explicit cancellation policy (`partial_on_cancel`)
    - Locator-based deduplication across sources
    """

    def __init__(
        self,
        cancel_token: CancellationToken,
        partial_on_cancel: bool = True,
        deduplicate: bool = True,
    ):
        """
        Args:
            cancel_token: Shared cancellation signal of the run
            partial_on_cancel: On cancellation, return the items of sources
                that had already completed instead of raising `Cancelled`
            deduplicate: Drop items whose normalized locator was already seen
        """
        self.cancel_token = cancel_token
        self.partial_on_cancel = partial_on_cancel
        self.deduplicate = deduplicate
        self.reports: list[SourceReport] = []

    async def run(self, collectors: Sequence[SourceCollector]) -> list[Item]:
        """
        Collect from all sources concurrently.

        Returns:
            Merged items of every source that succeeded

        Raises:
            Cancelled: Cancelled and no source had completed (or partial
                results are disabled)
            InvalidConfiguration: A collector rejected its configuration
            NoItemsFound: Every source failed or came back empty
        """
        results = await asyncio.gather(
            *(self._collect_from(collector) for collector in collectors),
            return_exceptions=True,
        )

        all_items: list[Item] = []
        self.reports = []
        completed = 0

        for collector, result in zip(collectors, results):
            if isinstance(result, BaseException):
                self.reports.append(self._failure_report(collector.name, result))
                continue

            items, report = result
            completed += 1
            all_items.extend(items)
            self.reports.append(report)

        for result in results:
            if isinstance(result, InvalidConfiguration):
                raise result

        if self.cancel_token.is_cancelled:
            if not (self.partial_on_cancel and completed):
                logger.info("Aggregation cancelled", completed_sources=completed)
                raise Cancelled()
            logger.warning(
                "Cancelled, returning partial result",
                completed_sources=completed,
                item_count=len(all_items),
            )

        if not all_items:
            logger.error("No items were successfully fetched")
            raise NoItemsFound("all sources")

        merged = self._deduplicate(all_items) if self.deduplicate else all_items
        logger.info(
            "Aggregated items",
            item_count=len(all_items),
            after_dedup=len(merged),
            sources=len(collectors),
        )
        return merged

    async def _collect_from(
        self,
        collector: SourceCollector,
    ) -> tuple[list[Item], SourceReport]:
        """Collect from a single source with timing."""
        start_time = time.monotonic()
        items = await collector.collect()
        return items, SourceReport(
            source=collector.name,
            items_fetched=len(items),
            duration_seconds=time.monotonic() - start_time,
        )

    def _failure_report(self, source: str, error: BaseException) -> SourceReport:
        if isinstance(error, Cancelled):
            logger.info("Source cancelled", source=source)
            return SourceReport(source=source, cancelled=True)
        if isinstance(error, NoItemsFound):
            logger.warning("Source returned no items", source=source)
        else:
            logger.error("Source failed", source=source, error=str(error))
        return SourceReport(source=source, error=str(error) or type(error).__name__)

    def _deduplicate(self, items: list[Item]) -> list[Item]:
        """Keep the first item for each normalized locator."""
        seen: set[str] = set()
        unique = []
        for item in items:
            key = self._normalize_url(item.locator)
            if key in seen:
                continue
            seen.add(key)
            unique.append(item)
        return unique

    def _normalize_url(self, url: str) -> str:
        """Normalize URL for deduplication."""
        parsed = urlparse(url)

        params = parse_qs(parsed.query)
        clean_params = {
            k: v for k, v in params.items()
            if k.lower() not in TRACKING_PARAMS
        }

        # Rebuild URL without tracking; only scheme and host are case-insensitive
        clean_url = (
            f"{parsed.scheme.lower()}://{parsed.netloc.lower()}"
            f"{parsed.path.rstrip('/')}"
        )
        if clean_params:
            clean_url += "?" + "&".join(
                f"{k}={v[0]}" for k, v in sorted(clean_params.items())
            )

        return clean_url
