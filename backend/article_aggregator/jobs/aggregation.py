"""
One aggregation run, end to end.

Stages:
1. Validate keywords and build the matcher (fails fast on bad config)
2. Collect items from all sources concurrently
3. Score items on the scoring thread pool
4. Rank by descending score
"""
import asyncio
import signal
from typing import Optional, Sequence

import httpx
import structlog

from article_aggregator.config import Settings, get_settings
from article_aggregator.errors import Cancelled
from article_aggregator.models.domain import Item, ScoredItem
from article_aggregator.services.ingestion import (
    Aggregator,
    CancellationToken,
    RateLimiter,
    RetryingFetcher,
    SourceCollector,
)
from article_aggregator.services.metrics import Metrics
from article_aggregator.services.ranking import rank
from article_aggregator.services.relevance import RelevanceScorer
from article_aggregator.sources import HackerNewsSource, ItemSource, RustBlogSource

logger = structlog.get_logger(__name__)


class AggregationJob:
    """
    Orchestrates a single fetch-score-rank run.

    The cancellation token and metrics are shared by every component the
    job builds; the rate limiter is shared by every source.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cancel_token: Optional[CancellationToken] = None,
        metrics: Optional[Metrics] = None,
    ):
        self.settings = settings or get_settings()
        self.cancel_token = cancel_token or CancellationToken()
        self.metrics = metrics or Metrics()
        self.aggregator = Aggregator(
            self.cancel_token,
            partial_on_cancel=self.settings.fetcher.partial_on_cancel,
        )

    def install_signal_handlers(self) -> None:
        """Turn SIGINT/SIGTERM into a cancellation request."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform/thread; Ctrl+C then aborts the run
                logger.debug("Signal handler not installed", signal=sig.name)

    def _on_signal(self, sig: signal.Signals) -> None:
        logger.info("Shutdown signal received, initiating graceful shutdown", signal=sig.name)
        self.cancel_token.cancel()

    def create_client(self) -> httpx.AsyncClient:
        http = self.settings.http
        return httpx.AsyncClient(
            timeout=http.timeout_seconds,
            headers={"User-Agent": http.user_agent},
            limits=httpx.Limits(max_keepalive_connections=http.pool_max_idle_per_host),
            follow_redirects=True,
        )

    def build_sources(self, client: httpx.AsyncClient) -> list[ItemSource]:
        return [HackerNewsSource(client), RustBlogSource(client)]

    def build_collectors(self, sources: Sequence[ItemSource]) -> list[SourceCollector]:
        http = self.settings.http
        fetcher = RetryingFetcher(
            RateLimiter(self.settings.rate_limit.requests_per_second),
            self.cancel_token,
            metrics=self.metrics,
            max_attempts=http.retry_attempts,
            per_attempt_timeout=http.timeout_seconds,
            base_backoff=http.retry_delay,
        )
        return [
            SourceCollector(
                source,
                fetcher,
                max_concurrent_requests=self.settings.fetcher.max_concurrent_requests,
                per_source_item_cap=self.settings.fetcher.per_source_item_cap,
                metrics=self.metrics,
            )
            for source in sources
        ]

    async def run(self, sources: Optional[Sequence[ItemSource]] = None) -> list[ScoredItem]:
        """
        Run the pipeline.

        Args:
            sources: Sources to collect from; defaults to Hacker News and the
                Rust blog over a job-owned HTTP client

        Returns:
            Scored items, highest score first

        Raises:
            InvalidConfiguration: Empty or invalid keyword set
            NoItemsFound: No source produced any item
            Cancelled: Cancelled before any source completed
        """
        scorer = RelevanceScorer(
            self.settings.keywords,
            max_workers=self.settings.analyzer.scorer_threads,
        )

        logger.info(
            "Starting article aggregation",
            timeout_seconds=self.settings.http.timeout_seconds,
            max_concurrent=self.settings.fetcher.max_concurrent_requests,
            rate_limit=self.settings.rate_limit.requests_per_second,
            scorer_threads=scorer.max_workers,
        )

        if sources is None:
            async with self.create_client() as client:
                items = await self._collect(self.build_sources(client))
        else:
            items = await self._collect(sources)

        logger.info("Analyzing items with keywords", keywords=scorer.keywords)
        # Scoring runs on its own thread pool; the event loop only waits
        scored = await asyncio.to_thread(scorer.score, items)

        if self.cancel_token.is_cancelled and not self.settings.fetcher.partial_on_cancel:
            logger.info("Shutdown requested after analysis")
            raise Cancelled()

        ranked = rank(scored)
        self.metrics.log_summary()
        logger.info("Aggregation completed", item_count=len(ranked))
        return ranked

    async def _collect(self, sources: Sequence[ItemSource]) -> list[Item]:
        logger.info("Fetching items from all sources", sources=[s.name for s in sources])
        try:
            return await self.aggregator.run(self.build_collectors(sources))
        finally:
            for report in self.aggregator.reports:
                logger.info("Source report", report=str(report))
