"""
Ingestion services for the article aggregator.

This module provides the fetch pipeline shared by every source:
- Token bucket rate limiting
- Retries with exponential backoff and timeouts
- Bounded-concurrency collection per source
- Concurrent aggregation across sources
- Cooperative cancellation
"""

from article_aggregator.services.ingestion.aggregator import Aggregator, SourceReport
from article_aggregator.services.ingestion.cancellation import CancellationToken
from article_aggregator.services.ingestion.collector import SourceCollector
from article_aggregator.services.ingestion.rate_limiter import RateLimiter
from article_aggregator.services.ingestion.retry import RetryingFetcher, backoff_delay

__all__ = [
    "Aggregator",
    "SourceReport",
    "CancellationToken",
    "SourceCollector",
    "RateLimiter",
    "RetryingFetcher",
    "backoff_delay",
]
