"""
Services layer - core logic of the article aggregator.

1. Ingestion (ingestion/):
   - Token bucket rate limiting shared by every request
   - Retries with exponential backoff and per-attempt timeouts
   - Bounded fan-out per source, concurrent sources, cooperative cancellation

2. Relevance (relevance.py):
   - One Aho-Corasick automaton per run
   - Logarithmic per-keyword scoring, parallel across items

3. Ranking (ranking.py):
   - Stable descending sort by score

4. Metrics (metrics.py):
   - Request and item counters for the run summary
"""

from article_aggregator.services.metrics import Metrics, NullMetrics
from article_aggregator.services.ranking import rank
from article_aggregator.services.relevance import (
    KeywordMatcher,
    RelevanceScorer,
    relevance_score,
    score_items,
)

__all__ = [
    "Metrics",
    "NullMetrics",
    "rank",
    "KeywordMatcher",
    "RelevanceScorer",
    "relevance_score",
    "score_items",
]
