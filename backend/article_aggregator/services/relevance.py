"""
Relevance scoring against a fixed keyword set.

One Aho-Corasick automaton is built per run and shared read-only by every
scoring thread, so the cost per item is linear in its text length no matter
how many keywords are configured.

Score for an item:
    score = sum over matched keywords of (1 + ln(count))

Repeating one keyword gives diminishing returns; matching more distinct
keywords adds a full point each.
"""
import math
import os
import string
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

import ahocorasick
import structlog

from article_aggregator.errors import InvalidConfiguration
from article_aggregator.models.domain import Item, ScoredItem

logger = structlog.get_logger(__name__)

# Resource ceiling on automaton size; keywords past this are not compiled
MAX_KEYWORDS = 20

_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


def fold_case(text: str) -> str:
    """ASCII-only lowercase; non-ASCII characters are left untouched."""
    return text.translate(_ASCII_LOWER)


def relevance_score(counts: Sequence[int]) -> float:
    """Combine per-keyword occurrence counts into a finite, non-negative score."""
    score = math.fsum(1.0 + math.log(count) for count in counts if count > 0)
    if not math.isfinite(score) or score < 0:
        return 0.0
    return score


def prepare_keywords(keywords: Sequence[str]) -> list[str]:
    """Validate a keyword set and apply the size ceiling."""
    keywords = list(keywords)
    if not keywords:
        raise InvalidConfiguration("no keywords configured")
    if any(not isinstance(k, str) or not k for k in keywords):
        raise InvalidConfiguration("keywords must be non-empty strings")
    if len(set(keywords)) != len(keywords):
        raise InvalidConfiguration("keywords must be distinct")

    if len(keywords) > MAX_KEYWORDS:
        logger.warning(
            "Keyword set exceeds limit, extra keywords ignored",
            limit=MAX_KEYWORDS,
            ignored=keywords[MAX_KEYWORDS:],
        )
        keywords = keywords[:MAX_KEYWORDS]
    return keywords


class KeywordMatcher:
    """
    Multi-pattern matcher over a keyword set.

    Pattern ids are keyword positions, `0 .. len(keywords) - 1`. Keywords
    that only differ in ASCII case share one automaton entry and are
    counted together.

    Matches are non-overlapping: scanning resumes after the end of each
    reported match, and the earliest-ending match wins. "rustacean" against
    `["rust", "rustacean"]` counts one "rust" and no "rustacean".
    """

    def __init__(self, keywords: Sequence[str]):
        self.keywords = tuple(keywords)

        by_pattern: dict[str, list[int]] = {}
        for pattern_id, keyword in enumerate(self.keywords):
            by_pattern.setdefault(fold_case(keyword), []).append(pattern_id)

        self._automaton = ahocorasick.Automaton()
        for pattern, pattern_ids in by_pattern.items():
            self._automaton.add_word(pattern, (len(pattern), tuple(pattern_ids)))
        self._automaton.make_automaton()

    def count(self, text: str) -> list[int]:
        """Non-overlapping occurrences of each keyword in `text`."""
        counts = [0] * len(self.keywords)
        resume_at = 0
        # iter() yields every match ordered by end position
        for end, (length, pattern_ids) in self._automaton.iter(fold_case(text)):
            start = end - length + 1
            if start < resume_at:
                continue
            resume_at = end + 1
            for pattern_id in pattern_ids:
                counts[pattern_id] += 1
        return counts


class RelevanceScorer:
    """Scores items in parallel on a dedicated thread pool."""

    def __init__(self, keywords: Sequence[str], max_workers: Optional[int] = None):
        self.keywords = prepare_keywords(keywords)
        self.matcher = KeywordMatcher(self.keywords)
        self.max_workers = max_workers or os.cpu_count() or 1
        if self.max_workers <= 0:
            raise InvalidConfiguration("scorer_threads must be greater than 0")

    def score_item(self, item: Item) -> ScoredItem:
        counts = self.matcher.count(item.searchable_text)
        matched = tuple(
            keyword for keyword, count in zip(self.keywords, counts) if count > 0
        )
        return ScoredItem(item=item, score=relevance_score(counts), matched_keywords=matched)

    def score(self, items: Sequence[Item]) -> list[ScoredItem]:
        """Score every item; output order matches input order."""
        if not items:
            return []

        logger.info("Scoring items", item_count=len(items), keywords=self.keywords)
        with ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="scorer",
        ) as pool:
            return list(pool.map(self.score_item, items))


def score_items(
    items: Sequence[Item],
    keywords: Sequence[str],
    max_workers: Optional[int] = None,
) -> list[ScoredItem]:
    """Build a matcher for `keywords` once and score all `items` with it."""
    return RelevanceScorer(keywords, max_workers=max_workers).score(items)
