"""
Ranking of scored items.
"""
from operator import attrgetter
from typing import Iterable

from article_aggregator.models.domain import ScoredItem


def rank(scored_items: Iterable[ScoredItem]) -> list[ScoredItem]:
    """
    Order items by descending score.

    Items with equal scores keep their input order. `sorted` is guaranteed
    stable, including with `reverse=True`, and scores are always finite, so
    the ordering is total apart from genuine ties.
    """
    return sorted(scored_items, key=attrgetter("score"), reverse=True)
