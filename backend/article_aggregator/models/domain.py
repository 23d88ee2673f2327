"""
Domain models for the article aggregator.
These are the values passed between pipeline stages.
"""
from dataclasses import dataclass, field, replace
from typing import Optional


@dataclass(frozen=True)
class Item:
    """One ingested content record."""
    title: str
    locator: str  # URL
    source: str
    description: Optional[str] = None

    def with_description(self, description: str) -> "Item":
        """Return a copy of this item carrying a description."""
        return replace(self, description=description)

    @property
    def searchable_text(self) -> str:
        if self.description is not None:
            return f"{self.title} {self.description}"
        return self.title


@dataclass(frozen=True)
class ScoredItem:
    """An item annotated with its relevance to the configured keywords."""
    item: Item
    score: float = 0.0
    matched_keywords: tuple[str, ...] = field(default_factory=tuple)
