"""
Base interface for item sources.
All sources (Hacker News, Rust blog, etc.) implement this interface.
"""
from abc import ABC, abstractmethod
from typing import Any, Sequence

from article_aggregator.models.domain import Item


class ItemSource(ABC):
    """Abstract base class for item sources."""

    # True when `fetch_one` builds the item from the target without network I/O
    fetch_is_local: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of the source."""
        pass

    @abstractmethod
    async def list_targets(self) -> Sequence[Any]:
        """
        Discover the work list for this source.

        Called through the retrying fetcher, so it should perform exactly one
        network round trip and raise on failure.

        Returns:
            Ordered fetch targets (ids, parsed entries, links)
        """
        pass

    @abstractmethod
    async def fetch_one(self, target: Any) -> Item:
        """
        Fetch a single target and turn it into an Item.

        Args:
            target: One element returned by `list_targets`

        Returns:
            The extracted item

        Raises:
            ExtractionFailure: The payload could not be turned into an item
        """
        pass

    def describe(self, target: Any) -> str:
        """Label for a target in logs and errors."""
        return f"{self.name}:{target}"
