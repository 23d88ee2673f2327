"""
Hacker News adapter.
API docs: https://github.com/HackerNews/API
"""
from typing import Any, Optional

import httpx

from article_aggregator.errors import ExtractionFailure
from article_aggregator.models.domain import Item
from article_aggregator.sources.base import ItemSource

SOURCE_NAME = "HackerNews"


class HackerNewsSource(ItemSource):
    """Top stories from the Hacker News Firebase API."""

    BASE_URL = "https://hacker-news.firebaseio.com/v0"
    DISCUSSION_URL = "https://news.ycombinator.com/item?id={id}"

    def __init__(self, client: httpx.AsyncClient, base_url: Optional[str] = None):
        self.client = client
        self.base_url = (base_url or self.BASE_URL).rstrip("/")

    @property
    def name(self) -> str:
        return SOURCE_NAME

    async def _get_json(self, path: str) -> Any:
        response = await self.client.get(f"{self.base_url}/{path}")
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as e:
            raise ExtractionFailure(self.name, e) from e

    async def list_targets(self) -> list[int]:
        """Fetch the current top story ids, best first."""
        data = await self._get_json("topstories.json")
        if not isinstance(data, list):
            raise ExtractionFailure(self.name, "topstories payload is not a list")
        return [story_id for story_id in data if isinstance(story_id, int)]

    async def fetch_one(self, target: int) -> Item:
        data = await self._get_json(f"item/{target}.json")
        return self._parse_item(data)

    def _parse_item(self, data: Any) -> Item:
        """Parse a Hacker News item into our Item model."""
        if not isinstance(data, dict):
            raise ExtractionFailure(self.name, "item payload is not an object")

        title = data.get("title")
        if not title:
            raise ExtractionFailure(self.name, f"item {data.get('id')} has no title")

        # Ask HN and similar posts have no external link
        url = data.get("url") or self.DISCUSSION_URL.format(id=data.get("id"))

        item = Item(title=title, locator=url, source=self.name)
        text = data.get("text")
        if text:
            item = item.with_description(text)
        return item

    def describe(self, target: Any) -> str:
        return f"{self.base_url}/item/{target}.json"
