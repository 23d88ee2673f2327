"""
Rust blog adapter.

The blog has no feed-per-post API: the index page lists every post in a
table, so the listing step downloads and parses it once and each target is
an already parsed entry.
"""
import asyncio
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from article_aggregator.models.domain import Item
from article_aggregator.sources.base import ItemSource

SOURCE_NAME = "Rust Blog"


@dataclass(frozen=True)
class BlogEntry:
    title: str
    url: str


def parse_blog_index(html: str, base_url: str) -> list[BlogEntry]:
    """Extract post links from the blog index table."""
    soup = BeautifulSoup(html, "html.parser")
    entries = []

    for row in soup.select("table tr"):
        link = row.find("a", href=True)
        if link is None:
            continue

        title = " ".join(link.get_text(" ").split())
        # Year headers ("Posts in 2024") are rows too
        if not title or title.startswith("Posts in"):
            continue

        entries.append(BlogEntry(title=title, url=urljoin(base_url, link["href"])))

    return entries


class RustBlogSource(ItemSource):
    """Posts from the official Rust blog index."""

    BLOG_URL = "https://blog.rust-lang.org/"
    # Entries are fully parsed by the listing step
    fetch_is_local = True

    def __init__(self, client: httpx.AsyncClient, blog_url: Optional[str] = None):
        self.client = client
        self.blog_url = blog_url or self.BLOG_URL

    @property
    def name(self) -> str:
        return SOURCE_NAME

    async def list_targets(self) -> list[BlogEntry]:
        response = await self.client.get(self.blog_url)
        response.raise_for_status()
        # Parsing a large index is CPU work; keep it off the event loop
        return await asyncio.to_thread(parse_blog_index, response.text, self.blog_url)

    async def fetch_one(self, target: BlogEntry) -> Item:
        return Item(title=target.title, locator=target.url, source=self.name)

    def describe(self, target: BlogEntry) -> str:
        return target.url
