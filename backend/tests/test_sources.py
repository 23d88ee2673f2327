"""
Tests for the concrete sources.

These tests use mocked HTTP transports to verify parsing logic
without requiring network access.
"""

import httpx
import pytest

from article_aggregator.errors import ExtractionFailure
from article_aggregator.sources import HackerNewsSource, RustBlogSource
from article_aggregator.sources.rust_blog import BlogEntry, parse_blog_index

HN_ITEMS = {
    101: {"id": 101, "type": "story", "title": "Async Rust in 2024", "url": "https://example.com/async"},
    102: {"id": 102, "type": "story", "title": "Ask HN: Favourite allocator?", "text": "Curious what people use"},
    103: {"id": 103, "type": "story"},
}

# Sample blog index, trimmed from the real page layout
SAMPLE_BLOG_INDEX = """<!DOCTYPE html>
<html>
  <body>
    <table class="post-list">
      <tr><td colspan="2"><b>Posts in 2024</b></td></tr>
      <tr>
        <td>Jul 25</td>
        <td><a href="/2024/07/25/Rust-1.80.0.html">Announcing Rust 1.80.0</a></td>
      </tr>
      <tr>
        <td>Jun 13</td>
        <td><a href="https://blog.rust-lang.org/2024/06/13/Rust-1.79.0.html">Announcing
          Rust 1.79.0</a></td>
      </tr>
      <tr><td colspan="2"><a href="/2023/">Posts in 2023</a></td></tr>
      <tr><td>May 02</td><td><a href="/2024/05/02/empty.html">  </a></td></tr>
      <tr><td>No link here</td></tr>
    </table>
  </body>
</html>
"""


def hn_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.endswith("/topstories.json"):
        return httpx.Response(200, json=[101, 102, 103, "junk"])
    if path.endswith("/item/500.json"):
        return httpx.Response(500, text="upstream error")
    if path.endswith("/item/999.json"):
        return httpx.Response(200, text="not json")
    item_id = int(path.rsplit("/", 1)[-1].split(".")[0])
    return httpx.Response(200, json=HN_ITEMS.get(item_id))


@pytest.fixture
async def hn_source():
    async with httpx.AsyncClient(transport=httpx.MockTransport(hn_handler)) as client:
        yield HackerNewsSource(client)


class TestHackerNewsSource:
    """Tests for the Hacker News source."""

    async def test_list_targets(self, hn_source):
        assert await hn_source.list_targets() == [101, 102, 103]

    async def test_story_with_url(self, hn_source):
        item = await hn_source.fetch_one(101)

        assert item.title == "Async Rust in 2024"
        assert item.locator == "https://example.com/async"
        assert item.source == "HackerNews"
        assert item.description is None

    async def test_text_post_falls_back_to_discussion(self, hn_source):
        item = await hn_source.fetch_one(102)

        assert item.locator == "https://news.ycombinator.com/item?id=102"
        assert item.description == "Curious what people use"

    async def test_item_without_title(self, hn_source):
        with pytest.raises(ExtractionFailure):
            await hn_source.fetch_one(103)

    async def test_http_error_raises(self, hn_source):
        with pytest.raises(httpx.HTTPStatusError):
            await hn_source.fetch_one(500)

    async def test_invalid_json(self, hn_source):
        with pytest.raises(ExtractionFailure):
            await hn_source.fetch_one(999)

    async def test_describe_uses_item_url(self, hn_source):
        assert hn_source.describe(101).endswith("/item/101.json")


class TestRustBlogSource:
    """Tests for the Rust blog source."""

    def test_parse_blog_index(self):
        entries = parse_blog_index(SAMPLE_BLOG_INDEX, "https://blog.rust-lang.org/")

        assert entries == [
            BlogEntry(
                title="Announcing Rust 1.80.0",
                url="https://blog.rust-lang.org/2024/07/25/Rust-1.80.0.html",
            ),
            BlogEntry(
                title="Announcing Rust 1.79.0",
                url="https://blog.rust-lang.org/2024/06/13/Rust-1.79.0.html",
            ),
        ]

    def test_parse_empty_page(self):
        assert parse_blog_index("<html><body></body></html>", "https://blog.rust-lang.org/") == []

    async def test_list_and_fetch(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text=SAMPLE_BLOG_INDEX)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            source = RustBlogSource(client)
            entries = await source.list_targets()
            item = await source.fetch_one(entries[0])

        assert len(entries) == 2
        assert item.title == "Announcing Rust 1.80.0"
        assert item.source == "Rust Blog"
        assert source.describe(entries[0]) == item.locator

    async def test_http_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await RustBlogSource(client).list_targets()
