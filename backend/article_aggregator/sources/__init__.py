"""
Item source adapters for the aggregator.
"""
from article_aggregator.sources.base import ItemSource
from article_aggregator.sources.hackernews import HackerNewsSource
from article_aggregator.sources.rust_blog import RustBlogSource

__all__ = [
    "ItemSource",
    "HackerNewsSource",
    "RustBlogSource",
]
