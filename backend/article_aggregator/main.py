#!/usr/bin/env python3
"""
Command line entry point for the article aggregator.

Usage:
    # Fetch, score and show the top 10 items
    article-aggregator

    # Override keywords and show more results
    article-aggregator --keyword rust --keyword wasm --top 20

    # Machine-readable output
    article-aggregator --json > ranked.json
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional, Sequence

import structlog

from article_aggregator.config import Settings, load_settings
from article_aggregator.errors import (
    Cancelled,
    InvalidConfiguration,
    NoItemsFound,
)
from article_aggregator.jobs.aggregation import AggregationJob
from article_aggregator.models.domain import ScoredItem

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130

logger = structlog.get_logger()


def configure_logging(level: str = "INFO", json_output: bool = True) -> None:
    """Configure structured logging on top of stdlib logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        stream=sys.stderr,
    )
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


def display_results(ranked: Sequence[ScoredItem], top: int) -> None:
    """Print the top items as a plain text table."""
    print("\n" + "=" * 80)
    print(f"TOP {top} ARTICLES".center(80))
    print("=" * 80)

    for i, scored in enumerate(ranked[:top], start=1):
        print(f"\n{i}. {scored.item.title} [Score: {scored.score:.2f}]")
        print(f"   Source: {scored.item.source}")
        print(f"   URL: {scored.item.locator}")
        if scored.matched_keywords:
            print(f"   Matched: {', '.join(scored.matched_keywords)}")
        print("-" * 80)


def dump_results(ranked: Sequence[ScoredItem], top: int) -> None:
    """Print the top items as JSON."""
    output_data = [
        {
            "rank": i,
            "title": s.item.title,
            "url": s.item.locator,
            "source": s.item.source,
            "score": round(s.score, 4),
            "matched_keywords": list(s.matched_keywords),
        }
        for i, s in enumerate(ranked[:top], start=1)
    ]
    json.dump(output_data, sys.stdout, indent=2)
    print()


async def run(settings: Settings, top: int, as_json: bool) -> int:
    job = AggregationJob(settings)
    job.install_signal_handlers()

    try:
        ranked = await job.run()
    except Cancelled:
        logger.info("Shutdown requested, cleaning up")
        return EXIT_CANCELLED
    except NoItemsFound as e:
        logger.error("No items were successfully fetched", error=str(e))
        return EXIT_FAILURE

    if as_json:
        dump_results(ranked, top)
    else:
        display_results(ranked, top)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fetch articles from several sources and rank them by keyword relevance"
    )
    parser.add_argument(
        "--keyword", "-k",
        action="append",
        dest="keywords",
        help="Keyword to score against (repeatable; replaces configured keywords)",
    )
    parser.add_argument(
        "--top", "-n",
        type=int,
        help="Number of results to show (default: from config, 10)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON",
    )
    parser.add_argument(
        "--log-level",
        help="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    overrides = {}
    if args.keywords:
        overrides["keywords"] = args.keywords
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.top is not None:
        overrides["top_n"] = args.top

    try:
        settings = load_settings(**overrides)
    except InvalidConfiguration as e:
        print(f"Invalid configuration: {e.detail}", file=sys.stderr)
        return EXIT_FAILURE

    configure_logging(settings.log_level, settings.log_json)

    try:
        return asyncio.run(run(settings, settings.top_n, args.json))
    except InvalidConfiguration as e:
        logger.error("Invalid configuration", error=e.detail)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        return EXIT_CANCELLED


if __name__ == "__main__":
    sys.exit(main())
