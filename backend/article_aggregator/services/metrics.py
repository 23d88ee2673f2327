"""
In-process run metrics.

Events are fire-and-forget: recording never blocks on I/O and never raises
into the pipeline.
"""
import threading

import structlog

logger = structlog.get_logger(__name__)


class Metrics:
    """Counters for requests and items over one run."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counts = {
            "items_fetched": 0,
            "items_failed": 0,
            "http_requests": 0,
            "http_failures": 0,
        }

    def _bump(self, name: str) -> None:
        with self._lock:
            self._counts[name] += 1

    def request_attempted(self) -> None:
        self._bump("http_requests")

    def request_failed(self) -> None:
        self._bump("http_failures")

    def item_fetched(self) -> None:
        self._bump("items_fetched")

    def item_failed(self) -> None:
        self._bump("items_failed")

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counts)

    def log_summary(self) -> None:
        logger.info("Metrics summary", **self.snapshot())


class NullMetrics(Metrics):
    """Drops every event."""

    def _bump(self, name: str) -> None:
        pass
