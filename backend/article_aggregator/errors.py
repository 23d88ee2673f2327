"""
Error taxonomy for the aggregation pipeline.

Per-target errors are absorbed by the collector, per-source errors by the
aggregator. `Cancelled` and `InvalidConfiguration` always propagate.
"""

from typing import Optional


class AggregatorError(Exception):
    """Base class for all pipeline errors."""


class NetworkFailure(AggregatorError):
    """A fetch failed on every attempt; wraps the last underlying cause."""

    def __init__(self, target: str, cause: BaseException, attempts: int = 1):
        self.target = target
        self.cause = cause
        self.attempts = attempts
        super().__init__(
            f"Request for {target} failed after {attempts} attempt(s): {cause}"
        )


class FetchTimeout(AggregatorError):
    """The last attempt for a target hit its per-attempt deadline."""

    def __init__(self, target: str, attempts: int):
        self.target = target
        self.attempts = attempts
        super().__init__(f"Request for {target} timed out after {attempts} attempt(s)")


class Cancelled(AggregatorError):
    """Shutdown was requested."""

    def __init__(self, message: str = "Shutdown requested"):
        super().__init__(message)


class NoItemsFound(AggregatorError):
    """A source (or every source) produced no items."""

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"No items found from source: {source}")


class InvalidConfiguration(AggregatorError):
    """Configuration values that can never lead to a valid run."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Configuration error: {detail}")


class ExtractionFailure(AggregatorError):
    """A source payload could not be turned into items."""

    def __init__(self, source: str, cause: Optional[object] = None):
        self.source = source
        self.cause = cause
        super().__init__(f"Failed to parse response from {source}: {cause}")
