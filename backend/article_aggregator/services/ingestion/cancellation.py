"""
Cooperative cancellation shared by every stage of a run.

The token is passed explicitly into each component and polled at the
suspend points (admission, attempt start, backoff sleep, target launch).
Nothing is force-killed.
"""

import asyncio

import structlog

from article_aggregator.errors import Cancelled

logger = structlog.get_logger(__name__)


class CancellationToken:
    """Write-once cancellation signal."""

    def __init__(self):
        self._cancelled = False
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation. Further calls are no-ops."""
        if self._cancelled:
            return
        self._cancelled = True
        self._event.set()
        logger.info("Cancellation requested")

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise Cancelled()

    async def wait(self) -> None:
        """Suspend until cancellation is requested."""
        await self._event.wait()

    async def sleep(self, seconds: float) -> bool:
        """
        Sleep for `seconds`, waking early if cancellation is requested.

        Returns:
            True if the sleep was cut short by cancellation
        """
        if self._cancelled:
            return True
        if seconds <= 0:
            return False
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True
