"""
Retrying fetcher: timeout, rate-limit admission, exponential backoff and
cancellation checks around a single idempotent network call.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_not_exception_type,
    stop_after_attempt,
)

from article_aggregator.errors import (
    Cancelled,
    FetchTimeout,
    InvalidConfiguration,
    NetworkFailure,
)
from article_aggregator.services.ingestion.cancellation import CancellationToken
from article_aggregator.services.ingestion.rate_limiter import RateLimiter
from article_aggregator.services.metrics import Metrics, NullMetrics

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Errors that must surface immediately instead of being retried
NON_RETRYABLE = (Cancelled, InvalidConfiguration)

# The per-attempt deadline and the HTTP client's own timeouts both mean a timeout
TIMEOUT_ERRORS = (asyncio.TimeoutError, httpx.TimeoutException)


def backoff_delay(attempt: int, base: float) -> float:
    """Delay before retrying after failed attempt number `attempt` (1-based)."""
    return base * 2 ** (attempt - 1)


class RetryingFetcher:
    """
    Runs network operations with bounded retries.

    Each attempt:
    1. Checks cancellation
    2. Waits for rate limiter admission
    3. Runs the operation under a per-attempt deadline
    Failed attempts sleep `base * 2^(attempt-1)` before the next one; the
    sleep wakes early on cancellation.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        cancel_token: CancellationToken,
        metrics: Optional[Metrics] = None,
        max_attempts: int = 3,
        per_attempt_timeout: float = 10.0,
        base_backoff: float = 0.5,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        _validate(max_attempts, per_attempt_timeout, base_backoff)

        self.rate_limiter = rate_limiter
        self.cancel_token = cancel_token
        self.metrics = metrics or NullMetrics()
        self.max_attempts = max_attempts
        self.per_attempt_timeout = per_attempt_timeout
        self.base_backoff = base_backoff
        self._sleep = sleep

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        target: str = "request",
        max_attempts: Optional[int] = None,
        per_attempt_timeout: Optional[float] = None,
        base_backoff: Optional[float] = None,
    ) -> T:
        """
        Run `operation` until it succeeds or attempts are exhausted.

        Args:
            operation: Zero-argument coroutine factory; called once per attempt
            target: Label used in logs and errors (URL, item id)
            max_attempts: Override for the configured attempt count
            per_attempt_timeout: Override for the configured deadline (seconds)
            base_backoff: Override for the configured base delay (seconds)

        Returns:
            Whatever the first successful attempt returned

        Raises:
            Cancelled: Cancellation observed before an attempt
            FetchTimeout: The final attempt exceeded its deadline
            NetworkFailure: The final attempt failed; wraps its cause
        """
        attempts = self.max_attempts if max_attempts is None else max_attempts
        timeout = self.per_attempt_timeout if per_attempt_timeout is None else per_attempt_timeout
        base = self.base_backoff if base_backoff is None else base_backoff
        _validate(attempts, timeout, base)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=lambda state: backoff_delay(state.attempt_number, base),
            retry=retry_if_not_exception_type(NON_RETRYABLE),
            sleep=self._backoff_sleep,
            before_sleep=_log_retry(target),
        )

        try:
            async for attempt in retrying:
                with attempt:
                    result = await self._attempt(operation, timeout)
        except RetryError as err:
            last = err.last_attempt
            cause = last.exception()
            logger.warning(
                "Max retry attempts reached",
                target=target,
                attempts=last.attempt_number,
                error=str(cause) or type(cause).__name__,
            )
            if isinstance(cause, TIMEOUT_ERRORS):
                raise FetchTimeout(target, last.attempt_number) from cause
            raise NetworkFailure(target, cause, last.attempt_number) from cause

        return result

    async def _attempt(
        self,
        operation: Callable[[], Awaitable[T]],
        timeout: float,
    ) -> T:
        self.cancel_token.raise_if_cancelled()
        await self.rate_limiter.admit(self.cancel_token)

        self.metrics.request_attempted()
        try:
            return await asyncio.wait_for(operation(), timeout=timeout)
        except NON_RETRYABLE:
            raise
        except Exception:
            self.metrics.request_failed()
            raise

    async def _backoff_sleep(self, seconds: float) -> None:
        if self._sleep is not None:
            await self._sleep(seconds)
        else:
            await self.cancel_token.sleep(seconds)


def _validate(max_attempts: int, per_attempt_timeout: float, base_backoff: float) -> None:
    if max_attempts < 1:
        raise InvalidConfiguration("retry_attempts must be at least 1")
    if per_attempt_timeout <= 0:
        raise InvalidConfiguration("per_request_timeout must be greater than 0")
    if base_backoff < 0:
        raise InvalidConfiguration("retry_base_delay must not be negative")


def _log_retry(target: str) -> Callable[[RetryCallState], None]:
    def log(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome is not None else None
        delay = state.next_action.sleep if state.next_action is not None else 0.0
        logger.warning(
            "Request failed, retrying",
            target=target,
            attempt=state.attempt_number,
            error=str(error) or type(error).__name__,
            retry_delay_ms=round(delay * 1000),
        )

    return log
