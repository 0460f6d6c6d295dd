"""Per-operation retry with exponential backoff.

Each logical operation gets up to ``max_retries + 1`` attempts. Every
attempt's telemetry is reported through ``on_attempt`` so the controller
sees throttling as it happens, including on attempts that are later
retried successfully.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from benchmarkify.config import RetryConfig, get_settings
from benchmarkify.logging import get_logger
from benchmarkify.shopify.rate_limit.controller import RateLimitController
from benchmarkify.shopify.rate_limit.schemas import ErrorKind, TelemetrySample

from .results import OperationResult

logger = get_logger(__name__)

Attempt = Callable[[], Awaitable[TelemetrySample]]
AttemptCallback = Callable[[TelemetrySample], None]
SleepFunc = Callable[[float], Awaitable[object]]


async def wait_or_cancel(
    seconds: float,
    cancel_event: asyncio.Event | None = None,
    sleep: SleepFunc = asyncio.sleep,
) -> bool:
    """Sleep for ``seconds`` unless the cancel event fires first.

    Args:
        seconds: Time to wait
        cancel_event: Optional event that interrupts the wait
        sleep: Sleep function (injectable for tests)

    Returns:
        True if the wait was interrupted by cancellation
    """
    if cancel_event is None:
        if seconds > 0:
            await sleep(seconds)
        return False
    if cancel_event.is_set():
        return True
    if seconds <= 0:
        return False

    sleeper = asyncio.ensure_future(sleep(seconds))
    watcher = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({sleeper, watcher}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (sleeper, watcher):
            if not task.done():
                task.cancel()
        await asyncio.gather(sleeper, watcher, return_exceptions=True)
    return cancel_event.is_set()


class RetryWrapper:
    """Runs one operation with retries, backoff and controller feedback.

    Usage:
        wrapper = RetryWrapper(controller)

        async def attempt() -> TelemetrySample:
            return await client.execute(query, variables)

        result = await wrapper.run(attempt)
        if result.retries_exhausted:
            print(f"Gave up after {result.attempts} attempts: {result.error}")

    Rate-limited failures wait for the server's Retry-After when given,
    otherwise the controller's exponential backoff. Authentication and
    user errors are returned at once since retrying cannot fix them.
    """

    def __init__(
        self,
        controller: RateLimitController,
        config: RetryConfig | None = None,
        *,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """Initialize the retry wrapper.

        Args:
            controller: Controller providing backoff delays and receiving telemetry
            config: Optional retry configuration (uses settings if not provided)
            sleep: Sleep function (injectable for tests)
        """
        self._controller = controller
        self._config = config or get_settings().retry
        self._sleep = sleep

    @property
    def max_retries(self) -> int:
        return self._config.max_retries

    async def run(
        self,
        attempt: Attempt,
        *,
        cancel_event: asyncio.Event | None = None,
        on_attempt: AttemptCallback | None = None,
    ) -> OperationResult:
        """Execute ``attempt`` until it succeeds or retries run out.

        Never raises for operation failures. The returned result has
        ``retries_exhausted`` set only when all attempts failed with
        retryable errors.

        Args:
            attempt: Zero-argument coroutine factory performing one attempt
            cancel_event: Optional event that stops further retries
            on_attempt: Telemetry callback (defaults to controller.record_sample)

        Returns:
            OperationResult for the logical operation
        """
        report = on_attempt or self._controller.record_sample
        max_attempts = self._config.max_retries + 1
        last: TelemetrySample | None = None

        for index in range(max_attempts):
            sample = await attempt()
            report(sample)

            if sample.success:
                if index > 0:
                    logger.debug("Operation succeeded after {} attempts", index + 1)
                return OperationResult.from_sample(sample, attempts=index + 1)

            last = sample
            kind = sample.error_kind or ErrorKind.TRANSIENT
            if not kind.is_retryable:
                return OperationResult.from_sample(sample, attempts=index + 1)

            if index == max_attempts - 1:
                break

            delay = self._backoff_seconds(sample, index)
            logger.debug(
                "Attempt {}/{} failed ({}), retrying in {:.2f}s",
                index + 1,
                max_attempts,
                kind,
                delay,
            )
            if await wait_or_cancel(delay, cancel_event, self._sleep):
                return OperationResult.from_error(
                    ErrorKind.CANCELLED,
                    f"Cancelled while retrying: {sample.error}",
                    attempts=index + 1,
                )

        assert last is not None
        logger.warning("Operation failed after {} attempts: {}", max_attempts, last.error)
        return OperationResult.from_sample(last, attempts=max_attempts, retries_exhausted=True)

    def _backoff_seconds(self, sample: TelemetrySample, attempt_index: int) -> float:
        if sample.error_kind == ErrorKind.RATE_LIMITED and sample.retry_after_seconds is not None:
            return sample.retry_after_seconds
        return self._controller.retry_delay(attempt_index) / 1000
