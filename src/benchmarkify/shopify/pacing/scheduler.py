"""Adaptive batch scheduler.

Drives a benchmark run as a sequence of concurrent batches:

    reset -> calibrate -> [size batch -> produce items -> gather attempts
                           -> apply telemetry -> report -> sleep] -> done

The controller is consulted once per batch for the batch size and once
after the batch for the delay. Telemetry from every attempt in a batch
is buffered and applied only after the whole batch has settled, so each
sizing decision sees the complete outcome of the previous batch.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, Protocol

from benchmarkify.config import RetryConfig
from benchmarkify.logging import bind_operation, get_logger
from benchmarkify.shopify.exceptions import BenchmarkConfigurationError
from benchmarkify.shopify.rate_limit.controller import RateLimitController
from benchmarkify.shopify.rate_limit.schemas import ErrorKind, RateLimitSnapshot, TelemetrySample

from .results import BatchRecord, OperationResult, RunResult
from .retry import RetryWrapper, SleepFunc, wait_or_cancel

logger = get_logger(__name__)


def kind_label(kind: Any) -> str:
    """Plain name of an operation kind, whether given as a str enum or a string."""
    return str(getattr(kind, "value", kind))


class OperationExecutor(Protocol):
    """Performs one GraphQL round trip (``ShopifyClient.execute``)."""

    async def __call__(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
        *,
        operation_name: str | None = None,
    ) -> TelemetrySample: ...


class OperationStrategy(Protocol):
    """How one kind of operation is built and interpreted."""

    kind: str
    operation_name: str
    query: str

    def build_variables(self, item: Any) -> dict[str, Any]: ...

    def interpret(self, sample: TelemetrySample) -> TelemetrySample: ...


class ResultSink(Protocol):
    """Receives per-operation outcomes and rate limit samples."""

    def record_operation(self, kind: str, result: OperationResult, item: Any) -> None: ...

    def record_rate_limit(self, snapshot: RateLimitSnapshot) -> None: ...


PayloadProducer = Callable[[str, int], Awaitable[Sequence[Any]]]
Calibrator = Callable[[], Awaitable[TelemetrySample]]
BatchCallback = Callable[[BatchRecord], None]


class BatchScheduler:
    """Runs a fixed number of operations in adaptively sized batches.

    Usage:
        controller = RateLimitController()
        scheduler = BatchScheduler(
            controller,
            client.execute,
            calibrate=client.calibrate,
            sink=audit_log,
        )
        run = await scheduler.run(100, producer, CreateProductStrategy())
        print(f"{run.success_count}/{run.requested} in {run.elapsed_seconds:.1f}s")

    Cancellation (setting ``cancel_event``) stops new batches and pending
    retry waits. Operations already in flight run to completion and are
    included in the result.
    """

    def __init__(
        self,
        controller: RateLimitController,
        executor: OperationExecutor,
        *,
        calibrate: Calibrator | None = None,
        sink: ResultSink | None = None,
        retry_config: RetryConfig | None = None,
        cost_per_operation: float = 10,
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        """Initialize the batch scheduler.

        Args:
            controller: Rate limit controller owned by this run
            executor: Coroutine performing one GraphQL operation
            calibrate: Optional coroutine returning calibration telemetry
            sink: Optional sink for outcomes and rate limit samples
            retry_config: Optional retry configuration (uses settings if not provided)
            cost_per_operation: Expected cost of one operation, for calibration
            sleep: Sleep function (injectable for tests)
            clock: Wall clock used for elapsed time
        """
        self._controller = controller
        self._executor = executor
        self._calibrate = calibrate
        self._sink = sink
        self._cost_per_operation = cost_per_operation
        self._sleep = sleep
        self._clock = clock
        self._retry = RetryWrapper(controller, retry_config, sleep=sleep)

    @property
    def controller(self) -> RateLimitController:
        return self._controller

    async def run(
        self,
        total_count: int,
        producer: PayloadProducer,
        strategy: OperationStrategy,
        *,
        cancel_event: asyncio.Event | None = None,
        progress: BatchCallback | None = None,
    ) -> RunResult:
        """Execute ``total_count`` operations.

        Args:
            total_count: Number of operations requested
            producer: Coroutine returning up to n items for the operation kind
            strategy: Builds variables and interprets results for the kind
            cancel_event: Optional event that stops the run between batches
            progress: Optional callback receiving each BatchRecord

        Returns:
            RunResult; results never exceed total_count, and results plus
            shortfall equal total_count unless the run was cancelled

        Raises:
            BenchmarkConfigurationError: If total_count is not positive
        """
        if total_count <= 0:
            raise BenchmarkConfigurationError(
                f"Operation count must be positive, got {total_count}"
            )

        self._controller.reset()
        await self._run_calibration()

        run = RunResult(requested=total_count)
        remaining = total_count
        started = self._clock()

        logger.info(
            "Starting {} run of {} operations", kind_label(strategy.kind), total_count
        )

        while remaining > 0:
            if cancel_event is not None and cancel_event.is_set():
                run.cancelled = True
                break

            settings = self._controller.current_settings()
            size = min(settings.batch_size, remaining)

            items = list(await producer(strategy.kind, size))[:size]
            if not items:
                run.shortfall = remaining
                logger.warning(
                    "Producer exhausted with {} of {} operations not started",
                    remaining,
                    total_count,
                )
                break

            batch_results = await self._execute_batch(
                items, strategy, cancel_event, first_index=run.completed
            )
            run.results.extend(batch_results)
            remaining -= len(batch_results)

            successes = sum(1 for r in batch_results if r.success)
            failures = len(batch_results) - successes
            record = BatchRecord(
                index=len(run.batches),
                size=len(batch_results),
                successes=successes,
                failures=failures,
                batch_size_setting=settings.batch_size,
                delay_ms=settings.delay_ms,
                completed=run.completed,
                requested=total_count,
            )
            run.batches.append(record)
            self._notify(progress, record)

            logger.debug(
                "Batch {} done: {} ok, {} failed (batch={}, delay={}ms)",
                record.index,
                successes,
                failures,
                settings.batch_size,
                settings.delay_ms,
            )

            if successes > 2 * failures:
                self._controller.optimize_for_throughput()

            if remaining > 0:
                delay = self._controller.current_settings().delay_seconds
                if await wait_or_cancel(delay, cancel_event, self._sleep):
                    run.cancelled = True
                    break

        run.elapsed_seconds = self._clock() - started
        run.results = run.results[:total_count]

        if run.cancelled:
            logger.warning(
                "Run cancelled after {} of {} operations", run.completed, total_count
            )
        else:
            logger.info(
                "Run finished: {} succeeded, {} failed in {:.2f}s",
                run.success_count,
                run.failure_count,
                run.elapsed_seconds,
            )
        return run

    async def _run_calibration(self) -> None:
        """Seed the controller from one lightweight query."""
        if self._calibrate is None:
            return

        sample = await self._calibrate()
        if not sample.success:
            logger.warning("Calibration failed ({}), using default settings", sample.error)
            return

        self._controller.record_sample(sample)
        if sample.rate_limit is not None:
            self._report_rate_limit(sample.rate_limit)

        leak_rate = sample.rate_limit.leak_rate_per_second if sample.rate_limit else None
        if leak_rate:
            self._controller.initialize_from_leak_rate(leak_rate, self._cost_per_operation)
        else:
            logger.warning("Calibration reported no leak rate, using default settings")

    async def _execute_batch(
        self,
        items: Sequence[Any],
        strategy: OperationStrategy,
        cancel_event: asyncio.Event | None,
        first_index: int = 0,
    ) -> list[OperationResult]:
        """Run one batch concurrently and apply its telemetry afterwards."""
        telemetry: list[TelemetrySample] = []

        async def run_one(item: Any) -> OperationResult:
            variables = strategy.build_variables(item)

            async def attempt() -> TelemetrySample:
                sample = await self._executor(
                    strategy.query, variables, operation_name=strategy.operation_name
                )
                return strategy.interpret(sample)

            return await self._retry.run(
                attempt, cancel_event=cancel_event, on_attempt=telemetry.append
            )

        outcomes = await asyncio.gather(*(run_one(item) for item in items), return_exceptions=True)

        results: list[OperationResult] = []
        for item, outcome in zip(items, outcomes, strict=True):
            if isinstance(outcome, OperationResult):
                result = outcome
            elif isinstance(outcome, Exception):
                logger.error("Operation raised unexpectedly: {}", outcome)
                result = OperationResult.from_error(ErrorKind.TRANSIENT, str(outcome))
            else:
                raise outcome
            if not result.success:
                bind_operation(kind_label(strategy.kind), first_index + len(results)).debug(
                    "Operation failed after {} attempt(s): {}", result.attempts, result.error
                )
            results.append(result)

        for sample in telemetry:
            self._controller.record_sample(sample)
            if sample.rate_limit is not None:
                self._report_rate_limit(sample.rate_limit)

        for item, result in zip(items, results, strict=True):
            self._report_operation(strategy.kind, result, item)

        return results

    # -------------------------------------------------------------------------
    # Sink Reporting
    # -------------------------------------------------------------------------
    def _report_operation(self, kind: str, result: OperationResult, item: Any) -> None:
        if self._sink is None:
            return
        try:
            self._sink.record_operation(kind, result, item)
        except Exception as e:
            logger.warning("Sink failed to record operation: {}", e)

    def _report_rate_limit(self, snapshot: RateLimitSnapshot) -> None:
        if self._sink is None:
            return
        try:
            self._sink.record_rate_limit(snapshot)
        except Exception as e:
            logger.warning("Sink failed to record rate limit sample: {}", e)

    def _notify(self, progress: BatchCallback | None, record: BatchRecord) -> None:
        if progress is None:
            return
        try:
            progress(record)
        except Exception as e:
            logger.warning("Progress callback error: {}", e)
