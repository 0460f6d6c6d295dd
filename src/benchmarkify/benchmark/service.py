"""Benchmark service.

Wires the Shopify client, the adaptive controller, the batch scheduler,
payload producers and the audit log into create/update/delete runs,
tag cleanup and capacity analysis.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from benchmarkify.config import Settings, get_settings
from benchmarkify.logging import LogContext, bind_run, get_logger
from benchmarkify.shopify.client import ShopifyClient
from benchmarkify.shopify.exceptions import (
    BenchmarkConfigurationError,
    ShopifyAuthenticationError,
    ShopifyClientError,
)
from benchmarkify.shopify.pacing import BatchCallback, BatchScheduler, RunResult
from benchmarkify.shopify.pacing.retry import RetryWrapper, SleepFunc
from benchmarkify.shopify.rate_limit import (
    CapacityAnalysis,
    ErrorKind,
    RateLimitController,
    RateLimitSnapshot,
    analyze_capacity,
)

from .audit import AuditSummary
from .enums import OperationKind
from .metrics import BenchmarkSummary, summarize
from .payloads import ExistingProductProducer, RandomProductGenerator
from .session import BenchmarkSession
from .strategies import strategy_for

logger = get_logger(__name__)


@dataclass
class BenchmarkReport:
    """Everything reported about one benchmark run."""

    kind: OperationKind
    requested: int
    run: RunResult
    summary: BenchmarkSummary
    controller_summary: dict[str, Any] | None = None
    last_rate_limit: RateLimitSnapshot | None = None
    high_throughput: bool = False
    session_tag: str = ""
    audit: AuditSummary | None = None
    """Session-wide audit totals with recommended settings for the next run."""
    warnings: list[str] = field(default_factory=list)

    @property
    def theoretical_max(self) -> dict[str, Any]:
        """Rough ceiling for the detected API tier with the final settings."""
        summary = self.controller_summary or {}
        return {
            "operations_per_second": "200+" if self.high_throughput else "50-150",
            "batch_size": summary.get("current_batch_size"),
            "delay_ms": summary.get("current_delay_ms"),
            "efficiency": (
                "Enterprise API - maximum throughput mode"
                if self.high_throughput
                else "Standard/Plus API - optimized mode"
            ),
        }

    @property
    def details(self) -> str:
        """One-line description of the run."""
        verb = {
            OperationKind.CREATE: "Created",
            OperationKind.UPDATE: "Updated",
            OperationKind.DELETE: "Deleted",
        }[self.kind]
        return (
            f"{verb} {self.summary.success_count}/{self.requested} products successfully. "
            f"Total time: {self.summary.elapsed_seconds:.2f}s"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "session_tag": self.session_tag,
            "requested": self.requested,
            "status": "success" if self.summary.success_count > 0 else "error",
            "details": self.details,
            "cancelled": self.run.cancelled,
            "summary": self.summary.to_dict(),
            "batches": [b.to_dict() for b in self.run.batches],
            "rate_limit": self.last_rate_limit.model_dump(mode="json")
            if self.last_rate_limit
            else None,
            "rate_limit_adaptation": self.controller_summary,
            "theoretical_max": self.theoretical_max,
            "retry_stats": {
                "retries_exhausted": self.summary.retries_exhausted,
                "succeeded_after_retry": self.summary.succeeded_after_retry,
                "permanent_failures": self.summary.permanent_failures,
            },
            "audit": self.audit.to_dict() if self.audit else None,
            "warnings": list(self.warnings),
        }


class BenchmarkService:
    """Runs benchmarks against one store.

    Usage:
        async with ShopifyClient() as client:
            service = BenchmarkService(client)
            report = await service.create(100)
            print(report.details)

            await service.delete(100)  # deletes what was just created first
    """

    def __init__(
        self,
        client: ShopifyClient,
        settings: Settings | None = None,
        session: BenchmarkSession | None = None,
        *,
        sleep: SleepFunc = asyncio.sleep,
        controller_factory: Callable[[], RateLimitController] | None = None,
    ) -> None:
        """Initialize the benchmark service.

        Args:
            client: Shopify client used for every request
            settings: Optional settings (uses get_settings() if not provided)
            session: Optional session (a new one is started if not provided)
            sleep: Sleep function (injectable for tests)
            controller_factory: Optional factory for the per-run controller
        """
        self._client = client
        self._settings = settings or get_settings()
        self._session = session or BenchmarkSession(
            controller_config=self._settings.controller
        )
        self._sleep = sleep
        self._controller_factory = controller_factory or (
            lambda: RateLimitController(self._settings.controller, self._settings.retry)
        )
        self._generator = RandomProductGenerator(tag=self._settings.benchmark.benchmark_tag)

    @property
    def session(self) -> BenchmarkSession:
        return self._session

    async def create(self, count: int, **kwargs: Any) -> BenchmarkReport:
        """Create ``count`` random benchmark products."""
        return await self.run(OperationKind.CREATE, count, **kwargs)

    async def update(self, count: int, **kwargs: Any) -> BenchmarkReport:
        """Update up to ``count`` existing benchmark products."""
        return await self.run(OperationKind.UPDATE, count, **kwargs)

    async def delete(self, count: int, **kwargs: Any) -> BenchmarkReport:
        """Delete up to ``count`` existing benchmark products."""
        return await self.run(OperationKind.DELETE, count, **kwargs)

    async def run(
        self,
        kind: OperationKind,
        count: int,
        *,
        cancel_event: asyncio.Event | None = None,
        progress: BatchCallback | None = None,
    ) -> BenchmarkReport:
        """Run one benchmark.

        Args:
            kind: Operation kind
            count: Operations requested (clamped to the configured maximum)
            cancel_event: Optional event that stops the run between batches
            progress: Optional callback receiving each BatchRecord

        Returns:
            BenchmarkReport

        Raises:
            BenchmarkConfigurationError: If count is not positive
        """
        kind = OperationKind(kind)
        warnings: list[str] = []
        count = self._validate_count(count, warnings)
        controller = self._controller_factory()

        if kind == OperationKind.CREATE:
            producer: Any = self._generator
        else:
            producer = self._existing_products(count, controller, cancel_event)
        return await self._execute(
            kind, count, controller, producer, warnings, cancel_event, progress
        )

    async def cleanup(
        self,
        *,
        cancel_event: asyncio.Event | None = None,
        progress: BatchCallback | None = None,
    ) -> BenchmarkReport:
        """Delete every product carrying the benchmark tag."""
        controller = self._controller_factory()
        producer = self._existing_products(
            self._settings.benchmark.max_operation_count, controller, cancel_event
        )
        found = await producer.load()
        warnings = self._search_warnings(producer)
        if found == 0:
            logger.info("No benchmark products to clean up")
            return self._build_report(
                OperationKind.DELETE, 0, RunResult(requested=0), None, warnings
            )

        logger.info("Cleaning up {} benchmark products", found)
        return await self._execute(
            OperationKind.DELETE, found, controller, producer, warnings, cancel_event, progress
        )

    async def analyze(self, cost_per_operation: float | None = None) -> CapacityAnalysis:
        """Analyze store capacity from one calibration query.

        Raises:
            ShopifyAuthenticationError: If the credentials are rejected
            ShopifyClientError: If the calibration query fails
        """
        cost = cost_per_operation or self._settings.benchmark.cost_per_operation
        sample = await self._client.calibrate()
        if not sample.success:
            if sample.error_kind == ErrorKind.AUTHENTICATION:
                raise ShopifyAuthenticationError(sample.error or "Access denied")
            raise ShopifyClientError(f"Failed to analyze rate limits: {sample.error}")

        return analyze_capacity(
            sample.rate_limit,
            cost,
            milestones=self._settings.benchmark.projection_milestones,
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------
    def _validate_count(self, count: int, warnings: list[str]) -> int:
        if count <= 0:
            raise BenchmarkConfigurationError(f"Count must be positive, got {count}")

        maximum = self._settings.benchmark.max_operation_count
        if count > maximum:
            message = f"Requested {count} operations, clamped to {maximum}"
            logger.warning(message)
            warnings.append(message)
            return maximum
        return count

    def _existing_products(
        self,
        limit: int,
        controller: RateLimitController,
        cancel_event: asyncio.Event | None,
    ) -> ExistingProductProducer:
        return ExistingProductProducer(
            self._client.fetch_products_by_tag,
            self._settings.benchmark.benchmark_tag,
            limit,
            known=self._session.audit.created_product_refs(limit),
            retry=RetryWrapper(controller, self._settings.retry, sleep=self._sleep),
            cancel_event=cancel_event,
        )

    def _search_warnings(self, producer: Any) -> list[str]:
        error = getattr(producer, "search_error", None)
        if error is None:
            return []
        return [f"Product search failed, continuing with known products only: {error}"]

    async def _execute(
        self,
        kind: OperationKind,
        count: int,
        controller: RateLimitController,
        producer: Any,
        warnings: list[str],
        cancel_event: asyncio.Event | None,
        progress: BatchCallback | None,
    ) -> BenchmarkReport:
        scheduler = BatchScheduler(
            controller,
            self._client.execute,
            calibrate=self._client.calibrate,
            sink=self._session.audit,
            retry_config=self._settings.retry,
            cost_per_operation=self._settings.benchmark.cost_per_operation,
            sleep=self._sleep,
        )

        log = bind_run(kind.value, self._session.tag)
        log.info("Benchmark {} of {} products", kind.value, count)

        with LogContext(kind=kind.value, session=self._session.tag):
            run = await scheduler.run(
                count,
                producer,
                strategy_for(kind),
                cancel_event=cancel_event,
                progress=progress,
            )

        for message in self._search_warnings(producer):
            if message not in warnings:
                warnings.append(message)
        if run.shortfall:
            warnings.append(
                f"Only {run.completed} of {count} products were available to {kind.value}"
            )

        report = self._build_report(kind, count, run, controller, warnings)
        log.info(report.details)
        return report

    def _build_report(
        self,
        kind: OperationKind,
        count: int,
        run: RunResult,
        controller: RateLimitController | None,
        warnings: list[str],
    ) -> BenchmarkReport:
        summary = summarize(
            run.results,
            run.elapsed_seconds,
            requested_count=count,
            milestones=self._settings.benchmark.projection_milestones,
        )
        return BenchmarkReport(
            kind=kind,
            requested=count,
            run=run,
            summary=summary,
            controller_summary=controller.performance_summary() if controller else None,
            last_rate_limit=controller.last_snapshot if controller else None,
            high_throughput=controller.is_high_throughput_mode if controller else False,
            session_tag=self._session.tag,
            audit=self._session.audit.summary(),
            warnings=warnings,
        )
