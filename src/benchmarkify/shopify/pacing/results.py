"""Result types produced by the retry wrapper and batch scheduler."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from benchmarkify.shopify.rate_limit.schemas import ErrorKind, TelemetrySample


@dataclass(frozen=True)
class OperationResult:
    """Final outcome of one logical operation after all retries settled."""

    success: bool
    cost: float = 0.0
    response_time_seconds: float = 0.0
    error_kind: ErrorKind | None = None
    error: str | None = None
    retries_exhausted: bool = False
    """True only when every allowed attempt failed with a retryable error."""
    remote_id: str | None = None
    attempts: int = 1
    """Number of attempts made (1 means no retry was needed)."""

    @property
    def succeeded_after_retry(self) -> bool:
        """Whether the operation succeeded on a later attempt."""
        return self.success and self.attempts > 1

    @classmethod
    def from_sample(
        cls,
        sample: TelemetrySample,
        *,
        attempts: int,
        retries_exhausted: bool = False,
    ) -> OperationResult:
        """Build a result from the last attempt's telemetry."""
        return cls(
            success=sample.success,
            cost=sample.cost,
            response_time_seconds=sample.response_time_seconds,
            error_kind=None if sample.success else sample.error_kind or ErrorKind.TRANSIENT,
            error=None if sample.success else sample.error,
            retries_exhausted=retries_exhausted and not sample.success,
            remote_id=sample.remote_id,
            attempts=attempts,
        )

    @classmethod
    def from_error(cls, kind: ErrorKind, error: str, *, attempts: int = 1) -> OperationResult:
        """Build a failed result that has no attempt telemetry."""
        return cls(success=False, error_kind=kind, error=error, attempts=attempts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "cost": self.cost,
            "response_time_seconds": round(self.response_time_seconds, 4),
            "error_kind": str(self.error_kind) if self.error_kind else None,
            "error": self.error,
            "retries_exhausted": self.retries_exhausted,
            "remote_id": self.remote_id,
            "attempts": self.attempts,
        }


@dataclass(frozen=True)
class BatchRecord:
    """What happened in one dispatched batch."""

    index: int
    size: int
    successes: int
    failures: int
    batch_size_setting: int
    """Controller batch size when the batch was sized."""
    delay_ms: int
    """Controller delay when the batch was sized."""
    completed: int
    """Operations finished so far in the run, including this batch."""
    requested: int

    @property
    def progress_percent(self) -> float:
        """Completion percentage (0-100)."""
        if self.requested == 0:
            return 100.0
        return self.completed / self.requested * 100

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "index": self.index,
            "size": self.size,
            "successes": self.successes,
            "failures": self.failures,
            "batch_size_setting": self.batch_size_setting,
            "delay_ms": self.delay_ms,
        }


@dataclass
class RunResult:
    """Results of one scheduler run."""

    requested: int
    results: list[OperationResult] = field(default_factory=list)
    batches: list[BatchRecord] = field(default_factory=list)
    elapsed_seconds: float = 0.0
    shortfall: int = 0
    """Operations never started because the producer ran out of items."""
    cancelled: bool = False

    @property
    def completed(self) -> int:
        """Number of operations that ran to a final result."""
        return len(self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def not_started(self) -> int:
        """Operations never started for any reason (shortfall or cancellation)."""
        return max(0, self.requested - self.completed)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "requested": self.requested,
            "completed": self.completed,
            "succeeded": self.success_count,
            "failed": self.failure_count,
            "shortfall": self.shortfall,
            "cancelled": self.cancelled,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
            "batches": [b.to_dict() for b in self.batches],
        }
