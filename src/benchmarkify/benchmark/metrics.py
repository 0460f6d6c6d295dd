"""Benchmark metrics aggregation.

Reduces a run's operation results into summary statistics. ``summarize``
is a pure function: the same inputs always give the same summary.

Projections are a linear extrapolation assuming the observed throughput
stays constant. They are optimistic for very large counts because they
ignore how the controller converges over a long run. Treat them as
estimates, not guarantees.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from benchmarkify.shopify.pacing.results import OperationResult
from benchmarkify.shopify.rate_limit.schemas import ErrorKind

DEFAULT_MILESTONES: tuple[int, ...] = (1_000, 100_000, 1_000_000, 10_000_000)


@dataclass(frozen=True)
class Projection:
    """Extrapolated cost and duration for a milestone operation count."""

    count: int
    cost: float
    time_seconds: float | None
    """None when no throughput was observed."""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "count": self.count,
            "cost": round(self.cost, 2),
            "time_seconds": round(self.time_seconds, 2) if self.time_seconds is not None else None,
        }


@dataclass(frozen=True)
class BenchmarkSummary:
    """Summary statistics for one benchmark run."""

    total_operations: int
    success_count: int
    failure_count: int
    average_response_time: float
    """Mean response time of successful operations (seconds)."""
    total_cost: float
    """Cost of every result, successful or not."""
    average_cost: float
    cost_per_second: float
    """Total cost over the summed response time of successful operations."""
    operations_per_second: float
    elapsed_seconds: float
    retries_exhausted: int = 0
    """Operations that failed every allowed attempt with retryable errors."""
    permanent_failures: int = 0
    """Operations that failed on an error retrying cannot fix (user errors,
    rejected credentials). These stop after one attempt, so they are not
    counted in retries_exhausted."""
    succeeded_after_retry: int = 0
    shortfall: int = 0
    error_breakdown: dict[str, int] = field(default_factory=dict)
    projections: tuple[Projection, ...] = ()

    @property
    def success_rate(self) -> float:
        """Success rate percentage (0-100)."""
        if self.total_operations == 0:
            return 0.0
        return self.success_count / self.total_operations * 100

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_operations": self.total_operations,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "success_rate": round(self.success_rate, 2),
            "average_response_time": round(self.average_response_time, 4),
            "total_cost": self.total_cost,
            "average_cost": round(self.average_cost, 2),
            "cost_per_second": round(self.cost_per_second, 2),
            "operations_per_second": round(self.operations_per_second, 2),
            "elapsed_seconds": round(self.elapsed_seconds, 2),
            "retries_exhausted": self.retries_exhausted,
            "permanent_failures": self.permanent_failures,
            "succeeded_after_retry": self.succeeded_after_retry,
            "shortfall": self.shortfall,
            "error_breakdown": dict(self.error_breakdown),
            "projections": [p.to_dict() for p in self.projections],
        }


def _is_permanent(result: OperationResult) -> bool:
    return result.error_kind in (ErrorKind.USER_ERROR, ErrorKind.AUTHENTICATION)


def summarize(
    results: Sequence[OperationResult],
    elapsed_seconds: float,
    *,
    requested_count: int | None = None,
    milestones: Sequence[int] = DEFAULT_MILESTONES,
) -> BenchmarkSummary:
    """Compute summary statistics for a run.

    Args:
        results: Final operation results
        elapsed_seconds: Wall time of the run
        requested_count: Operations requested (for shortfall reporting)
        milestones: Operation counts to project cost and time for

    Returns:
        BenchmarkSummary
    """
    successes = [r for r in results if r.success]
    total = len(results)
    success_time = sum(r.response_time_seconds for r in successes)
    total_cost = sum(r.cost for r in results)
    average_cost = total_cost / total if total else 0.0

    throughput = total_cost / elapsed_seconds if elapsed_seconds > 0 else 0.0
    projections = tuple(
        Projection(
            count=count,
            cost=count * average_cost,
            time_seconds=(count * average_cost / throughput) if throughput > 0 else None,
        )
        for count in milestones
    )

    errors = Counter(str(r.error_kind) for r in results if not r.success and r.error_kind)

    return BenchmarkSummary(
        total_operations=total,
        success_count=len(successes),
        failure_count=total - len(successes),
        average_response_time=success_time / len(successes) if successes else 0.0,
        total_cost=total_cost,
        average_cost=average_cost,
        cost_per_second=total_cost / success_time if success_time > 0 else 0.0,
        operations_per_second=total / elapsed_seconds if elapsed_seconds > 0 else 0.0,
        elapsed_seconds=elapsed_seconds,
        retries_exhausted=sum(1 for r in results if r.retries_exhausted),
        permanent_failures=sum(1 for r in results if _is_permanent(r)),
        succeeded_after_retry=sum(1 for r in successes if r.succeeded_after_retry),
        shortfall=max(0, requested_count - total) if requested_count is not None else 0,
        error_breakdown=dict(sorted(errors.items())),
        projections=projections,
    )
