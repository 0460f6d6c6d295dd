"""Static capacity analysis for a store's GraphQL bucket.

Given the leak rate reported by a calibration query, estimates how many
operations per second the store sustains and how long a run of a given
size should take. These are planning numbers; the adaptive controller
makes the live decisions.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from benchmarkify.logging import get_logger

from .schemas import RateLimitSnapshot, ThroughputTier

logger = get_logger(__name__)

DEFAULT_LEAK_RATE = 100.0
DEFAULT_BUCKET_CAPACITY = 1000.0
MAX_PLANNED_DELAY_MS = 2000


class OptimizationMode(StrEnum):
    """How hard a planned batch configuration pushes the bucket."""

    AGGRESSIVE = "aggressive"
    BALANCED = "balanced"
    THROUGHPUT = "throughput"


@dataclass(frozen=True)
class _ModeProfile:
    fill_factor: float
    min_batch: int
    max_batch: int
    safety_margin: float
    min_delay_ms: int


_PROFILES: dict[OptimizationMode, _ModeProfile] = {
    OptimizationMode.AGGRESSIVE: _ModeProfile(0.9, 20, 1000, 1.02, 25),
    OptimizationMode.BALANCED: _ModeProfile(0.7, 15, 300, 1.1, 50),
    OptimizationMode.THROUGHPUT: _ModeProfile(0.8, 10, 500, 1.05, 50),
}


@dataclass(frozen=True)
class BatchPlan:
    """Planned batch size and inter-batch delay."""

    batch_size: int
    delay_ms: int
    mode: OptimizationMode


@dataclass(frozen=True)
class TimeEstimate:
    """Projected duration for a run of ``operation_count`` operations."""

    operation_count: int
    total_cost: float
    batches: int
    batch_size: int
    delay_ms: int
    processing_seconds: float
    delay_seconds: float

    @property
    def total_seconds(self) -> float:
        """Processing time plus the delays between batches."""
        return self.processing_seconds + self.delay_seconds

    @property
    def display(self) -> str:
        """Human readable duration, rounded up to the coarsest fitting unit."""
        total = self.total_seconds
        if total < 60:
            return f"{math.ceil(total)} seconds"
        if total < 3600:
            return f"{math.ceil(total / 60)} minutes"
        return f"{math.ceil(total / 3600)} hours"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "operation_count": self.operation_count,
            "total_cost": self.total_cost,
            "batches": self.batches,
            "batch_size": self.batch_size,
            "delay_ms": self.delay_ms,
            "processing_seconds": round(self.processing_seconds, 2),
            "delay_seconds": round(self.delay_seconds, 2),
            "total_seconds": round(self.total_seconds, 2),
            "display": self.display,
        }


@dataclass
class CapacityAnalysis:
    """Throughput analysis derived from one bucket snapshot."""

    leak_rate: float
    bucket_capacity: float
    points_used: float
    plan: ThroughputTier
    cost_per_operation: float
    batch_plan: BatchPlan
    estimates: list[TimeEstimate] = field(default_factory=list)
    leak_rate_reported: bool = True

    @property
    def operations_per_second(self) -> int:
        """Sustained operations per second at the leak rate."""
        return int(self.leak_rate // self.cost_per_operation)

    @property
    def operations_per_minute(self) -> int:
        return self.operations_per_second * 60

    @property
    def operations_per_hour(self) -> int:
        return self.operations_per_minute * 60

    @property
    def explanation(self) -> str:
        """Plain-language description of what the limits mean."""
        return (
            f"Your store appears to be on the {self.plan} plan with a leak rate of "
            f"{self.leak_rate:g} points per second. Each operation costs "
            f"{self.cost_per_operation:g} points, so a single client can perform about "
            f"{self.operations_per_second} operations per second "
            f"({self.operations_per_hour} per hour)."
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "plan": str(self.plan),
            "leak_rate": self.leak_rate,
            "leak_rate_reported": self.leak_rate_reported,
            "bucket_capacity": self.bucket_capacity,
            "points_used": self.points_used,
            "cost_per_operation": self.cost_per_operation,
            "operations_per_second": self.operations_per_second,
            "operations_per_minute": self.operations_per_minute,
            "operations_per_hour": self.operations_per_hour,
            "batch_plan": {
                "mode": str(self.batch_plan.mode),
                "batch_size": self.batch_plan.batch_size,
                "delay_ms": self.batch_plan.delay_ms,
            },
            "estimates": [e.to_dict() for e in self.estimates],
            "explanation": self.explanation,
        }


def optimal_batch_config(
    leak_rate: float,
    cost_per_operation: float = 10,
    mode: OptimizationMode = OptimizationMode.THROUGHPUT,
) -> BatchPlan:
    """Plan a batch size and delay that keep the bucket from overflowing.

    The bucket is approximated as two seconds of leak. A batch fills a
    mode-specific share of it, and the delay is the time the bucket needs
    to drain that batch's cost, padded by the mode's safety margin.

    Args:
        leak_rate: Points restored per second (must be positive)
        cost_per_operation: Cost of one operation (must be positive)
        mode: Optimization mode

    Returns:
        BatchPlan with batch size and delay

    Raises:
        ValueError: If leak_rate or cost_per_operation is not positive
    """
    if leak_rate <= 0:
        raise ValueError(f"leak_rate must be positive, got {leak_rate}")
    if cost_per_operation <= 0:
        raise ValueError(f"cost_per_operation must be positive, got {cost_per_operation}")

    profile = _PROFILES[mode]
    per_second = leak_rate // cost_per_operation
    bucket_capacity = leak_rate * 2

    by_capacity = int(bucket_capacity * profile.fill_factor // cost_per_operation)
    by_time = int(per_second * profile.fill_factor)
    batch_size = min(max(by_capacity, by_time, profile.min_batch), profile.max_batch)

    drain_ms = batch_size * cost_per_operation / leak_rate * 1000
    delay_ms = max(math.ceil(drain_ms * profile.safety_margin), profile.min_delay_ms)

    plan = BatchPlan(
        batch_size=batch_size,
        delay_ms=min(delay_ms, MAX_PLANNED_DELAY_MS),
        mode=mode,
    )
    logger.debug(
        "Planned {} batch for leak_rate={}: batch={}, delay={}ms",
        mode,
        leak_rate,
        plan.batch_size,
        plan.delay_ms,
    )
    return plan


def estimate_time(
    operation_count: int,
    leak_rate: float,
    cost_per_operation: float,
    plan: BatchPlan,
) -> TimeEstimate:
    """Estimate the duration of a run under a fixed batch plan."""
    total_cost = operation_count * cost_per_operation
    batches = math.ceil(operation_count / plan.batch_size) if operation_count > 0 else 0
    return TimeEstimate(
        operation_count=operation_count,
        total_cost=total_cost,
        batches=batches,
        batch_size=plan.batch_size,
        delay_ms=plan.delay_ms,
        processing_seconds=total_cost / leak_rate,
        delay_seconds=max(batches - 1, 0) * plan.delay_ms / 1000,
    )


def analyze_capacity(
    snapshot: RateLimitSnapshot | None,
    cost_per_operation: float = 10,
    milestones: Sequence[int] = (1_000, 100_000, 1_000_000, 10_000_000),
    mode: OptimizationMode = OptimizationMode.AGGRESSIVE,
) -> CapacityAnalysis:
    """Analyze store capacity from a calibration snapshot.

    A missing snapshot or leak rate falls back to the standard plan's
    100 points/sec so the analysis still produces usable numbers.

    Args:
        snapshot: Bucket state from the calibration query
        cost_per_operation: Cost of one operation
        milestones: Operation counts to estimate durations for
        mode: Optimization mode used for the time estimates

    Returns:
        CapacityAnalysis with plan, rates and estimates
    """
    if cost_per_operation <= 0:
        raise ValueError(f"cost_per_operation must be positive, got {cost_per_operation}")

    leak_rate = snapshot.leak_rate_per_second if snapshot else None
    reported = bool(leak_rate and leak_rate > 0)
    if not reported:
        logger.warning(
            "No leak rate reported, assuming {} points/sec", DEFAULT_LEAK_RATE
        )
        leak_rate = DEFAULT_LEAK_RATE
    assert leak_rate is not None

    capacity = DEFAULT_BUCKET_CAPACITY
    points_used = 0.0
    if snapshot is not None and snapshot.bucket_capacity > 0:
        capacity = snapshot.bucket_capacity
        points_used = snapshot.points_used

    plan = optimal_batch_config(leak_rate, cost_per_operation, mode)
    estimates = [
        estimate_time(count, leak_rate, cost_per_operation, plan) for count in milestones
    ]

    return CapacityAnalysis(
        leak_rate=leak_rate,
        bucket_capacity=capacity,
        points_used=points_used,
        plan=ThroughputTier.from_leak_rate(leak_rate),
        cost_per_operation=cost_per_operation,
        batch_plan=plan,
        estimates=estimates,
        leak_rate_reported=reported,
    )
