"""Tests for static capacity analysis and batch planning."""

import pytest
from tests.fixtures.throttle_responses import snapshot_at

from benchmarkify.shopify.rate_limit.analysis import (
    MAX_PLANNED_DELAY_MS,
    BatchPlan,
    OptimizationMode,
    analyze_capacity,
    estimate_time,
    optimal_batch_config,
)
from benchmarkify.shopify.rate_limit.schemas import ThroughputTier


class TestOptimalBatchConfig:
    """Tests for optimal_batch_config."""

    def test_aggressive_plan(self) -> None:
        """Batch fills most of a two-second bucket, delay drains it."""
        plan = optimal_batch_config(1000, 7, OptimizationMode.AGGRESSIVE)

        assert plan.batch_size == 257
        assert plan.delay_ms == 1835
        assert plan.mode == OptimizationMode.AGGRESSIVE

    def test_delay_covers_drain_time(self) -> None:
        """The delay is never shorter than the time to leak the batch's cost."""
        for mode in OptimizationMode:
            plan = optimal_batch_config(100, 10, mode)
            drain_ms = plan.batch_size * 10 / 100 * 1000
            assert plan.delay_ms >= min(drain_ms, MAX_PLANNED_DELAY_MS)

    def test_batch_capped_by_mode_maximum(self) -> None:
        """Very high leak rates hit the mode's batch ceiling."""
        plan = optimal_batch_config(100_000, 1, OptimizationMode.AGGRESSIVE)

        assert plan.batch_size == 1000
        assert plan.delay_ms == 25

    def test_batch_floor_and_delay_cap(self) -> None:
        """Tiny leak rates use the mode's minimum batch and the delay cap."""
        plan = optimal_batch_config(10, 10, OptimizationMode.THROUGHPUT)

        assert plan.batch_size == 10
        assert plan.delay_ms == MAX_PLANNED_DELAY_MS

    def test_balanced_is_more_conservative(self) -> None:
        """Balanced plans smaller batches than aggressive."""
        aggressive = optimal_batch_config(2000, 10, OptimizationMode.AGGRESSIVE)
        balanced = optimal_batch_config(2000, 10, OptimizationMode.BALANCED)
        assert balanced.batch_size < aggressive.batch_size

    @pytest.mark.parametrize(("leak_rate", "cost"), [(0, 10), (-1, 10), (100, 0), (100, -5)])
    def test_rejects_non_positive_inputs(self, leak_rate: float, cost: float) -> None:
        """Leak rate and cost must be positive."""
        with pytest.raises(ValueError):
            optimal_batch_config(leak_rate, cost)


class TestEstimateTime:
    """Tests for estimate_time."""

    def test_minutes_estimate(self) -> None:
        """Processing time is cost over leak rate plus inter-batch delays."""
        plan = BatchPlan(batch_size=50, delay_ms=100, mode=OptimizationMode.THROUGHPUT)
        estimate = estimate_time(1000, 100, 10, plan)

        assert estimate.total_cost == 10_000
        assert estimate.batches == 20
        assert estimate.processing_seconds == pytest.approx(100.0)
        assert estimate.delay_seconds == pytest.approx(1.9)
        assert estimate.total_seconds == pytest.approx(101.9)
        assert estimate.display == "2 minutes"

    def test_seconds_display(self) -> None:
        """Short runs display in whole seconds, rounded up."""
        plan = BatchPlan(batch_size=100, delay_ms=0, mode=OptimizationMode.THROUGHPUT)
        estimate = estimate_time(301, 100, 10, plan)
        assert estimate.display == "31 seconds"

    def test_hours_display(self) -> None:
        """Long runs display in hours."""
        plan = BatchPlan(batch_size=1000, delay_ms=0, mode=OptimizationMode.THROUGHPUT)
        estimate = estimate_time(72_000, 100, 10, plan)
        assert estimate.display == "2 hours"

    def test_zero_operations(self) -> None:
        """Nothing to do takes no time."""
        plan = BatchPlan(batch_size=10, delay_ms=100, mode=OptimizationMode.THROUGHPUT)
        estimate = estimate_time(0, 100, 10, plan)

        assert estimate.batches == 0
        assert estimate.total_seconds == 0
        assert estimate.display == "0 seconds"

    def test_to_dict(self) -> None:
        """to_dict includes the display string."""
        plan = BatchPlan(batch_size=50, delay_ms=100, mode=OptimizationMode.THROUGHPUT)
        data = estimate_time(1000, 100, 10, plan).to_dict()
        assert data["batches"] == 20
        assert data["display"] == "2 minutes"


class TestAnalyzeCapacity:
    """Tests for analyze_capacity."""

    def test_plus_store(self) -> None:
        """1000 points/sec is a Plus store doing 100 ops/sec at cost 10."""
        snapshot = snapshot_at(10, capacity=10000, leak_rate=1000)
        analysis = analyze_capacity(snapshot, 10)

        assert analysis.plan == ThroughputTier.PLUS
        assert analysis.leak_rate_reported is True
        assert analysis.bucket_capacity == 10000
        assert analysis.points_used == pytest.approx(1000)
        assert analysis.operations_per_second == 100
        assert analysis.operations_per_minute == 6000
        assert analysis.operations_per_hour == 360_000
        assert [e.operation_count for e in analysis.estimates] == [
            1_000,
            100_000,
            1_000_000,
            10_000_000,
        ]

    def test_missing_snapshot_falls_back(self) -> None:
        """No calibration data assumes the standard 100 points/sec."""
        analysis = analyze_capacity(None, 10)

        assert analysis.leak_rate == 100
        assert analysis.leak_rate_reported is False
        assert analysis.plan == ThroughputTier.STANDARD
        assert analysis.bucket_capacity == 1000
        assert analysis.operations_per_second == 10

    def test_missing_leak_rate_falls_back(self) -> None:
        """Header-only snapshots have no leak rate."""
        analysis = analyze_capacity(snapshot_at(50, capacity=40, leak_rate=None), 10)

        assert analysis.leak_rate == 100
        assert analysis.leak_rate_reported is False
        assert analysis.bucket_capacity == 40

    def test_custom_milestones(self) -> None:
        """Estimates follow the requested milestones."""
        analysis = analyze_capacity(snapshot_at(0, leak_rate=100), 10, milestones=[50])
        assert len(analysis.estimates) == 1
        assert analysis.estimates[0].operation_count == 50

    def test_rejects_non_positive_cost(self) -> None:
        """Cost per operation must be positive."""
        with pytest.raises(ValueError):
            analyze_capacity(snapshot_at(0), 0)

    def test_explanation_and_to_dict(self) -> None:
        """Explanation names the plan and the rates."""
        analysis = analyze_capacity(snapshot_at(0, capacity=20000, leak_rate=2000), 10)

        assert "Shopify for Enterprise" in analysis.explanation
        assert "200 operations per second" in analysis.explanation

        data = analysis.to_dict()
        assert data["plan"] == "Shopify for Enterprise"
        assert data["operations_per_second"] == 200
        assert data["batch_plan"]["mode"] == "aggressive"
        assert len(data["estimates"]) == 4
