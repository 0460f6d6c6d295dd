"""Adaptive batch size and delay controller.

This module turns leaky-bucket telemetry into concrete pacing decisions:
how many mutations to dispatch in the next batch and how long to wait
between batches.

Algorithm:
    usage = points_used / bucket_capacity * 100

    usage > critical   -> shrink batch hard, grow delay
    usage > high       -> shrink batch gently, grow delay slightly
    usage >= steady    -> hold
    usage >= very_low  -> grow batch, shrink delay
    otherwise          -> grow batch hard, shrink delay hard

Every step is multiplicative and clamped to the configured bounds, so the
controller converges geometrically from any starting point. Repeated
failures inside a rolling window force an extra slowdown on top of the
usage-based step.
"""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from benchmarkify.config import ControllerConfig, RetryConfig, TierConfig, get_settings
from benchmarkify.logging import get_logger

from .schemas import ErrorKind, RateLimitSnapshot, TelemetrySample

logger = get_logger(__name__)


@dataclass(frozen=True)
class ControllerSettings:
    """Pacing recommendation for the next batch."""

    batch_size: int
    delay_ms: int

    @property
    def delay_seconds(self) -> float:
        """Inter-batch delay in seconds."""
        return self.delay_ms / 1000


@dataclass(frozen=True)
class FailureRecord:
    """A failed attempt remembered for the rolling failure window."""

    timestamp: float
    error: str
    kind: ErrorKind | None
    batch_size: int
    delay_ms: int


class RateLimitController:
    """Tracks remote bucket pressure and recommends batch size and delay.

    One controller belongs to one benchmark run. All mutating methods are
    synchronous and contain no await points, so on a single event loop
    concurrent tasks can never interleave inside an update. The batch
    scheduler still applies a batch's telemetry only after the whole batch
    has settled, which keeps each sizing decision based on complete data.

    Usage:
        controller = RateLimitController()
        controller.reset()
        controller.initialize_from_leak_rate(leak_rate=1000, cost_per_operation=10)

        settings = controller.current_settings()
        # dispatch settings.batch_size operations...

        controller.record_sample(sample)  # once per attempt
        await asyncio.sleep(controller.current_settings().delay_seconds)
    """

    def __init__(
        self,
        config: ControllerConfig | None = None,
        retry_config: RetryConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the controller.

        Args:
            config: Optional controller configuration (uses settings if not provided)
            retry_config: Optional retry configuration for backoff calculation
            clock: Monotonic clock used for the failure window
        """
        settings = None
        if config is None or retry_config is None:
            settings = get_settings()
        self._config = config or settings.controller  # type: ignore[union-attr]
        self._retry_config = retry_config or settings.retry  # type: ignore[union-attr]
        self._clock = clock

        self._batch_size = self._config.default_batch_size
        self._delay_ms = self._config.default_delay_ms
        self._max_batch_size = self._config.max_batch_size
        self._high_throughput = False
        self._tier: str | None = None

        self._history: deque[RateLimitSnapshot] = deque(maxlen=self._config.history_size)
        self._failures: list[FailureRecord] = []
        self._total_samples = 0
        self._total_failures = 0

        self._clamp()

    @property
    def config(self) -> ControllerConfig:
        """Get the controller configuration."""
        return self._config

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    def reset(self) -> None:
        """Return to the aggressive defaults and forget all history."""
        self._batch_size = self._config.default_batch_size
        self._delay_ms = self._config.default_delay_ms
        self._max_batch_size = self._config.max_batch_size
        self._high_throughput = False
        self._tier = None
        self._history.clear()
        self._failures.clear()
        self._total_samples = 0
        self._total_failures = 0
        self._clamp()

        logger.info(
            "Controller reset to defaults (batch={}, delay={}ms)",
            self._batch_size,
            self._delay_ms,
        )

    def initialize_from_leak_rate(
        self,
        leak_rate_per_second: float | None,
        cost_per_operation: float = 10,
    ) -> TierConfig:
        """Pick starting settings from the detected leak rate.

        The starting batch is roughly one second's worth of operations
        and the run's max batch two seconds' worth, both capped by the
        tier. An unknown or non-positive leak rate selects the lowest tier
        at its caps.

        Args:
            leak_rate_per_second: Points restored per second, if known
            cost_per_operation: Expected cost of one operation

        Returns:
            The tier that was selected
        """
        tiers = self._config.tiers
        if cost_per_operation <= 0:
            cost_per_operation = 10

        if leak_rate_per_second is None or leak_rate_per_second <= 0:
            tier = tiers[-1]
            batch_size = tier.batch_size_cap
            max_batch_size = tier.max_batch_size_cap
        else:
            tier = next(
                (t for t in tiers if leak_rate_per_second >= t.min_leak_rate),
                tiers[-1],
            )
            per_second = leak_rate_per_second / cost_per_operation
            batch_size = min(tier.batch_size_cap, int(per_second))
            max_batch_size = min(tier.max_batch_size_cap, int(per_second * 2))

            if leak_rate_per_second >= self._config.high_throughput_leak_rate:
                self._enable_high_throughput(leak_rate_per_second)

        self._max_batch_size = max(1, max_batch_size)
        self._batch_size = batch_size
        self._delay_ms = tier.delay_ms
        self._tier = tier.name
        self._clamp()

        logger.info(
            "Calibrated for {} tier (leak_rate={}, batch={}, max_batch={}, delay={}ms)",
            tier.name,
            leak_rate_per_second,
            self._batch_size,
            self._max_batch_size,
            self._delay_ms,
        )
        return tier

    # -------------------------------------------------------------------------
    # Feedback
    # -------------------------------------------------------------------------
    def record_sample(self, sample: TelemetrySample) -> None:
        """Feed one attempt's telemetry into the controller."""
        self.update_from_sample(
            sample.rate_limit,
            sample.success,
            error=sample.error,
            error_kind=sample.error_kind,
        )

    def update_from_sample(
        self,
        snapshot: RateLimitSnapshot | None,
        success: bool = True,
        *,
        error: str | None = None,
        error_kind: ErrorKind | None = None,
    ) -> None:
        """Adjust batch size and delay from one attempt's outcome.

        A snapshot with known capacity drives the usage-band step. A
        throttled attempt that reported no bucket state is treated as a
        full bucket. Failures are additionally counted in the rolling
        failure window.

        Args:
            snapshot: Bucket state reported by the attempt, if any
            success: Whether the attempt succeeded
            error: Error description for failed attempts
            error_kind: Classification of the failure
        """
        self._total_samples += 1

        if snapshot is not None:
            self._history.append(snapshot)
            leak_rate = snapshot.leak_rate_per_second
            if leak_rate is not None and leak_rate >= self._config.high_throughput_leak_rate:
                self._enable_high_throughput(leak_rate)
            if snapshot.bucket_capacity > 0:
                self._apply_usage(snapshot.usage_percent)
        elif error_kind == ErrorKind.RATE_LIMITED:
            self._apply_usage(100.0)

        if not success:
            self.record_failure(error or "unknown error", error_kind)

    def record_failure(self, error: str, kind: ErrorKind | None = None) -> bool:
        """Remember a failure and slow down if too many accumulate.

        Args:
            error: Error description
            kind: Optional error classification

        Returns:
            True if the failure threshold was crossed and a slowdown applied
        """
        now = self._clock()
        self._total_failures += 1
        self._failures.append(
            FailureRecord(
                timestamp=now,
                error=error,
                kind=kind,
                batch_size=self._batch_size,
                delay_ms=self._delay_ms,
            )
        )

        cutoff = now - self._config.failure_window_seconds
        self._failures = [f for f in self._failures if f.timestamp > cutoff]

        if len(self._failures) <= self._config.failure_threshold:
            return False

        self._batch_size = _shrink(self._batch_size, self._config.failure_batch_factor)
        self._delay_ms = _grow(self._delay_ms, self._config.failure_delay_factor)
        self._clamp()
        # Start a fresh window so one burst cannot compound indefinitely
        self._failures.clear()

        logger.warning(
            "High failure rate detected, slowing down (batch={}, delay={}ms)",
            self._batch_size,
            self._delay_ms,
        )
        return True

    def optimize_for_throughput(self) -> bool:
        """Push harder when the last observed usage leaves headroom.

        Called by the scheduler after a clearly successful batch. The
        proportional step alone recovers slowly after a shrink.

        Returns:
            True if settings were changed
        """
        usage = self._history[-1].usage_percent if self._history else 0.0
        if usage >= self._config.optimize_usage_ceiling_pct:
            return False

        self._batch_size = self._batch_size + self._config.optimize_batch_increment
        self._delay_ms = self._delay_ms - self._config.optimize_delay_decrement_ms
        self._clamp()

        logger.debug(
            "Optimizing for throughput at {:.1f}% usage (batch={}, delay={}ms)",
            usage,
            self._batch_size,
            self._delay_ms,
        )
        return True

    def _apply_usage(self, usage: float) -> None:
        """Apply the usage-band step."""
        cfg = self._config
        batch = self._batch_size
        delay = self._delay_ms

        gentle = max(1, _shrink(batch, cfg.high_batch_factor))
        if usage > cfg.critical_usage_pct:
            # Floor at a quarter of max, but never above the gentle step
            floor = min(self._max_batch_size // 4, gentle - 1)
            new_batch = min(gentle, max(_shrink(batch, cfg.critical_batch_factor), floor))
            new_delay = _grow(delay, cfg.critical_delay_factor)
            logger.debug("Very high usage ({:.1f}%)", usage)
        elif usage > cfg.high_usage_pct:
            new_batch = gentle
            new_delay = _grow(delay, cfg.high_delay_factor)
            logger.debug("High usage ({:.1f}%)", usage)
        elif usage >= cfg.steady_usage_pct:
            return
        else:
            low = _grow(batch, cfg.low_batch_factor)
            if usage >= cfg.very_low_usage_pct:
                new_batch = low
                new_delay = _shrink(delay, cfg.low_delay_factor)
            else:
                new_batch = max(low, _grow(batch, cfg.very_low_batch_factor))
                new_delay = _shrink(delay, cfg.very_low_delay_factor)

        self._batch_size = new_batch
        self._delay_ms = new_delay
        self._clamp()

        logger.debug(
            "Usage {:.1f}% -> batch={}, delay={}ms",
            usage,
            self._batch_size,
            self._delay_ms,
        )

    def _enable_high_throughput(self, leak_rate: float) -> None:
        if not self._high_throughput:
            self._high_throughput = True
            logger.info("High-throughput API detected ({} points/sec)", leak_rate)

    def _clamp(self) -> None:
        cfg = self._config
        self._batch_size = max(1, min(self._batch_size, self._max_batch_size))
        self._delay_ms = max(cfg.min_delay_ms, min(self._delay_ms, cfg.max_delay_ms))

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------
    def current_settings(self) -> ControllerSettings:
        """Get the current recommendation (no side effects)."""
        return ControllerSettings(batch_size=self._batch_size, delay_ms=self._delay_ms)

    def retry_delay(self, attempt_index: int) -> int:
        """Exponential backoff in milliseconds for a zero-based attempt index."""
        base = self._retry_config.base_retry_delay_ms
        delay = base * (2 ** max(0, attempt_index))
        return min(delay, self._config.max_delay_ms)

    @property
    def max_batch_size(self) -> int:
        """Largest batch allowed for the current run."""
        return self._max_batch_size

    @property
    def is_high_throughput_mode(self) -> bool:
        """Whether a high leak rate has been observed since the last reset."""
        return self._high_throughput

    @property
    def tier(self) -> str | None:
        """Name of the calibrated tier (None before calibration)."""
        return self._tier

    @property
    def history(self) -> tuple[RateLimitSnapshot, ...]:
        """Most recent snapshots, oldest first."""
        return tuple(self._history)

    @property
    def last_snapshot(self) -> RateLimitSnapshot | None:
        """Most recent snapshot, if any."""
        return self._history[-1] if self._history else None

    @property
    def recent_failure_count(self) -> int:
        """Failures currently inside the rolling window."""
        cutoff = self._clock() - self._config.failure_window_seconds
        return sum(1 for f in self._failures if f.timestamp > cutoff)

    def performance_summary(self, window: int = 10) -> dict[str, Any] | None:
        """Summarize recent controller behaviour.

        Args:
            window: Number of most recent snapshots to average over

        Returns:
            Dict of averages and current settings, or None before any snapshot
        """
        if not self._history:
            return None

        recent = list(self._history)[-window:]
        leak_rates = [s.leak_rate_per_second for s in recent if s.leak_rate_per_second]

        return {
            "average_usage": round(sum(s.usage_percent for s in recent) / len(recent), 2),
            "average_leak_rate": (
                round(sum(leak_rates) / len(leak_rates), 2) if leak_rates else None
            ),
            "current_batch_size": self._batch_size,
            "current_delay_ms": self._delay_ms,
            "max_batch_size": self._max_batch_size,
            "total_rate_limit_checks": self._total_samples,
            "total_failures": self._total_failures,
            "recent_failures": self.recent_failure_count,
            "is_high_throughput_mode": self._high_throughput,
            "tier": self._tier,
        }

    def to_dict(self) -> dict[str, Any]:
        """Export current state as dictionary (for logging/metrics)."""
        last = self.last_snapshot
        return {
            "batch_size": self._batch_size,
            "delay_ms": self._delay_ms,
            "max_batch_size": self._max_batch_size,
            "is_high_throughput_mode": self._high_throughput,
            "tier": self._tier,
            "history_size": len(self._history),
            "last_usage_percent": round(last.usage_percent, 2) if last else None,
        }


def _shrink(value: int, factor: float) -> int:
    return int(value * factor)


def _grow(value: int, factor: float) -> int:
    # Always move by at least one so small values are not stuck
    return max(value + 1, int(value * factor))
