"""Schemas for Shopify GraphQL rate limit telemetry.

These schemas represent leaky-bucket state from:
- ``extensions.cost.throttleStatus`` in GraphQL responses
- the ``X-Shopify-Shop-Api-Call-Limit`` response header
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class ErrorKind(StrEnum):
    """Classification of a failed request attempt."""

    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    GRAPHQL = "graphql"
    USER_ERROR = "user_error"
    AUTHENTICATION = "authentication"
    CANCELLED = "cancelled"

    @property
    def is_retryable(self) -> bool:
        """Whether another attempt could plausibly succeed."""
        return self not in (ErrorKind.USER_ERROR, ErrorKind.AUTHENTICATION, ErrorKind.CANCELLED)


class RateLimitSnapshot(BaseModel):
    """Point-in-time view of the remote leaky bucket.

    ``points_available`` is always derived as capacity minus used, so the
    pair can never disagree.
    """

    model_config = ConfigDict(frozen=True)

    points_used: float = Field(ge=0, description="Current bucket occupancy")
    bucket_capacity: float = Field(ge=0, description="Maximum points the bucket holds")
    leak_rate_per_second: float | None = Field(
        default=None, ge=0, description="Points restored per second (None if not reported)"
    )
    cost_of_last_operation: float = Field(default=0, ge=0, description="Points charged")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="after")
    def _used_within_capacity(self) -> Self:
        if self.points_used > self.bucket_capacity:
            raise ValueError("points_used cannot exceed bucket_capacity")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def points_available(self) -> float:
        """Points left in the bucket."""
        return self.bucket_capacity - self.points_used

    @computed_field  # type: ignore[prop-decorator]
    @property
    def usage_percent(self) -> float:
        """Percentage of the bucket in use (0.0 to 100.0).

        An unknown (zero) capacity reports 0.0 so callers fall back to
        their standard behaviour instead of dividing by zero.
        """
        if self.bucket_capacity <= 0:
            return 0.0
        return (self.points_used / self.bucket_capacity) * 100

    @classmethod
    def from_throttle_status(
        cls,
        throttle_status: dict[str, Any],
        cost: float = 0,
    ) -> Self:
        """Parse from ``extensions.cost.throttleStatus``.

        Args:
            throttle_status: Dict with maximumAvailable, currentlyAvailable, restoreRate
            cost: Actual cost charged for the query

        Returns:
            RateLimitSnapshot instance
        """
        capacity = float(throttle_status.get("maximumAvailable") or 0)
        available = float(throttle_status.get("currentlyAvailable") or 0)
        available = min(max(available, 0.0), capacity)
        restore_rate = throttle_status.get("restoreRate")

        return cls(
            points_used=capacity - available,
            bucket_capacity=capacity,
            leak_rate_per_second=float(restore_rate) if restore_rate is not None else None,
            cost_of_last_operation=max(float(cost), 0.0),
        )

    @classmethod
    def from_call_limit_header(cls, value: str, cost: float = 0) -> Self | None:
        """Parse from an ``X-Shopify-Shop-Api-Call-Limit`` header ("used/limit").

        Returns None when the header is malformed. The header carries no
        leak rate.
        """
        try:
            used_str, limit_str = value.split("/", 1)
            used = float(used_str)
            limit = float(limit_str)
        except ValueError:
            return None

        if limit < 0 or used < 0:
            return None

        return cls(
            points_used=min(used, limit),
            bucket_capacity=limit,
            cost_of_last_operation=max(float(cost), 0.0),
        )


@dataclass(frozen=True)
class TelemetrySample:
    """Outcome of one request attempt.

    Produced by the request executor and consumed by the controller.
    ``rate_limit`` is only set when the response actually reported
    bucket state.
    """

    success: bool
    cost: float = 0.0
    rate_limit: RateLimitSnapshot | None = None
    response_time_seconds: float = 0.0
    error_kind: ErrorKind | None = None
    error: str | None = None
    retry_after_seconds: float | None = None
    remote_id: str | None = None
    data: dict[str, Any] | None = field(default=None, compare=False, repr=False)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        error: str,
        *,
        cost: float = 0.0,
        response_time_seconds: float = 0.0,
        rate_limit: RateLimitSnapshot | None = None,
        retry_after_seconds: float | None = None,
    ) -> "TelemetrySample":
        """Create a sample describing a failed attempt."""
        return cls(
            success=False,
            cost=cost,
            rate_limit=rate_limit,
            response_time_seconds=response_time_seconds,
            error_kind=kind,
            error=error,
            retry_after_seconds=retry_after_seconds,
        )


class ThroughputTier(StrEnum):
    """Shopify plan inferred from the bucket leak rate."""

    STANDARD = "Standard Shopify"
    ADVANCED = "Advanced Shopify"
    PLUS = "Shopify Plus"
    ENTERPRISE = "Shopify for Enterprise"

    @classmethod
    def from_leak_rate(cls, leak_rate: float) -> "ThroughputTier":
        """Map a leak rate (points/sec) to the plan that provides it."""
        if leak_rate >= 2000:
            return cls.ENTERPRISE
        if leak_rate >= 1000:
            return cls.PLUS
        if leak_rate >= 200:
            return cls.ADVANCED
        return cls.STANDARD
