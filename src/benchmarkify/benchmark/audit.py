"""In-memory audit log for benchmark sessions.

The audit log is the scheduler's result sink. It keeps every operation
outcome and rate limit sample, the registry of products created during
the session, and derives a summary with recommended settings for the
next run. Writing it to disk is left to the caller via ``to_dict()``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from benchmarkify.config import ControllerConfig, get_settings
from benchmarkify.logging import get_logger
from benchmarkify.shopify.pacing.results import OperationResult
from benchmarkify.shopify.rate_limit.schemas import RateLimitSnapshot

from .enums import OperationKind
from .strategies import ProductRef

logger = get_logger(__name__)

BASE_RECOMMENDED_BATCH_SIZE = 10
BASE_RECOMMENDED_DELAY_MS = 100
RECENT_SAMPLE_WINDOW = 10


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class OperationRecord:
    """One operation outcome as stored in the audit log."""

    timestamp: datetime
    kind: str
    success: bool
    cost: float
    response_time_seconds: float
    attempts: int
    remote_id: str | None = None
    error_kind: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "kind": self.kind,
            "success": self.success,
            "cost": self.cost,
            "response_time_seconds": round(self.response_time_seconds, 4),
            "attempts": self.attempts,
            "remote_id": self.remote_id,
            "error_kind": self.error_kind,
            "error": self.error,
        }


@dataclass(frozen=True)
class RateLimitRecord:
    """One rate limit sample as stored in the audit log."""

    timestamp: datetime
    points_used: float
    bucket_capacity: float
    points_available: float
    usage_percent: float
    leak_rate_per_second: float | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "points_used": self.points_used,
            "bucket_capacity": self.bucket_capacity,
            "points_available": self.points_available,
            "usage_percent": round(self.usage_percent, 2),
            "leak_rate_per_second": self.leak_rate_per_second,
        }


@dataclass(frozen=True)
class CreatedProduct:
    """A product created during this session."""

    id: str
    title: str
    session_tag: str
    created_at: datetime

    def to_ref(self) -> ProductRef:
        return ProductRef(id=self.id, title=self.title)


@dataclass(frozen=True)
class AuditSummary:
    """Aggregate view of an audit log."""

    total_operations: int
    successful_operations: int
    failed_operations: int
    total_cost: float
    average_response_time: float
    peak_usage_percent: float
    recommended_batch_size: int
    recommended_delay_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_operations": self.total_operations,
            "successful_operations": self.successful_operations,
            "failed_operations": self.failed_operations,
            "total_cost": self.total_cost,
            "average_response_time": round(self.average_response_time, 4),
            "peak_usage_percent": round(self.peak_usage_percent, 2),
            "recommended_batch_size": self.recommended_batch_size,
            "recommended_delay_ms": self.recommended_delay_ms,
        }


class AuditLog:
    """Records operation outcomes and rate limit samples for a session.

    Usage:
        audit = AuditLog(session_tag="benchmarkify-1700000000-ab12cd")
        scheduler = BatchScheduler(controller, client.execute, sink=audit)
        await scheduler.run(...)

        summary = audit.finalize()
        print(summary.recommended_batch_size)
    """

    def __init__(
        self,
        session_tag: str,
        config: ControllerConfig | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the audit log.

        Args:
            session_tag: Tag identifying the benchmark session
            config: Optional controller config for recommendation thresholds
            clock: Timestamp source (injectable for tests)
        """
        self._session_tag = session_tag
        self._config = config or get_settings().controller
        self._clock = clock
        self._started_at = clock()
        self._ended_at: datetime | None = None
        self._operations: list[OperationRecord] = []
        self._rate_limits: list[RateLimitRecord] = []
        self._created: dict[str, CreatedProduct] = {}

    @property
    def session_tag(self) -> str:
        return self._session_tag

    @property
    def operations(self) -> list[OperationRecord]:
        return list(self._operations)

    @property
    def rate_limit_history(self) -> list[RateLimitRecord]:
        return list(self._rate_limits)

    @property
    def created_products(self) -> list[CreatedProduct]:
        """Products created this session and not deleted since, oldest first."""
        return list(self._created.values())

    # -------------------------------------------------------------------------
    # Sink Interface
    # -------------------------------------------------------------------------
    def record_operation(self, kind: str, result: OperationResult, item: Any) -> None:
        """Store an operation outcome and keep the product registry current."""
        self._operations.append(
            OperationRecord(
                timestamp=self._clock(),
                kind=OperationKind(kind).value,
                success=result.success,
                cost=result.cost,
                response_time_seconds=result.response_time_seconds,
                attempts=result.attempts,
                remote_id=result.remote_id,
                error_kind=str(result.error_kind) if result.error_kind else None,
                error=result.error,
            )
        )

        if not result.success:
            return

        if kind == OperationKind.CREATE and result.remote_id:
            title = item.get("title", "") if isinstance(item, dict) else ""
            self._created[result.remote_id] = CreatedProduct(
                id=result.remote_id,
                title=title,
                session_tag=self._session_tag,
                created_at=self._clock(),
            )
            logger.debug("Registered created product {}", result.remote_id)
        elif kind == OperationKind.DELETE:
            product_id = result.remote_id or getattr(item, "id", None)
            if product_id:
                self._created.pop(product_id, None)

    def record_rate_limit(self, snapshot: RateLimitSnapshot) -> None:
        """Store a rate limit sample."""
        self._rate_limits.append(
            RateLimitRecord(
                timestamp=self._clock(),
                points_used=snapshot.points_used,
                bucket_capacity=snapshot.bucket_capacity,
                points_available=snapshot.points_available,
                usage_percent=snapshot.usage_percent,
                leak_rate_per_second=snapshot.leak_rate_per_second,
            )
        )

    # -------------------------------------------------------------------------
    # Summary
    # -------------------------------------------------------------------------
    def created_product_refs(self, limit: int | None = None) -> list[ProductRef]:
        """Registered products as refs for update/delete producers."""
        refs = [p.to_ref() for p in self._created.values()]
        return refs if limit is None else refs[:limit]

    def summary(self) -> AuditSummary:
        """Compute the summary of everything recorded so far.

        Recommendations start from a conservative base and move by the
        average usage of the most recent samples: high usage recommends
        smaller batches and longer delays, low usage the reverse.
        """
        ops = self._operations
        timed = [op.response_time_seconds for op in ops]
        usages = [r.usage_percent for r in self._rate_limits]

        batch_size = BASE_RECOMMENDED_BATCH_SIZE
        delay_ms = BASE_RECOMMENDED_DELAY_MS
        if usages:
            recent = usages[-RECENT_SAMPLE_WINDOW:]
            average = sum(recent) / len(recent)
            if average > self._config.high_usage_threshold_pct:
                batch_size = max(1, int(batch_size * 0.7))
                delay_ms = min(5000, int(delay_ms * 1.5))
            elif average < self._config.low_usage_threshold_pct:
                batch_size = min(100, int(batch_size * 1.3))
                delay_ms = max(50, int(delay_ms * 0.8))

        successful = sum(1 for op in ops if op.success)
        return AuditSummary(
            total_operations=len(ops),
            successful_operations=successful,
            failed_operations=len(ops) - successful,
            total_cost=sum(op.cost for op in ops),
            average_response_time=sum(timed) / len(timed) if timed else 0.0,
            peak_usage_percent=max(usages) if usages else 0.0,
            recommended_batch_size=batch_size,
            recommended_delay_ms=delay_ms,
        )

    def finalize(self) -> AuditSummary:
        """Mark the session finished and return the final summary."""
        self._ended_at = self._clock()
        summary = self.summary()
        logger.info("Audit log finalized with {} operations", summary.total_operations)
        return summary

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "session_tag": self._session_tag,
            "started_at": self._started_at.isoformat(),
            "ended_at": self._ended_at.isoformat() if self._ended_at else None,
            "summary": self.summary().to_dict(),
            "operations": [op.to_dict() for op in self._operations],
            "rate_limit_history": [r.to_dict() for r in self._rate_limits],
            "created_products": [
                {
                    "id": p.id,
                    "title": p.title,
                    "session_tag": p.session_tag,
                    "created_at": p.created_at.isoformat(),
                }
                for p in self._created.values()
            ],
        }
