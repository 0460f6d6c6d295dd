"""Rate limit tracking and adaptation for the Shopify GraphQL API.

The controller turns leaky-bucket telemetry reported by each request
into batch size and delay recommendations for the batch scheduler.
"""

from .analysis import (
    BatchPlan,
    CapacityAnalysis,
    OptimizationMode,
    TimeEstimate,
    analyze_capacity,
    estimate_time,
    optimal_batch_config,
)
from .controller import ControllerSettings, RateLimitController
from .schemas import ErrorKind, RateLimitSnapshot, TelemetrySample, ThroughputTier

__all__ = [
    # Analysis
    "BatchPlan",
    "CapacityAnalysis",
    "OptimizationMode",
    "TimeEstimate",
    "analyze_capacity",
    "estimate_time",
    "optimal_batch_config",
    # Controller
    "ControllerSettings",
    "RateLimitController",
    # Schemas
    "ErrorKind",
    "RateLimitSnapshot",
    "TelemetrySample",
    "ThroughputTier",
]
