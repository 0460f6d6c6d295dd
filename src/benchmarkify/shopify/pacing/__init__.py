"""Batch execution and retry pacing for the Shopify GraphQL API.

Components:
- RetryWrapper: Per-operation retries with exponential backoff
- BatchScheduler: Adaptive batch loop driven by the rate limit controller
- OperationResult / BatchRecord / RunResult: Run outcomes
"""

from .results import BatchRecord, OperationResult, RunResult
from .retry import RetryWrapper, wait_or_cancel
from .scheduler import (
    BatchCallback,
    BatchScheduler,
    OperationExecutor,
    OperationStrategy,
    PayloadProducer,
    ResultSink,
)

__all__ = [
    # Results
    "BatchRecord",
    "OperationResult",
    "RunResult",
    # Retry
    "RetryWrapper",
    "wait_or_cancel",
    # Scheduling
    "BatchCallback",
    "BatchScheduler",
    "OperationExecutor",
    "OperationStrategy",
    "PayloadProducer",
    "ResultSink",
]
