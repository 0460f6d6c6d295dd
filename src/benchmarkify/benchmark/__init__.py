"""Benchmark runs: payloads, strategies, metrics, audit log and service."""

from benchmarkify.shopify.exceptions import BenchmarkConfigurationError
from benchmarkify.shopify.pacing.results import BatchRecord, OperationResult, RunResult

from .audit import AuditLog, AuditSummary
from .enums import OperationKind, OutputFormat
from .metrics import BenchmarkSummary, Projection, summarize
from .payloads import ExistingProductProducer, RandomProductGenerator
from .service import BenchmarkReport, BenchmarkService
from .session import BenchmarkSession, generate_session_tag
from .strategies import (
    CreateProductStrategy,
    DeleteProductStrategy,
    ProductRef,
    UpdateProductStrategy,
    strategy_for,
)

__all__ = [
    "AuditLog",
    "AuditSummary",
    "BatchRecord",
    "BenchmarkConfigurationError",
    "BenchmarkReport",
    "BenchmarkService",
    "BenchmarkSession",
    "BenchmarkSummary",
    "CreateProductStrategy",
    "DeleteProductStrategy",
    "ExistingProductProducer",
    "OperationKind",
    "OperationResult",
    "OutputFormat",
    "ProductRef",
    "Projection",
    "RandomProductGenerator",
    "RunResult",
    "UpdateProductStrategy",
    "generate_session_tag",
    "strategy_for",
]
