"""Enums for benchmark operations."""

from enum import Enum


class OperationKind(str, Enum):
    """Kind of bulk operation being benchmarked."""

    CREATE = "create"
    """Create new products from random data."""

    UPDATE = "update"
    """Update existing benchmark products."""

    DELETE = "delete"
    """Delete existing benchmark products."""


class OutputFormat(str, Enum):
    """Output format for CLI commands."""

    TEXT = "text"
    """Human-readable text output."""

    JSON = "json"
    """Machine-readable JSON output."""
