"""Common CLI option factories and helpers.

This module centralizes reusable CLI options to reduce duplication
and consolidate noqa comments for Typer's required function call pattern.

It also provides `run_async_command`: unified async execution with error
handling for CLI commands.
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from pathlib import Path
from typing import Annotated, TypeVar

import typer
from rich.console import Console

from benchmarkify.benchmark.enums import OutputFormat

# Shared console instance for CLI output
console = Console()

T = TypeVar("T")


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Execute async code from synchronous CLI command with unified error handling.

    Uses asyncio.run() for clean event loop management. Catches exceptions,
    prints user-friendly error messages, and exits with code 1.

    Args:
        coro: Async coroutine to execute
        error_prefix: Prefix for error messages (default: "Error")

    Returns:
        Result from the coroutine

    Raises:
        typer.Exit: Re-raised from deliberate exits, or raised with code 1 on error

    Example:
        async def _analyze() -> CapacityAnalysis:
            async with ShopifyClient() as client:
                return await BenchmarkService(client).analyze()

        analysis = run_async_command(_analyze(), error_prefix="Analysis failed")
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        # Re-raise deliberate exits (e.g., from validation helpers)
        raise
    except Exception as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None


# Typer requires function calls as default arguments, which triggers B008.
# Using Annotated with a centralized type alias keeps the noqa in one place.

OutputFormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        help="Output format",
    ),
]
"""Output format option type for CLI commands.

Usage:
    def command(output_format: OutputFormatOption = OutputFormat.TEXT):
"""

CountOption = Annotated[
    int,
    typer.Option(
        "--count",
        "-n",
        min=1,
        help="Number of products to operate on",
    ),
]
"""Operation count option type for benchmark commands.

Usage:
    def create(count: CountOption = 5):
"""

CostOption = Annotated[
    float | None,
    typer.Option(
        "--cost",
        "-c",
        help="Cost per operation in points (defaults to BENCHMARK__COST_PER_OPERATION)",
    ),
]
"""Per-operation cost override option."""

AuditLogOption = Annotated[
    Path | None,
    typer.Option(
        "--audit-log",
        help="Write the session audit log (operations, rate limits, summary) as JSON",
        dir_okay=False,
        writable=True,
    ),
]
"""Audit log output path option for benchmark commands."""
