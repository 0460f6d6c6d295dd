"""Main CLI application for Benchmarkify."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from benchmarkify import __version__
from benchmarkify.cli import benchmark as benchmark_cmd
from benchmarkify.cli import shopify as shopify_cmd
from benchmarkify.config import get_settings
from benchmarkify.logging import setup_logging

app = typer.Typer(
    name="benchmarkify",
    help="Adaptive throughput benchmarks for the Shopify Admin GraphQL API.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"benchmarkify version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
) -> None:
    """Benchmarkify - Measure how fast a store can absorb bulk product mutations."""
    settings = get_settings()
    log_config = settings.logging

    # Setup logging with CLI overrides
    setup_logging(
        level=settings.log_level,
        verbose=verbose,
        quiet=quiet,
        log_file=Path(log_config.log_file) if log_config.log_file else None,
        rotation=log_config.rotation,
        retention=log_config.retention,
        serialize=log_config.serialize,
    )


# Register subcommands
app.add_typer(benchmark_cmd.app, name="benchmark")
app.add_typer(shopify_cmd.app, name="shopify")


if __name__ == "__main__":
    app()
