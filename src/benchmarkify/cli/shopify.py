"""Shopify API verification and capacity analysis commands."""

import json

import typer
from rich.table import Table

from benchmarkify.benchmark import BenchmarkService, OutputFormat
from benchmarkify.cli.common import CostOption, OutputFormatOption, console, run_async_command
from benchmarkify.config import get_settings
from benchmarkify.shopify import ShopifyClient
from benchmarkify.shopify.rate_limit import CapacityAnalysis, TelemetrySample

app = typer.Typer(help="Shopify API commands")


@app.command("test")
def test_connection() -> None:
    """Test Admin API connectivity and report the bucket state.

    Examples:
        benchmarkify shopify test
    """
    settings = get_settings()
    if not settings.store_url or not settings.access_token:
        console.print("[red]Error:[/red] STORE_URL and ACCESS_TOKEN must be set in environment")
        raise typer.Exit(1)

    async def _test() -> TelemetrySample:
        async with ShopifyClient() as client:
            console.print(f"[bold]Connecting to {client.endpoint}...[/bold]")
            return await client.calibrate()

    sample = run_async_command(_test(), error_prefix="Connection failed")

    if not sample.success:
        console.print(f"[red]Error:[/red] {sample.error_kind}: {sample.error}")
        raise typer.Exit(1)

    shop = ((sample.data or {}).get("data") or {}).get("shop") or {}
    console.print(f"  Shop: {shop.get('name', '<unknown>')} ({shop.get('id', '?')})")
    console.print(f"  Response time: {sample.response_time_seconds * 1000:.0f}ms")

    snapshot = sample.rate_limit
    if snapshot is None:
        console.print("[yellow]Warning:[/yellow] Response reported no rate limit state")
    else:
        console.print(
            f"  Bucket: {snapshot.points_available:g}/{snapshot.bucket_capacity:g} points available"
        )
        if snapshot.leak_rate_per_second is not None:
            console.print(f"  Leak rate: {snapshot.leak_rate_per_second:g} points/sec")

    console.print("\n[green]Shopify API connection verified![/green]")


@app.command("analyze")
def analyze(
    cost: CostOption = None,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Analyze rate limit capacity and estimate benchmark durations.

    Examples:
        benchmarkify shopify analyze
        benchmarkify shopify analyze --cost 12 --format json
    """
    if cost is not None and cost <= 0:
        console.print("[red]Error:[/red] --cost must be positive")
        raise typer.Exit(1)

    async def _analyze() -> CapacityAnalysis:
        async with ShopifyClient() as client:
            return await BenchmarkService(client).analyze(cost)

    analysis = run_async_command(_analyze(), error_prefix="Analysis failed")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(analysis.to_dict()))
        return

    console.print(f"[bold]Plan:[/bold] {analysis.plan}")
    if not analysis.leak_rate_reported:
        console.print("[yellow]Warning:[/yellow] Leak rate not reported, assuming standard plan")
    console.print(f"  Leak rate:        {analysis.leak_rate:g} points/sec")
    console.print(f"  Bucket capacity:  {analysis.bucket_capacity:g} points")
    console.print(f"  Cost/operation:   {analysis.cost_per_operation:g} points")
    console.print(f"  Operations/sec:   {analysis.operations_per_second}")
    console.print(f"  Operations/hour:  {analysis.operations_per_hour:,}")
    console.print(
        f"  Planned batches:  {analysis.batch_plan.batch_size} ops, "
        f"{analysis.batch_plan.delay_ms}ms apart ({analysis.batch_plan.mode})"
    )
    console.print()

    table = Table(title="Time Estimates")
    table.add_column("Products", justify="right", style="cyan")
    table.add_column("Batches", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Time", justify="right")
    for estimate in analysis.estimates:
        table.add_row(
            f"{estimate.operation_count:,}",
            f"{estimate.batches:,}",
            f"{estimate.total_cost:,.0f}",
            estimate.display,
        )
    console.print(table)
    console.print()
    console.print(f"[dim]{analysis.explanation}[/dim]")
