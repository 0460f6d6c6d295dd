"""Benchmark commands: create, update, delete and cleanup."""

import asyncio
import contextlib
import json
import signal
from pathlib import Path

import typer
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.table import Table

from benchmarkify.benchmark import (
    BatchRecord,
    BenchmarkReport,
    BenchmarkService,
    OperationKind,
    OutputFormat,
)
from benchmarkify.cli.common import (
    AuditLogOption,
    CountOption,
    OutputFormatOption,
    console,
    run_async_command,
)
from benchmarkify.shopify import ShopifyClient

app = typer.Typer(help="Run create/update/delete benchmarks")


def _run_benchmark(
    kind: OperationKind | None,
    count: int,
    output_format: OutputFormat,
    audit_log: Path | None = None,
) -> None:
    """Run one benchmark (or cleanup when kind is None) and print the report."""
    show_progress = output_format == OutputFormat.TEXT

    async def _run() -> BenchmarkReport:
        cancel_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        # Ctrl+C finishes the batch in flight, then stops
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signal.SIGINT, cancel_event.set)

        with Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TextColumn("{task.fields[settings]}"),
            console=console,
            disable=not show_progress,
            transient=True,
        ) as progress:
            task = progress.add_task(
                (kind or OperationKind.DELETE).value.capitalize(),
                total=count or None,
                settings="",
            )

            def on_batch(record: BatchRecord) -> None:
                progress.update(
                    task,
                    completed=record.completed,
                    total=record.requested,
                    settings=f"batch={record.batch_size_setting} delay={record.delay_ms}ms",
                )

            async with ShopifyClient() as client:
                service = BenchmarkService(client)
                if kind is None:
                    report = await service.cleanup(
                        cancel_event=cancel_event, progress=on_batch
                    )
                else:
                    report = await service.run(
                        kind, count, cancel_event=cancel_event, progress=on_batch
                    )

        if audit_log is not None:
            _write_audit_log(service, audit_log, announce=show_progress)
        return report

    report = run_async_command(_run(), error_prefix="Benchmark failed")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(report.to_dict()))
        return

    _print_report(report)


def _write_audit_log(service: BenchmarkService, path: Path, *, announce: bool) -> None:
    """Finalize the session audit log and write it as JSON."""
    audit = service.session.audit
    audit.finalize()
    path.write_text(json.dumps(audit.to_dict(), indent=2))
    if announce:
        console.print(f"[dim]Audit log written to {path}[/dim]")


def _print_report(report: BenchmarkReport) -> None:
    """Print a benchmark report as text."""
    summary = report.summary

    status = "[yellow]Cancelled[/yellow]" if report.run.cancelled else "[bold]Complete[/bold]"
    console.print(f"{status} {report.details}")
    console.print()

    console.print(f"  [green]Succeeded:[/green]          {summary.success_count}")
    if summary.failure_count:
        console.print(f"  [red]Failed:[/red]             {summary.failure_count}")
        for kind, n in summary.error_breakdown.items():
            console.print(f"    [dim]{kind}:[/dim] {n}")
    console.print(f"  Avg response time:  {summary.average_response_time:.3f}s")
    console.print(f"  Total cost:         {summary.total_cost:g} points")
    console.print(f"  Cost per second:    {summary.cost_per_second:.2f}")
    console.print(f"  Operations/second:  {summary.operations_per_second:.2f}")
    console.print(
        f"  Retries:            {summary.succeeded_after_retry} recovered, "
        f"{summary.retries_exhausted} exhausted, {summary.permanent_failures} not retryable"
    )

    if report.controller_summary:
        console.print()
        adapt = report.controller_summary
        console.print("[bold]Rate Limit Adaptation[/bold]")
        console.print(f"  Average usage:      {adapt['average_usage']:.1f}%")
        console.print(
            f"  Final settings:     batch={adapt['current_batch_size']} "
            f"delay={adapt['current_delay_ms']}ms"
        )
        if report.high_throughput:
            console.print("  [cyan]High-throughput API detected[/cyan]")
        console.print(f"  Theoretical max:    {report.theoretical_max['operations_per_second']} ops/s")

    if report.audit and report.audit.total_operations:
        audit = report.audit
        console.print()
        console.print("[bold]Session Audit[/bold]")
        console.print(
            f"  Operations:         {audit.successful_operations}/{audit.total_operations} succeeded"
        )
        console.print(f"  Peak usage:         {audit.peak_usage_percent:.1f}%")
        console.print(
            f"  Recommended:        batch={audit.recommended_batch_size} "
            f"delay={audit.recommended_delay_ms}ms"
        )

    if summary.projections:
        console.print()
        table = Table(title="Projections (linear estimate)")
        table.add_column("Products", justify="right", style="cyan")
        table.add_column("Cost", justify="right")
        table.add_column("Time", justify="right")
        for projection in summary.projections:
            time_str = (
                f"{projection.time_seconds / 60:.1f} min"
                if projection.time_seconds is not None
                else "n/a"
            )
            table.add_row(f"{projection.count:,}", f"{projection.cost:,.0f}", time_str)
        console.print(table)

    for warning in report.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")


@app.command("create")
def create(
    count: CountOption = 5,
    output_format: OutputFormatOption = OutputFormat.TEXT,
    audit_log: AuditLogOption = None,
) -> None:
    """Create random benchmark products.

    Examples:
        benchmarkify benchmark create
        benchmarkify benchmark create --count 500
        benchmarkify benchmark create -n 1000 --format json
        benchmarkify benchmark create -n 200 --audit-log audit.json
    """
    _run_benchmark(OperationKind.CREATE, count, output_format, audit_log)


@app.command("update")
def update(
    count: CountOption = 5,
    output_format: OutputFormatOption = OutputFormat.TEXT,
    audit_log: AuditLogOption = None,
) -> None:
    """Update existing benchmark products.

    Examples:
        benchmarkify benchmark update --count 100
    """
    _run_benchmark(OperationKind.UPDATE, count, output_format, audit_log)


@app.command("delete")
def delete(
    count: CountOption = 5,
    output_format: OutputFormatOption = OutputFormat.TEXT,
    audit_log: AuditLogOption = None,
) -> None:
    """Delete existing benchmark products.

    Examples:
        benchmarkify benchmark delete --count 100
    """
    _run_benchmark(OperationKind.DELETE, count, output_format, audit_log)


@app.command("cleanup")
def cleanup(
    output_format: OutputFormatOption = OutputFormat.TEXT,
    audit_log: AuditLogOption = None,
) -> None:
    """Delete every product carrying the benchmark tag.

    Examples:
        benchmarkify benchmark cleanup
    """
    _run_benchmark(None, 0, output_format, audit_log)
