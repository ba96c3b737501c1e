"""Test result commands for cmdprobe CLI."""

from datetime import UTC, datetime, timedelta
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from cmdprobe.cli.context import get_state
from cmdprobe.cli.utils import is_machine_output, print_output
from cmdprobe.core.exceptions import CmdProbeError
from cmdprobe.results.store import ResultSearchCriteria

app = typer.Typer(help="Inspect and manage recorded test results")
console = Console()


@app.command("list")
def results_list(
    ctx: typer.Context,
    command: str | None = typer.Option(None, "--command", "-c", help="Only results of this command"),
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Most recent results to show"),
    failed_only: bool = typer.Option(False, "--failed-only", help="Only failed executions"),
) -> None:
    """List recorded results, oldest first."""
    store = get_state(ctx).results
    if failed_only:
        results = store.search(ResultSearchCriteria(operation_id=command, success=False))[-limit:]
    else:
        results = store.query(command, limit=limit)

    if is_machine_output(ctx):
        print_output([r.to_document() for r in results], ctx)
        return
    if not results:
        console.print("[yellow]No test results recorded.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Command", style="cyan")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    table.add_column("Side effects", justify="right")
    table.add_column("Timestamp")
    for result in results:
        outcome = result.outcome
        status = "[green]success[/green]" if outcome.success else f"[red]{outcome.error.kind}[/red]"
        table.add_row(
            result.id[:12],
            result.command_id,
            status,
            f"{outcome.duration_ms:.1f}ms",
            str(len(outcome.side_effects)),
            result.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)


@app.command("stats")
def results_stats(ctx: typer.Context) -> None:
    """Show aggregate statistics over recorded results."""
    stats = get_state(ctx).results.statistics()

    if is_machine_output(ctx):
        print_output(stats.to_document(), ctx)
        return

    console.print(
        f"[bold]{stats.total}[/bold] results: [green]{stats.successful} succeeded[/green], "
        f"[red]{stats.failed} failed[/red] ({stats.success_rate:.1f}% success, "
        f"avg {stats.average_duration_ms:.1f}ms)"
    )
    if stats.by_operation:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Command", style="cyan")
        table.add_column("Total", justify="right")
        table.add_column("Succeeded", justify="right")
        table.add_column("Avg duration", justify="right")
        for command_id, item in sorted(stats.by_operation.items()):
            table.add_row(command_id, str(item.total), str(item.successful), f"{item.average_duration_ms:.1f}ms")
        console.print(table)
    for kind, count in sorted(stats.by_error_kind.items()):
        console.print(f"  [red]•[/red] {kind}: {count}")


@app.command("export")
def results_export(
    ctx: typer.Context,
    format: str = typer.Option("json", "--format", "-f", help="json, csv or markdown"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write to this file instead of stdout"),
    command: str | None = typer.Option(None, "--command", "-c", help="Only results of this command"),
) -> None:
    """Export recorded results."""
    store = get_state(ctx).results
    try:
        text = store.export(format, store.query(command) if command else None)  # type: ignore[arg-type]
    except CmdProbeError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1) from None

    if output is None:
        typer.echo(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    console.print(f"[green]✓[/green] Exported results to {output}")


@app.command("purge")
def results_purge(
    ctx: typer.Context,
    command: str | None = typer.Option(None, "--command", "-c", help="Only results of this command"),
    older_than_days: int | None = typer.Option(
        None, "--older-than-days", min=0, help="Only results older than this many days"
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete recorded results."""
    if not yes:
        typer.confirm("Delete matching test results?", abort=True)
    older_than = datetime.now(UTC) - timedelta(days=older_than_days) if older_than_days is not None else None
    try:
        removed = get_state(ctx).results.purge(command, older_than)
    except CmdProbeError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1) from None
    console.print(f"[green]✓[/green] Removed {removed} result(s)")


@app.command("backup")
def results_backup(ctx: typer.Context, path: Path = typer.Argument(..., help="Backup file to write")) -> None:
    """Copy all results to a backup file."""
    try:
        target = get_state(ctx).results.backup(path)
    except CmdProbeError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1) from None
    console.print(f"[green]✓[/green] Backed up results to {target}")


@app.command("restore")
def results_restore(ctx: typer.Context, path: Path = typer.Argument(..., help="Backup file to read")) -> None:
    """Replace all results with the contents of a backup file."""
    try:
        count = get_state(ctx).results.restore(path)
    except CmdProbeError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1) from None
    console.print(f"[green]✓[/green] Restored {count} result(s) from {path}")
