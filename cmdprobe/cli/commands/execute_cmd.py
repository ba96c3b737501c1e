"""Guarded execution command for cmdprobe CLI."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from cmdprobe.cli.context import get_state
from cmdprobe.cli.utils import is_machine_output, parse_json_option, print_output, risk_style
from cmdprobe.core.exceptions import CmdProbeError
from cmdprobe.execution.analysis import ResultAnalyzer
from cmdprobe.execution.engine import SafeExecutionEngine
from cmdprobe.execution.observers import FileSystemObserver
from cmdprobe.execution.snapshots import DirectorySnapshotProvider
from cmdprobe.models.results import ExecutionOptions
from cmdprobe.validation.validator import ParameterValidator

console = Console()


def execute_command(
    ctx: typer.Context,
    command_id: str = typer.Argument(..., help="Command to execute"),
    args: str | None = typer.Option(None, "--args", "-a", help="Arguments as a JSON object"),
    timeout_ms: int | None = typer.Option(None, "--timeout-ms", "-t", min=1, help="Timeout in milliseconds"),
    snapshot: bool | None = typer.Option(
        None, "--snapshot/--no-snapshot", help="Snapshot the workspace and roll back on failure"
    ),
    confirm: bool = typer.Option(False, "--confirm", "-y", help="Confirm destructive commands"),
    workspace: Path | None = typer.Option(
        None,
        "--workspace",
        "-w",
        exists=True,
        file_okay=False,
        dir_okay=True,
        help="Directory to snapshot and watch for side effects",
    ),
    validate: bool = typer.Option(True, "--validate/--no-validate", help="Validate arguments first"),
    notes: str = typer.Option("", "--notes", help="Notes stored with the test result"),
) -> None:
    """Execute a command with timeout, snapshot and side-effect capture.

    Examples:
        cmdprobe execute files.read_text --args '{"path": "README.md"}'
        cmdprobe execute files.remove --args '{"path": "tmp.txt"}' -w . --confirm
    """
    call_args = parse_json_option(args, "--args")
    state = get_state(ctx)
    operation = state.operation(command_id)
    settings = state.config.execution

    if operation.is_destructive and not confirm and settings.require_confirmation and not is_machine_output(ctx):
        confirm = typer.confirm(f"{command_id} is destructive. Execute anyway?", default=False)

    options = ExecutionOptions(
        timeout_ms=timeout_ms or settings.default_timeout_ms,
        create_snapshot=settings.create_snapshot if snapshot is None else snapshot,
        require_confirmation=settings.require_confirmation,
        confirmed=confirm,
        retain_snapshot=settings.retain_snapshot,
        validate_args=validate,
    )

    try:
        engine = SafeExecutionEngine(
            state.registry(),
            state.results,
            snapshot_provider=DirectorySnapshotProvider(workspace) if workspace else None,
            observer=FileSystemObserver(workspace) if workspace else None,
            validator=ParameterValidator(state.manual_entries),
            max_snapshots=settings.max_snapshots,
        )
        outcome = asyncio.run(engine.execute(operation, call_args, options, notes=notes))
    except CmdProbeError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1) from None

    result = state.results.query(command_id, limit=1)[-1].model_copy(update={"outcome": outcome})
    analysis = ResultAnalyzer().analyze(result, operation)

    if is_machine_output(ctx):
        print_output({"result": result.to_document(), "analysis": analysis.to_document()}, ctx)
    else:
        _print_outcome(command_id, result, analysis)

    if not outcome.success:
        raise typer.Exit(1)


def _print_outcome(command_id, result, analysis) -> None:
    outcome = result.outcome
    if outcome.success:
        console.print(f"[green]✓[/green] {command_id} succeeded in {outcome.duration_ms:.1f}ms")
        if outcome.result is not None:
            console.print(Panel(repr(outcome.result), title="Result", border_style="green"))
    else:
        error = outcome.error
        console.print(f"[red]✗[/red] {command_id} failed: [bold]{error.kind}[/bold] {error.message}")

    for effect in outcome.side_effects:
        console.print(f"  [cyan]•[/cyan] {effect.type.value}: {effect.description}")
    for warning in outcome.warnings:
        console.print(f"  [yellow]⚠[/yellow] {warning}")
    if outcome.snapshot_id:
        console.print(f"  [dim]Snapshot retained: {outcome.snapshot_id}[/dim]")

    risk = analysis.risk
    console.print(
        f"Risk: [{risk_style(risk.overall_risk)}]{risk.overall_risk}[/] ({risk.score}) "
        f"| automation: {risk.automation_suitability} | duration: {analysis.duration_category}"
    )
    for recommendation in analysis.recommendations:
        console.print(f"  [dim]→ {recommendation}[/dim]")
