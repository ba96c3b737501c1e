"""Manual parameter entry commands for cmdprobe CLI."""

import json
from typing import Any

import typer
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.table import Table

from cmdprobe.cli.context import get_state
from cmdprobe.cli.utils import is_machine_output, print_output
from cmdprobe.core.exceptions import CmdProbeError
from cmdprobe.models.manual import ManualParameterEntry
from cmdprobe.models.operation import Parameter

app = typer.Typer(help="Manage manual parameter entries")
console = Console()


def _parse_value(raw: str) -> Any:
    """JSON when it parses, otherwise the raw string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


@app.command("add")
def params_add(
    ctx: typer.Context,
    command_id: str = typer.Argument(..., help="Command the parameter belongs to"),
    name: str = typer.Argument(..., help="Parameter name"),
    type_: str = typer.Option("any", "--type", "-t", help="Parameter type, e.g. string or string|number"),
    required: bool = typer.Option(False, "--required/--optional", help="Whether the parameter is required"),
    description: str | None = typer.Option(None, "--description", "-d", help="Parameter description"),
    default: str | None = typer.Option(None, "--default", help="Default value (JSON or plain text)"),
    notes: str = typer.Option("", "--notes", help="Free-text notes"),
    examples: list[str] = typer.Option([], "--example", "-e", help="Example value (repeatable)"),
    rules: list[str] = typer.Option([], "--rule", "-r", help="Validation rule, e.g. 'value > 0' (repeatable)"),
) -> None:
    """Add or replace a manual parameter definition.

    Examples:
        cmdprobe params add files.read_text path --type string --required
        cmdprobe params add jobs.retry attempts -t number -r "value > 0" -e 3
    """
    state = get_state(ctx)
    if state.storage.load_discovery() is not None and state.discovery().get(command_id) is None:
        console.print(f"[yellow]⚠[/yellow] {command_id} is not in the discovery snapshot")

    try:
        entry = ManualParameterEntry(
            command_id=command_id,
            parameter=Parameter(
                name=name,
                type=type_,
                required=required,
                description=description,
                default_value=_parse_value(default) if default is not None else None,
            ),
            notes=notes,
            examples=tuple(_parse_value(e) for e in examples),
            validation_rules=tuple(rules),
        )
        stored = state.manual_entries.add_entry(entry)
    except PydanticValidationError as e:
        console.print(f"[red]✗[/red] Invalid parameter: {e.errors()[0]['msg']}")
        raise typer.Exit(1) from None
    except CmdProbeError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1) from None

    if is_machine_output(ctx):
        print_output(stored.to_document(), ctx)
        return
    console.print(f"[green]✓[/green] Saved parameter [cyan]{name}[/cyan] for {command_id}")


@app.command("remove")
def params_remove(
    ctx: typer.Context,
    command_id: str = typer.Argument(..., help="Command the parameter belongs to"),
    name: str = typer.Argument(..., help="Parameter name"),
) -> None:
    """Remove a manual parameter definition."""
    state = get_state(ctx)
    if not state.manual_entries.remove_entry(command_id, name):
        console.print(f"[red]✗[/red] No manual parameter {name} on {command_id}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Removed parameter [cyan]{name}[/cyan] from {command_id}")


@app.command("list")
def params_list(
    ctx: typer.Context,
    command_id: str | None = typer.Argument(None, help="Only list entries of this command"),
) -> None:
    """List manual parameter entries."""
    store = get_state(ctx).manual_entries
    if command_id:
        entries = {command_id: store.get_entries(command_id)}
    else:
        entries = store.all_entries()

    if is_machine_output(ctx):
        print_output({cid: [e.to_document() for e in items] for cid, items in entries.items()}, ctx)
        return

    rows = [(cid, e) for cid, items in sorted(entries.items()) for e in items]
    if not rows:
        console.print("[yellow]No manual parameter entries.[/yellow]")
        return
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Command", style="cyan")
    table.add_column("Parameter")
    table.add_column("Type")
    table.add_column("Required")
    table.add_column("Rules")
    table.add_column("Modified")
    for cid, entry in rows:
        table.add_row(
            cid,
            entry.name,
            entry.parameter.type,
            "yes" if entry.parameter.required else "no",
            "; ".join(entry.validation_rules),
            entry.modified_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@app.command("show")
def params_show(
    ctx: typer.Context,
    command_id: str = typer.Argument(..., help="Command to show"),
) -> None:
    """Show the merged signature of a command."""
    operation = get_state(ctx).operation(command_id)
    signature = operation.signature

    if is_machine_output(ctx):
        print_output(signature.to_document() if signature else None, ctx)
        return
    if signature is None:
        console.print(f"[yellow]{command_id} has no signature yet.[/yellow]")
        return

    table = Table(
        title=f"{command_id} (confidence: {signature.confidence.value})",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Parameter", style="cyan")
    table.add_column("Type")
    table.add_column("Required")
    table.add_column("Source")
    table.add_column("Description")
    for p in signature.parameters:
        table.add_row(p.name, p.type, "yes" if p.required else "no", p.source.value, p.description or "")
    console.print(table)
    console.print(f"[dim]Sources: {', '.join(signature.sources) or '-'}[/dim]")
