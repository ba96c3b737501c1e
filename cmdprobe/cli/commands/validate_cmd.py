"""Argument validation command for cmdprobe CLI."""

import typer
from rich.console import Console

from cmdprobe.cli.context import get_state
from cmdprobe.cli.utils import is_machine_output, parse_json_option, print_output
from cmdprobe.validation.validator import ParameterValidator

console = Console()


def validate_command(
    ctx: typer.Context,
    command_id: str = typer.Argument(..., help="Command to validate arguments for"),
    args: str | None = typer.Option(None, "--args", "-a", help="Arguments as a JSON object"),
    context: str | None = typer.Option(
        None, "--context", help="Execution context as a JSON object, e.g. '{\"workspace\": true}'"
    ),
) -> None:
    """Validate arguments against a command's merged signature.

    Examples:
        cmdprobe validate files.read_text --args '{"path": "README.md"}'
    """
    candidate = parse_json_option(args, "--args")
    execution_context = parse_json_option(context, "--context")
    state = get_state(ctx)
    operation = state.operation(command_id)

    result = ParameterValidator(state.manual_entries).validate_operation(
        operation, candidate, execution_context
    )

    if is_machine_output(ctx):
        print_output(
            {
                "commandId": command_id,
                "valid": result.valid,
                "errors": [
                    {"parameter": e.parameter, "message": e.message, "code": e.code, "suggestion": e.suggestion}
                    for e in result.errors
                ],
                "warnings": [
                    {"parameter": w.parameter, "message": w.message, "code": w.code} for w in result.warnings
                ],
            },
            ctx,
        )
    else:
        if result.valid:
            console.print(f"[green]✓[/green] Arguments for {command_id} are valid")
        else:
            console.print(f"[red]✗[/red] {len(result.errors)} error(s) for {command_id}")
            for error in result.errors:
                hint = f" [dim]({error.suggestion})[/dim]" if error.suggestion else ""
                console.print(f"  [red]•[/red] {error.message}{hint}")
        for warning in result.warnings:
            console.print(f"  [yellow]⚠[/yellow] {warning.message}")

    if not result.valid:
        raise typer.Exit(1)
