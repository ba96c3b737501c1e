"""Documentation generation commands for cmdprobe CLI."""

import asyncio
import dataclasses
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from cmdprobe.cli.context import get_state
from cmdprobe.cli.utils import is_machine_output, print_output
from cmdprobe.core.exceptions import CmdProbeError
from cmdprobe.docs.changes import format_change_summary
from cmdprobe.docs.exporter import DocumentationExporter
from cmdprobe.docs.generator import DocumentationGenerator
from cmdprobe.docs.quality import assess_quality, describe_score
from cmdprobe.docs.renderers import RENDERERS

app = typer.Typer(help="Generate documentation")
console = Console()


@app.command("generate")
def docs_generate(
    ctx: typer.Context,
    formats: list[str] = typer.Option(
        [], "--format", "-f", help=f"Output format (repeatable): {', '.join(RENDERERS)}"
    ),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output directory"),
    with_results: bool = typer.Option(
        True, "--with-results/--without-results", help="Use recorded executions as examples"
    ),
) -> None:
    """Generate documentation for every discovered command.

    Examples:
        cmdprobe docs generate
        cmdprobe docs generate -f markdown -f html -o site/
    """
    state = get_state(ctx)
    settings = state.config.export
    if not with_results:
        settings = dataclasses.replace(settings, include_test_results=False)
    target = output or Path(settings.output_dir)

    exporter = DocumentationExporter(settings)
    try:
        previous = exporter.load_previous(target)
        package = DocumentationGenerator(settings).generate(
            state.operations(), list(state.results), previous=previous
        )
        result = asyncio.run(exporter.export(package, formats or None, target))
    except CmdProbeError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1) from None

    if is_machine_output(ctx):
        print_output(result.to_document(), ctx)
    else:
        if result.success:
            console.print(
                f"[green]✓[/green] Wrote {len(result.files)} file(s) to {target} "
                f"in {result.duration_ms:.0f}ms"
            )
            for file in result.files:
                console.print(f"  [cyan]•[/cyan] {file.path} [dim]({file.format}, {file.size} bytes)[/dim]")
        else:
            console.print(f"[red]✗[/red] {result.error}")
        for warning in result.warnings:
            console.print(f"  [yellow]⚠[/yellow] {warning}")
        changes = package.metadata.change_summary
        if changes is not None:
            console.print(format_change_summary(changes))

    if not result.success:
        raise typer.Exit(1)


@app.command("quality")
def docs_quality(ctx: typer.Context) -> None:
    """Score how well the discovered commands are documented."""
    state = get_state(ctx)
    report = assess_quality(state.operations(), list(state.results))

    if is_machine_output(ctx):
        print_output(report.to_document(), ctx)
        return

    console.print(f"[bold]{report.overall_score}/100[/bold] {describe_score(report.overall_score)}")
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Coverage")
    table.add_column("Percent", justify="right")
    table.add_row("Descriptions", f"{report.coverage.descriptions:.1f}%")
    table.add_row("Signatures", f"{report.coverage.signatures:.1f}%")
    table.add_row("Examples", f"{report.coverage.examples:.1f}%")
    console.print(table)
    for issue in report.issues:
        console.print(f"  [yellow]⚠[/yellow] {issue}")
    for recommendation in report.recommendations:
        console.print(f"  [dim]→ {recommendation}[/dim]")
