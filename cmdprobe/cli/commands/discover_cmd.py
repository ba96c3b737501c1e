"""Discovery commands for cmdprobe CLI."""

import typer
from rich.console import Console
from rich.table import Table

from cmdprobe.cli.context import get_state
from cmdprobe.cli.utils import is_machine_output, print_output, risk_style
from cmdprobe.core.exceptions import CmdProbeError
from cmdprobe.discovery.researcher import ParameterResearcher
from cmdprobe.discovery.scanner import RegistryScanner
from cmdprobe.models.operation import DiscoveryResults, DiscoveryStatistics, Operation

app = typer.Typer(help="Discover and inspect commands")
console = Console()


def _operations_table(operations: list[Operation], title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Command", style="cyan", no_wrap=True)
    table.add_column("Category")
    table.add_column("Risk")
    table.add_column("Params", justify="right")
    table.add_column("Confidence")
    for op in operations:
        risk = op.risk_level.value
        signature = op.signature
        table.add_row(
            op.id,
            f"{op.category}/{op.subcategory}",
            f"[{risk_style(risk)}]{risk}[/{risk_style(risk)}]",
            str(len(signature.parameters)) if signature else "-",
            signature.confidence.value if signature else "-",
        )
    return table


def _statistics_table(stats: DiscoveryStatistics) -> Table:
    table = Table(title=f"{stats.total_commands} commands", show_header=True, header_style="bold magenta")
    table.add_column("Group")
    table.add_column("Value")
    table.add_column("Count", justify="right")
    for label, counts in (
        ("category", stats.by_category),
        ("subcategory", stats.by_subcategory),
        ("risk", stats.by_risk_level),
    ):
        for value, count in sorted(counts.items()):
            table.add_row(label, value, str(count))
    return table


@app.command("run")
def discover_run(
    ctx: typer.Context,
    modules: list[str] = typer.Option(
        [], "--module", "-m", help="Additional module to register commands from (repeatable)"
    ),
    research: bool = typer.Option(
        True, "--research/--no-research", help="Infer signatures from the registered callables"
    ),
) -> None:
    """Scan the configured modules and persist the discovery snapshot.

    Examples:
        cmdprobe discover run
        cmdprobe discover run -m myapp.commands --no-research
    """
    state = get_state(ctx)

    try:
        registry = state.registry(modules)
        if len(registry) == 0:
            console.print("[yellow]No commands registered.[/yellow] Configure [cyan]modules[/cyan] or pass --module.")
            raise typer.Exit(1)
        previous = state.storage.load_discovery()
        results = RegistryScanner(previous).scan(registry)
        if research:
            operations = ParameterResearcher().research_all(results.commands, registry.get_callable)
            results = DiscoveryResults(
                commands=tuple(operations),
                statistics=results.statistics,
                discovery_timestamp=results.discovery_timestamp,
            )
        path = state.storage.save_discovery(results)
    except CmdProbeError as e:
        console.print(f"[red]✗[/red] Discovery failed: {e}")
        raise typer.Exit(1) from None

    if is_machine_output(ctx):
        print_output(results.to_document(), ctx)
        return
    console.print(_operations_table(list(results.commands), "Discovered commands"))
    console.print(f"[green]✓[/green] Saved {results.statistics.total_commands} commands to {path}")


@app.command("show")
def discover_show(
    ctx: typer.Context,
    category: str | None = typer.Option(None, "--category", help="Only show one category"),
    risk: str | None = typer.Option(None, "--risk", help="Only show one risk level"),
    command_id: str | None = typer.Argument(None, help="Show a single command in detail"),
) -> None:
    """Show discovered commands, with manual entries merged in."""
    state = get_state(ctx)

    if command_id:
        operation = state.operation(command_id)
        if is_machine_output(ctx):
            print_output(operation.to_document(), ctx)
            return
        console.print(f"[bold cyan]{operation.id}[/bold cyan] - {operation.display_name}")
        if operation.description:
            console.print(operation.description)
        console.print(f"Risk: [{risk_style(operation.risk_level.value)}]{operation.risk_level.value}[/]")
        if operation.context_requirements:
            console.print(f"Requires: {', '.join(operation.context_requirements)}")
        if operation.signature:
            console.print(
                f"Signature: {len(operation.signature.parameters)} parameter(s), "
                f"confidence {operation.signature.confidence.value}, "
                f"sources {', '.join(operation.signature.sources) or '-'}"
            )
        return

    operations = [
        op
        for op in state.operations()
        if (category is None or op.category == category) and (risk is None or op.risk_level.value == risk)
    ]
    if is_machine_output(ctx):
        print_output([op.to_document() for op in operations], ctx)
        return
    if not operations:
        console.print("[yellow]No matching commands.[/yellow]")
        return
    console.print(_operations_table(operations, f"{len(operations)} commands"))


@app.command("stats")
def discover_stats(ctx: typer.Context) -> None:
    """Show discovery statistics."""
    results = get_state(ctx).discovery()
    if is_machine_output(ctx):
        print_output(
            {
                **results.statistics.to_document(),
                "discoveryTimestamp": results.discovery_timestamp.isoformat(),
            },
            ctx,
        )
        return
    console.print(_statistics_table(results.statistics))
    console.print(f"[dim]Discovered at {results.discovery_timestamp.isoformat()}[/dim]")
