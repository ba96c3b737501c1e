"""cmdprobe CLI - Main entrypoint."""

from pathlib import Path

import typer
from rich.console import Console

from cmdprobe import __version__
from cmdprobe.cli.commands import (
    discover_cmd,
    docs_cmd,
    execute_cmd,
    params_cmd,
    results_cmd,
    validate_cmd,
)
from cmdprobe.cli.context import get_state
from cmdprobe.core.logging import configure_logging

app = typer.Typer(
    name="cmdprobe",
    help="cmdprobe - discover, test and document the commands of a command registry.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
)

console = Console()

app.add_typer(discover_cmd.app, name="discover", help="Discover and inspect commands")
app.add_typer(params_cmd.app, name="params", help="Manage manual parameter entries")
app.add_typer(results_cmd.app, name="results", help="Inspect recorded executions")
app.add_typer(docs_cmd.app, name="docs", help="Generate documentation")
app.command("validate")(validate_cmd.validate_command)
app.command("execute")(execute_cmd.execute_command)


def _version_callback(value: bool) -> None:
    # Eager, so it runs before the missing-subcommand check
    if value:
        console.print(f"[bold blue]cmdprobe[/bold blue] version [green]{__version__}[/green]")
        raise typer.Exit()


def _log_level(configured: str, *, quiet: bool, verbose: bool, machine: bool) -> str:
    if quiet:
        return "ERROR"
    if verbose:
        return "DEBUG"
    # Machine-readable stdout stays free of log lines
    return "WARNING" if machine else configured


@app.callback()
def callback(
    ctx: typer.Context,
    *,
    quiet: bool = typer.Option(False, "-q", "--quiet", help="Suppress non-error output"),
    verbose: bool = typer.Option(False, "-V", "--verbose", help="Enable verbose logging"),
    json_out: bool = typer.Option(False, "--json", help="Output machine-readable JSON"),
    yaml_out: bool = typer.Option(False, "--yaml", help="Output machine-readable YAML"),
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Path to TOML configuration file (cmdprobe.toml or pyproject.toml)"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Store global flags on ``ctx.obj`` and configure logging for the run."""
    output_format = "json" if json_out else "yaml" if yaml_out else "pretty"
    ctx.obj = {
        **(ctx.obj or {}),
        "quiet": quiet,
        "verbose": verbose,
        "output_format": output_format,
        "config_path": config,
    }

    logging_config = get_state(ctx).config.logging
    configure_logging(
        level=_log_level(logging_config.level, quiet=quiet, verbose=verbose, machine=output_format != "pretty"),
        format=logging_config.format,
        output_file=logging_config.output_file,
        use_color=logging_config.use_color,
        include_timestamp=logging_config.include_timestamp,
        use_rich=logging_config.use_rich,
        backtrace=logging_config.backtrace,
        diagnose=logging_config.diagnose,
    )


def main() -> None:
    """Main CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
