"""CLI helper utilities for cmdprobe commands."""

from __future__ import annotations

import json
from typing import Any, Protocol

import typer
import yaml
from rich.console import Console


class ContextProtocol(Protocol):
    """Anything carrying the global flags dict as ``obj``."""

    @property
    def obj(self) -> dict[str, Any] | None: ...


console = Console()


def output_format(ctx: ContextProtocol | None) -> str:
    """``pretty``, ``json`` or ``yaml`` as chosen by the global flags."""
    settings = getattr(ctx, "obj", None) if ctx is not None else None
    if isinstance(settings, dict):
        return settings.get("output_format", "pretty")
    return "pretty"


def is_machine_output(ctx: ContextProtocol | None) -> bool:
    return output_format(ctx) in ("json", "yaml")


def print_output(obj: Any, ctx: ContextProtocol | None = None) -> None:
    """Emit ``obj`` as JSON, YAML or a rich renderable.

    Machine formats go through ``typer.echo`` so stdout stays parseable;
    scalars are echoed as-is and anything else is handed to the console.
    """
    fmt = output_format(ctx)
    if fmt == "json":
        typer.echo(json.dumps(obj, default=str, indent=2))
    elif fmt == "yaml":
        typer.echo(yaml.safe_dump(json.loads(json.dumps(obj, default=str)), sort_keys=False))
    elif isinstance(obj, (str, int, float)):
        typer.echo(str(obj))
    else:
        console.print(obj)


def parse_json_option(value: str | None, option: str) -> dict[str, Any]:
    """Parse a JSON object passed on the command line.

    Raises
    ------
    typer.BadParameter
        If ``value`` is not a JSON object
    """
    if not value:
        return {}
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"invalid JSON: {e.msg}", param_hint=option) from e
    if not isinstance(parsed, dict):
        raise typer.BadParameter("expected a JSON object", param_hint=option)
    return parsed


def risk_style(risk: str) -> str:
    return {
        "safe": "green",
        "moderate": "yellow",
        "destructive": "red",
        "very_low": "green",
        "low": "green",
        "medium": "yellow",
        "high": "red",
        "very_high": "bold red",
    }.get(risk, "white")
