"""Shared state for CLI commands: configuration and the stores it points at."""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from pathlib import Path
from typing import Any

import typer

from cmdprobe.cli.utils import console
from cmdprobe.core.config import CmdProbeConfig, load_config
from cmdprobe.core.exceptions import CmdProbeError
from cmdprobe.discovery.registry import CallableRegistry
from cmdprobe.models.operation import DiscoveryResults, Operation
from cmdprobe.results.store import JsonResultStore
from cmdprobe.signatures.manual_store import ManualEntryStore
from cmdprobe.signatures.merger import merge
from cmdprobe.storage.json_store import JsonDocumentStore


@dataclass
class CliState:
    """Lazily built collaborators for one CLI invocation."""

    config: CmdProbeConfig

    @cached_property
    def storage(self) -> JsonDocumentStore:
        return JsonDocumentStore(self.config.storage.data_dir, self.config.storage.discovery_file)

    @cached_property
    def manual_entries(self) -> ManualEntryStore:
        return ManualEntryStore(self.storage, self.config.storage.manual_entries_file)

    @cached_property
    def results(self) -> JsonResultStore:
        return JsonResultStore(self.storage, self.config.storage.results_file)

    def registry(self, extra_modules: list[str] | None = None) -> CallableRegistry:
        modules = [*self.config.modules, *(extra_modules or [])]
        return CallableRegistry.from_modules(dict.fromkeys(modules))

    def discovery(self) -> DiscoveryResults:
        """The persisted discovery snapshot; exits when there is none."""
        results = self.storage.load_discovery()
        if results is None:
            console.print("[red]✗[/red] No discovery results. Run [cyan]cmdprobe discover run[/cyan] first.")
            raise typer.Exit(1)
        return results

    def operations(self, merged: bool = True) -> list[Operation]:
        operations = list(self.discovery().commands)
        if not merged:
            return operations
        return [merge(op, self.manual_entries.get_entries(op.id)) for op in operations]

    def operation(self, command_id: str, merged: bool = True) -> Operation:
        operation = self.discovery().get(command_id)
        if operation is None:
            console.print(f"[red]✗[/red] Unknown command: {command_id}")
            raise typer.Exit(1)
        return merge(operation, self.manual_entries.get_entries(command_id)) if merged else operation


def get_state(ctx: typer.Context) -> CliState:
    """State for the current invocation, loading configuration on first use."""
    root = ctx.find_root()
    if root.obj is None:
        root.obj = {}
    settings: dict[str, Any] = root.obj
    state = settings.get("state")
    if state is None:
        config_path: Path | None = settings.get("config_path")
        try:
            config = load_config(config_path)
        except FileNotFoundError:
            console.print(f"[red]✗[/red] Config file not found: {config_path}")
            raise typer.Exit(1) from None
        except CmdProbeError as e:
            console.print(f"[red]✗[/red] Invalid configuration: {e}")
            raise typer.Exit(1) from None
        state = CliState(config)
        settings["state"] = state
    return state
