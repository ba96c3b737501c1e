"""Turn registry entries into classified operations."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from cmdprobe.core.logging import get_logger
from cmdprobe.discovery.registry import CommandRegistry, RegisteredCommand
from cmdprobe.models.base import utcnow
from cmdprobe.models.operation import (
    DiscoveryResults,
    DiscoveryStatistics,
    Operation,
    RiskLevel,
)

logger = get_logger(__name__)

DESTRUCTIVE_PATTERNS = frozenset({"delete", "remove", "purge", "clear", "reset", "abort"})
MODERATE_PATTERNS = frozenset({
    "create",
    "execute",
    "trigger",
    "apply",
    "modify",
    "update",
    "install",
    "enable",
    "disable",
    "set",
    "write",
})

# Word in a command id -> context precondition it implies
CONTEXT_PATTERNS: tuple[tuple[frozenset[str], str], ...] = (
    (frozenset({"file", "files", "editor"}), "Active file editor"),
    (frozenset({"workspace", "spec", "execution", "agent"}), "Open workspace"),
    (frozenset({"mcp"}), "MCP server configuration"),
    (frozenset({"hook", "hooks"}), "Agent hooks configuration"),
)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def split_words(text: str) -> list[str]:
    """Split camelCase, snake_case and kebab-case text into lowercase words.

    Examples
    --------
    >>> split_words("openFileInEditor")
    ['open', 'file', 'in', 'editor']
    >>> split_words("delete_all-items")
    ['delete', 'all', 'items']
    """
    words: list[str] = []
    for chunk in re.split(r"[_\-\s]+", text):
        words.extend(w.lower() for w in _CAMEL_BOUNDARY.split(chunk) if w)
    return words


def _id_words(command_id: str) -> list[str]:
    return [word for segment in command_id.split(".") for word in split_words(segment)]


def extract_category(command_id: str) -> str:
    return command_id.split(".", 1)[0]


def extract_subcategory(command_id: str) -> str:
    """Second id segment for ids with three or more segments, else ``core``."""
    parts = command_id.split(".")
    return parts[1] if len(parts) >= 3 else "core"


def generate_display_name(command_id: str) -> str:
    """Human label from the last id segment.

    Examples
    --------
    >>> generate_display_name("files.editor.openRecentFile")
    'Open Recent File'
    """
    words = split_words(command_id.rsplit(".", 1)[-1])
    return " ".join(w.capitalize() for w in words) or "Unknown Command"


def assess_risk_level(command_id: str) -> RiskLevel:
    words = set(_id_words(command_id))
    if words & DESTRUCTIVE_PATTERNS:
        return RiskLevel.DESTRUCTIVE
    if words & MODERATE_PATTERNS:
        return RiskLevel.MODERATE
    return RiskLevel.SAFE


def infer_context_requirements(command_id: str) -> list[str]:
    words = set(_id_words(command_id))
    requirements: list[str] = []
    for keywords, requirement in CONTEXT_PATTERNS:
        if words & keywords and requirement not in requirements:
            requirements.append(requirement)
    return requirements


def build_operation(command: RegisteredCommand) -> Operation:
    """Classify one registry entry.

    Metadata keys ``category``, ``subcategory``, ``description``,
    ``risk_level`` and ``context_requirements`` override the inferred values.
    """
    metadata: Mapping[str, Any] = command.metadata
    category = metadata.get("category") or command.category or extract_category(command.id)
    display_name = metadata.get("display_name") or generate_display_name(command.id)
    description = metadata.get("description") or f"{category} command: {display_name}"
    risk = metadata.get("risk_level")
    requirements = metadata.get("context_requirements")

    return Operation(
        id=command.id,
        category=category,
        subcategory=metadata.get("subcategory") or extract_subcategory(command.id),
        display_name=display_name,
        description=description,
        risk_level=RiskLevel(risk) if risk else assess_risk_level(command.id),
        context_requirements=tuple(
            requirements if requirements is not None else infer_context_requirements(command.id)
        ),
    )


class RegistryScanner:
    """Discover and classify the commands exposed by a registry.

    Parameters
    ----------
    previous : DiscoveryResults | None
        Results of an earlier pass. Ids are stable across passes: a command
        seen before keeps its discovery timestamp and researched signature,
        while description and risk level are refreshed.
    """

    def __init__(self, previous: DiscoveryResults | None = None) -> None:
        self._previous = {op.id: op for op in previous.commands} if previous else {}

    def scan(self, registry: CommandRegistry) -> DiscoveryResults:
        commands = registry.list_commands()
        logger.info("Scanning {count} registry entries", count=len(commands))
        return self.scan_commands(commands)

    def scan_commands(self, commands: Iterable[RegisteredCommand]) -> DiscoveryResults:
        operations: dict[str, Operation] = {}
        for command in commands:
            try:
                operation = build_operation(command)
            except ValueError as e:
                logger.warning(
                    "Skipping command {command}: {error}", command=command.id, error=e
                )
                continue
            if earlier := self._previous.get(command.id):
                operation = operation.model_copy(
                    update={
                        "discovered_at": earlier.discovered_at,
                        "signature": earlier.signature,
                    }
                )
            operations[operation.id] = operation

        ordered = sorted(operations.values(), key=lambda op: op.id)
        statistics = DiscoveryStatistics.from_operations(ordered)
        logger.info(
            "Discovered {total} commands ({destructive} destructive)",
            total=statistics.total_commands,
            destructive=statistics.by_risk_level.get(RiskLevel.DESTRUCTIVE.value, 0),
        )
        return DiscoveryResults(
            commands=tuple(ordered),
            statistics=statistics,
            discovery_timestamp=utcnow(),
        )
