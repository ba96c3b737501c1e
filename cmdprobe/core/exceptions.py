"""Exception hierarchy for cmdprobe.

Validation, execution and export report most failures as values (validation
results, failed outcomes, export warnings). The exceptions here cover calls
that cannot be served at all, and all of them derive from
:class:`CmdProbeError` so callers can catch the whole family at once.
"""

from __future__ import annotations


class CmdProbeError(Exception):
    """Base exception for all cmdprobe errors."""


class ConfigurationError(CmdProbeError):
    """A configuration section, registry module or renderer setting is unusable.

    >>> str(ConfigurationError("export", "unknown format 'docx'"))
    "Configuration error in 'export': unknown format 'docx'"
    """

    def __init__(self, component: str, reason: str) -> None:
        self.component = component
        self.reason = reason
        super().__init__(f"Configuration error in '{component}': {reason}")


class ValidationError(CmdProbeError):
    """A single value broke a constraint of the model holding it."""

    def __init__(self, field: str, constraint: str, value: object = None) -> None:
        self.field = field
        self.constraint = constraint
        self.value = value
        got = "" if value is None else f" (got {value!r})"
        super().__init__(f"Validation failed for '{field}': {constraint}{got}")


class ResourceNotFoundError(CmdProbeError):
    """A command, snapshot or result id does not exist.

    Up to five known ids are listed in the message to help with typos.
    """

    def __init__(self, resource_type: str, resource_id: str, available: list[str] | None = None) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.available = available
        message = f"{resource_type.title()} '{resource_id}' not found"
        if available:
            shown = ", ".join(available[:5])
            extra = len(available) - 5
            message += f". Available: {shown}" + (f" ... and {extra} more" if extra > 0 else "")
        super().__init__(message)


class StorageError(CmdProbeError):
    """A persisted document cannot be read or written."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Storage error for '{path}': {reason}")


class ConfirmationRequiredError(CmdProbeError):
    """A destructive command was invoked without the confirm flag."""

    def __init__(self, operation_id: str) -> None:
        self.operation_id = operation_id
        super().__init__(f"Command '{operation_id}' is destructive and requires explicit confirmation")


class CommandExitError(CmdProbeError):
    """A command called ``sys.exit`` instead of returning."""

    def __init__(self, operation_id: str, code: object) -> None:
        self.operation_id = operation_id
        self.code = code
        super().__init__(f"Command '{operation_id}' exited with status {code}")


class InfrastructureError(CmdProbeError):
    """Snapshotting or side-effect monitoring broke.

    The engine turns these into outcome warnings; they never replace the
    result of the command itself.
    """

    def __init__(self, component: str, reason: str) -> None:
        self.component = component
        self.reason = reason
        super().__init__(f"{component} failure: {reason}")


class GenerationError(CmdProbeError):
    """A documentation format cannot be rendered."""

    def __init__(self, format: str, reason: str) -> None:
        self.format = format
        self.reason = reason
        super().__init__(f"Failed to generate '{format}' documentation: {reason}")


__all__ = [
    "CmdProbeError",
    "ConfigurationError",
    "ValidationError",
    "ResourceNotFoundError",
    "StorageError",
    "ConfirmationRequiredError",
    "CommandExitError",
    "InfrastructureError",
    "GenerationError",
]
