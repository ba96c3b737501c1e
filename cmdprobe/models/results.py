"""Execution outcomes and test result records."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import datetime
from enum import StrEnum
from pathlib import PurePath
from typing import Any, ClassVar

from pydantic import Field

from cmdprobe.models.base import RecordModel, utcnow

# Error kinds produced by the engine itself rather than by the callee
TIMEOUT_KIND = "Timeout"
CONFIRMATION_REQUIRED_KIND = "ConfirmationRequired"
VALIDATION_FAILED_KIND = "ValidationFailed"

_RECOVERABLE_PATTERNS = ("timeout", "cancelled", "not found", "permission denied", "invalid parameter")


class SideEffectType(StrEnum):
    """Kinds of external state change observed around an execution."""

    FILE_CREATED = "file_created"
    FILE_MODIFIED = "file_modified"
    FILE_DELETED = "file_deleted"
    VIEW_OPENED = "view_opened"
    VIEW_CLOSED = "view_closed"
    SETTING_CHANGED = "setting_changed"
    WORKSPACE_CHANGED = "workspace_changed"
    STATE_CHANGED = "state_changed"


class SideEffect(RecordModel):
    """One observed external state change."""

    type: SideEffectType
    description: str
    resource: str | None = None
    changes: dict[str, Any] | None = None
    timestamp: datetime = Field(default_factory=utcnow)


class ExecutionError(RecordModel):
    """Structured description of a failed execution."""

    message: str
    kind: str
    trace: str | None = None
    recoverable: bool = False

    @classmethod
    def from_exception(cls, error: BaseException, trace: str | None = None) -> ExecutionError:
        message = str(error) or error.__class__.__name__
        return cls(
            message=message,
            kind=error.__class__.__name__,
            trace=trace,
            recoverable=is_recoverable(message),
        )


def is_recoverable(message: str) -> bool:
    """Whether an error message describes a condition worth retrying."""
    lowered = message.lower()
    return any(pattern in lowered for pattern in _RECOVERABLE_PATTERNS)


class ExecutionOptions(RecordModel):
    """Per-call execution settings.

    Attributes
    ----------
    timeout_ms : int
        Time budget for the underlying call
    create_snapshot : bool
        Capture a restorable snapshot before the call
    require_confirmation : bool
        Refuse destructive commands unless ``confirmed`` is set
    confirmed : bool
        The caller obtained explicit confirmation beforehand
    retain_snapshot : bool
        Keep the snapshot after a successful call
    validate : bool
        Validate arguments against the signature before invoking
    """

    timeout_ms: int = Field(default=30_000, gt=0)
    create_snapshot: bool = False
    require_confirmation: bool = True
    confirmed: bool = False
    retain_snapshot: bool = False
    validate_args: bool = Field(default=False, alias="validate")


class ExecutionOutcome(RecordModel):
    """What happened when an operation was invoked."""

    success: bool
    duration_ms: float = 0.0
    result: Any = None
    error: ExecutionError | None = None
    side_effects: tuple[SideEffect, ...] = ()
    warnings: tuple[str, ...] = ()
    snapshot_id: str | None = None

    @property
    def error_kind(self) -> str | None:
        return self.error.kind if self.error else None


class TestResult(RecordModel):
    """One execution attempt, as appended to the result store."""

    __test__: ClassVar[bool] = False

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    command_id: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    outcome: ExecutionOutcome
    notes: str = ""
    timestamp: datetime = Field(default_factory=utcnow)


def to_jsonable(value: Any, _depth: int = 0) -> Any:
    """Convert an arbitrary callee return value into JSON-compatible data.

    Unknown objects become their ``repr``; nesting deeper than 20 levels is
    cut off the same way.
    """
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if _depth > 20:
        return repr(value)
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v, _depth + 1) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v, _depth + 1) for v in value]
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, PurePath):
        return str(value)
    if hasattr(value, "model_dump"):
        return to_jsonable(value.model_dump(mode="json"), _depth + 1)
    return repr(value)
