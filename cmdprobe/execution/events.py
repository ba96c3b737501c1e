"""Events emitted by the execution engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class Event:
    """Something the engine did, stamped with when it happened."""

    timestamp: datetime = field(default_factory=datetime.now, init=False)

    def log_message(self) -> str:
        """One-line summary written to the log by the engine."""
        return f"{self.__class__.__name__} at {self.timestamp.isoformat()}"


@dataclass(slots=True)
class ExecutionStarted(Event):
    """An operation is about to be invoked."""

    operation_id: str
    execution_id: str
    args: dict[str, Any]
    snapshot_id: str | None = None

    def log_message(self) -> str:
        return f"Executing '{self.operation_id}' ({self.execution_id})"


@dataclass(slots=True)
class ExecutionCompleted(Event):
    """An invocation returned normally."""

    operation_id: str
    execution_id: str
    duration_ms: float
    side_effect_count: int = 0

    def log_message(self) -> str:
        return (
            f"'{self.operation_id}' completed in {self.duration_ms:.1f}ms "
            f"with {self.side_effect_count} side effect(s)"
        )


@dataclass(slots=True)
class ExecutionFailed(Event):
    """An invocation raised, or was refused before it started."""

    operation_id: str
    execution_id: str
    error_kind: str
    message: str
    duration_ms: float = 0.0

    def log_message(self) -> str:
        return f"'{self.operation_id}' failed ({self.error_kind}): {self.message}"


@dataclass(slots=True)
class ExecutionTimedOut(Event):
    """The engine stopped waiting for an invocation."""

    operation_id: str
    execution_id: str
    timeout_ms: int

    def log_message(self) -> str:
        return f"'{self.operation_id}' timed out after {self.timeout_ms}ms"


@dataclass(slots=True)
class SnapshotRestored(Event):
    """A snapshot was rolled back after a failed invocation."""

    operation_id: str
    snapshot_id: str

    def log_message(self) -> str:
        return f"Restored {self.snapshot_id} after '{self.operation_id}' failed"
