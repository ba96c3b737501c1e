"""Tests for execution outcome records."""

from datetime import UTC, datetime
from pathlib import Path

from cmdprobe.models.results import ExecutionError, ExecutionOptions, is_recoverable, to_jsonable


class TestExecutionError:
    """Test error construction from exceptions."""

    def test_from_exception(self) -> None:
        """Kind is the exception class name."""
        error = ExecutionError.from_exception(KeyError("missing"))
        assert error.kind == "KeyError"
        assert error.message == "'missing'"

    def test_empty_message_uses_class_name(self) -> None:
        """Exceptions without text still get a message."""
        assert ExecutionError.from_exception(RuntimeError()).message == "RuntimeError"

    def test_recoverable_patterns(self) -> None:
        """Transient-looking messages are recoverable."""
        assert is_recoverable("Operation timeout reached")
        assert is_recoverable("Permission denied: /etc")
        assert not is_recoverable("division by zero")


class TestExecutionOptions:
    """Test option defaults and aliases."""

    def test_defaults(self) -> None:
        """Defaults favour safety."""
        options = ExecutionOptions()
        assert options.timeout_ms == 30_000
        assert options.require_confirmation is True
        assert options.confirmed is False

    def test_validate_alias(self) -> None:
        """``validate`` populates ``validate_args``."""
        assert ExecutionOptions.model_validate({"validate": True}).validate_args is True
        assert ExecutionOptions(validate_args=True).validate_args is True


class TestToJsonable:
    """Test conversion of callee results to JSON-compatible values."""

    def test_nested_values(self) -> None:
        """Containers are converted recursively."""
        value = {"when": datetime(2024, 1, 2, tzinfo=UTC), "items": (1, Path("a")), "flag": True}
        assert to_jsonable(value) == {
            "when": "2024-01-02T00:00:00+00:00",
            "items": [1, "a"],
            "flag": True,
        }
