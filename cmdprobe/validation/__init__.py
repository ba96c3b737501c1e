"""Pre-execution argument validation."""

from cmdprobe.validation.validator import (
    ParameterValidator,
    ValidationIssue,
    ValidationResult,
    format_validation_errors,
    format_validation_warnings,
    validate,
)

__all__ = [
    "ParameterValidator",
    "ValidationIssue",
    "ValidationResult",
    "format_validation_errors",
    "format_validation_warnings",
    "validate",
]
