"""Validate candidate arguments against a command signature.

Validation never raises for defective input and never short-circuits: every
declared parameter and every supplied key is examined, and the result lists
at most one error per defective parameter so callers see the complete
defect list in one pass. Non-blocking observations (lossless conversions,
very long strings, unmet context preconditions) are reported as warnings.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from cmdprobe.core.expression_parser import ExpressionError, compile_rule
from cmdprobe.core.logging import get_logger
from cmdprobe.models.manual import ManualParameterEntry
from cmdprobe.models.operation import Operation, Parameter, ParameterType, Signature
from cmdprobe.signatures.manual_store import ManualEntryStore

logger = get_logger(__name__)

MAX_STRING_LENGTH = 10_000

# Execution-context keys that satisfy each known context requirement
CONTEXT_REQUIREMENT_KEYS = {
    "Open workspace": "workspace",
    "Active file editor": "active_editor",
    "MCP server configuration": "mcp_config",
    "Agent hooks configuration": "hooks_config",
}

_TRUE_STRINGS = frozenset({"true", "1", "yes"})
_FALSE_STRINGS = frozenset({"false", "0", "no"})


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """One validation error or warning."""

    parameter: str
    message: str
    code: str
    suggestion: str | None = None


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Aggregate outcome of validating one argument map.

    Attributes
    ----------
    valid : bool
        True when there are no errors
    errors : list[ValidationIssue]
        Blocking defects, at most one per parameter or unexpected key
    warnings : list[ValidationIssue]
        Non-blocking observations
    coerced_args : dict[str, Any]
        The arguments after lossless conversions (e.g. ``"3"`` to ``3.0``)
    """

    valid: bool
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)
    coerced_args: dict[str, Any] = field(default_factory=dict)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


_TYPE_CHECKS: dict[str, Callable[[Any], bool]] = {
    ParameterType.STRING: lambda v: isinstance(v, str),
    ParameterType.NUMBER: _is_number,
    ParameterType.BOOLEAN: lambda v: isinstance(v, bool),
    ParameterType.OBJECT: lambda v: isinstance(v, Mapping),
    ParameterType.ARRAY: lambda v: isinstance(v, (list, tuple)),
    ParameterType.FUNCTION: callable,
    ParameterType.ANY: lambda v: True,
    ParameterType.UNKNOWN: lambda v: True,
}

_SUGGESTIONS = {
    ParameterType.STRING: "Provide a string value",
    ParameterType.NUMBER: "Provide a numeric value",
    ParameterType.BOOLEAN: "Provide true or false",
    ParameterType.OBJECT: "Provide an object value",
    ParameterType.ARRAY: "Provide an array value",
    ParameterType.FUNCTION: "Provide a callable",
}


def _convert(value: Any, target: str) -> tuple[bool, Any]:
    """Attempt a lossless conversion of ``value`` to ``target``."""
    if target == ParameterType.STRING and (_is_number(value) or isinstance(value, bool)):
        return True, str(value).lower() if isinstance(value, bool) else str(value)
    if target == ParameterType.NUMBER and isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return False, value
        return True, int(number) if number.is_integer() and "." not in value else number
    if target == ParameterType.BOOLEAN:
        if isinstance(value, str) and value.strip().lower() in _TRUE_STRINGS | _FALSE_STRINGS:
            return True, value.strip().lower() in _TRUE_STRINGS
        if _is_number(value) and value in (0, 1):
            return True, bool(value)
    return False, value


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if _is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    if callable(value):
        return "function"
    return type(value).__name__


def rules_from_entries(entries: Sequence[ManualParameterEntry]) -> dict[str, list[str]]:
    """Map parameter names to their validation-rule strings."""
    rules: dict[str, list[str]] = {}
    for entry in entries:
        if entry.validation_rules:
            rules.setdefault(entry.name, []).extend(entry.validation_rules)
    return rules


class _Collector:
    def __init__(self) -> None:
        self.errors: list[ValidationIssue] = []
        self.warnings: list[ValidationIssue] = []

    def error(self, parameter: str, message: str, code: str, suggestion: str | None = None) -> None:
        self.errors.append(ValidationIssue(parameter, message, code, suggestion))

    def warn(self, parameter: str, message: str, code: str) -> None:
        self.warnings.append(ValidationIssue(parameter, message, code))


def _check_type(parameter: Parameter, value: Any, out: _Collector) -> tuple[bool, Any]:
    """Return (ok, possibly converted value), recording any issue."""
    members = parameter.type_members
    if ParameterType.UNKNOWN in members:
        out.warn(
            parameter.name,
            f"Parameter '{parameter.name}' has unknown type; value was not type-checked",
            "UNKNOWN_TYPE",
        )
        return True, value

    if any(_TYPE_CHECKS[m](value) for m in members):
        return True, value

    for member in members:
        converted, new_value = _convert(value, member)
        if converted:
            out.warn(
                parameter.name,
                f"Parameter '{parameter.name}' was converted from {_type_name(value)} to {member}",
                "TYPE_CONVERSION",
            )
            return True, new_value

    if len(members) > 1:
        out.error(
            parameter.name,
            f"Parameter '{parameter.name}' must be one of {', '.join(members)}, "
            f"got {_type_name(value)}",
            "UNION_TYPE_MISMATCH",
            f"Provide a value matching one of: {', '.join(members)}",
        )
    else:
        out.error(
            parameter.name,
            f"Parameter '{parameter.name}' must be a {members[0]}, got {_type_name(value)}",
            "TYPE_MISMATCH",
            _SUGGESTIONS.get(members[0]),
        )
    return False, value


def _check_rules(
    parameter: Parameter,
    value: Any,
    rules: Sequence[str],
    scope: Mapping[str, Any],
    out: _Collector,
) -> None:
    failed: list[str] = []
    for rule in rules:
        try:
            predicate = compile_rule(rule)
        except ExpressionError as e:
            out.error(
                parameter.name,
                f"Validation rule '{rule}' for '{parameter.name}' is malformed: {e.reason}",
                "INVALID_RULE",
                "Fix or remove the rule in the manual parameter entry",
            )
            return
        if not predicate({**scope, "value": value}):
            failed.append(rule)
    if failed:
        out.error(
            parameter.name,
            f"Parameter '{parameter.name}' does not satisfy: {'; '.join(failed)}",
            "RULE_FAILED",
        )


def validate(
    signature: Signature | None,
    candidate_args: Mapping[str, Any],
    execution_context: Mapping[str, Any] | None = None,
    rules: Mapping[str, Sequence[str]] | None = None,
) -> ValidationResult:
    """Check ``candidate_args`` against ``signature``.

    Parameters
    ----------
    signature : Signature | None
        Merged signature. Without one, nothing can be checked and the result
        is valid with a ``NO_SIGNATURE`` warning.
    candidate_args : Mapping[str, Any]
        Argument map the caller intends to execute with
    execution_context : Mapping[str, Any] | None
        Exposed to rules as ``context``
    rules : Mapping[str, Sequence[str]] | None
        Validation-rule expressions per parameter name

    Returns
    -------
    ValidationResult
        Aggregated errors and warnings; ``valid`` is True when no errors

    Examples
    --------
    >>> from cmdprobe.models import Parameter, Signature
    >>> sig = Signature(parameters=(Parameter(name="path", type="string", required=True),))
    >>> result = validate(sig, {})
    >>> [(e.parameter, e.code) for e in result.errors]
    [('path', 'REQUIRED_PARAMETER_MISSING')]
    """
    out = _Collector()
    args = dict(candidate_args)
    context = dict(execution_context or {})
    rules = rules or {}

    if signature is None:
        out.warn("", "No signature available; arguments were not validated", "NO_SIGNATURE")
        return ValidationResult(True, out.errors, out.warnings, args)

    coerced: dict[str, Any] = {}
    scope = {"args": args, "context": context}

    for parameter in signature.parameters:
        value = args.get(parameter.name)
        if value is None:
            if parameter.required:
                out.error(
                    parameter.name,
                    f"Required parameter '{parameter.name}' is missing",
                    "REQUIRED_PARAMETER_MISSING",
                    f"Provide a value of type '{parameter.type}'",
                )
            elif parameter.name in args:
                coerced[parameter.name] = None
            continue

        ok, value = _check_type(parameter, value, out)
        coerced[parameter.name] = value
        if not ok:
            continue

        if isinstance(value, str):
            if parameter.required and not value:
                out.error(
                    parameter.name,
                    f"Required string parameter '{parameter.name}' cannot be empty",
                    "EMPTY_REQUIRED_STRING",
                    "Provide a non-empty string value",
                )
                continue
            if len(value) > MAX_STRING_LENGTH:
                out.warn(
                    parameter.name,
                    f"String parameter '{parameter.name}' is very long ({len(value)} characters)",
                    "VERY_LONG_STRING",
                )

        if parameter_rules := rules.get(parameter.name):
            _check_rules(parameter, value, parameter_rules, scope, out)

    declared = set(signature.parameter_names)
    for key in args:
        if key not in declared:
            out.error(
                key,
                f"Unexpected parameter '{key}'",
                "UNEXPECTED_PARAMETER",
                f"Known parameters: {', '.join(signature.parameter_names) or 'none'}",
            )

    result = ValidationResult(not out.errors, out.errors, out.warnings, coerced)
    logger.debug(
        "Validation {status} with {errors} errors, {warnings} warnings",
        status="passed" if result.valid else "failed",
        errors=len(out.errors),
        warnings=len(out.warnings),
    )
    return result


class ParameterValidator:
    """Validate arguments for operations, pulling rules from manual entries.

    Parameters
    ----------
    manual_entries : ManualEntryStore | None
        Source of validation rules; without it only structural checks run
    """

    def __init__(self, manual_entries: ManualEntryStore | None = None) -> None:
        self._manual_entries = manual_entries

    def validate(
        self,
        signature: Signature | None,
        candidate_args: Mapping[str, Any],
        execution_context: Mapping[str, Any] | None = None,
        *,
        command_id: str | None = None,
    ) -> ValidationResult:
        """Validate against ``signature`` using the rules stored for ``command_id``."""
        rules: dict[str, list[str]] = {}
        if command_id and self._manual_entries is not None:
            rules = rules_from_entries(self._manual_entries.get_entries(command_id))
        return validate(signature, candidate_args, execution_context, rules)

    def validate_operation(
        self,
        operation: Operation,
        candidate_args: Mapping[str, Any],
        execution_context: Mapping[str, Any] | None = None,
    ) -> ValidationResult:
        """Validate arguments for ``operation`` and check its context preconditions.

        Unmet preconditions are reported as ``CONTEXT_REQUIREMENT`` warnings.
        """
        result = self.validate(
            operation.signature, candidate_args, execution_context, command_id=operation.id
        )
        context = execution_context or {}
        missing = [
            ValidationIssue(
                "",
                f"Command '{operation.id}' expects: {requirement}",
                "CONTEXT_REQUIREMENT",
            )
            for requirement in operation.context_requirements
            if not context.get(CONTEXT_REQUIREMENT_KEYS.get(requirement, requirement))
        ]
        if not missing:
            return result
        return ValidationResult(
            result.valid, result.errors, [*result.warnings, *missing], result.coerced_args
        )


def format_validation_errors(errors: Sequence[ValidationIssue]) -> str:
    """Render errors as a bullet list with suggestions."""
    if not errors:
        return "No validation errors"
    lines = []
    for error in errors:
        line = f"• {error.message}"
        if error.suggestion:
            line += f" ({error.suggestion})"
        lines.append(line)
    return "Validation failed:\n" + "\n".join(lines)


def format_validation_warnings(warnings: Sequence[ValidationIssue]) -> str:
    """Render warnings as a bullet list."""
    if not warnings:
        return "No validation warnings"
    return "Validation warnings:\n" + "\n".join(f"• {w.message}" for w in warnings)
