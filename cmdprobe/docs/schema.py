"""JSON Schema (draft-07) describing discovered operations."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from cmdprobe.models.operation import Confidence, Operation, ParameterSource, ParameterType, RiskLevel
from cmdprobe.models.results import TestResult

SCHEMA_DIALECT = "http://json-schema.org/draft-07/schema#"


def first_successful_result(
    operations: Sequence[Operation], results: Sequence[TestResult]
) -> TestResult | None:
    """Earliest successful result that belongs to one of ``operations``."""
    known = {op.id for op in operations}
    return next((r for r in results if r.outcome.success and r.command_id in known), None)


def parameter_schema() -> dict[str, Any]:
    return {
        "type": "object",
        "description": "Information about a command parameter",
        "properties": {
            "name": {"type": "string", "description": "Parameter name"},
            "type": {
                "type": "string",
                "description": "Parameter type, or a '|'-separated union of types",
                "examples": [t.value for t in ParameterType],
            },
            "required": {"type": "boolean", "description": "Whether parameter is required"},
            "description": {"type": "string", "description": "Parameter description"},
            "defaultValue": {"description": "Default value if known"},
            "source": {
                "type": "string",
                "enum": [s.value for s in ParameterSource],
                "description": "How parameter info was discovered",
            },
        },
        "required": ["name", "type", "required", "source"],
    }


def signature_schema() -> dict[str, Any]:
    return {
        "type": "object",
        "description": "Command signature information",
        "properties": {
            "parameters": {
                "type": "array",
                "items": {"$ref": "#/definitions/ParameterInfo"},
                "description": "Parameters for this command",
            },
            "returnType": {"type": "string", "description": "Return type if known"},
            "async": {"type": "boolean", "description": "Whether command is async"},
            "confidence": {
                "type": "string",
                "enum": [c.value for c in Confidence],
                "description": "Confidence level in signature",
            },
            "sources": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Sources used to determine signature",
            },
            "researchedAt": {
                "type": "string",
                "format": "date-time",
                "description": "When signature was researched",
            },
        },
        "required": ["parameters", "async", "confidence", "sources", "researchedAt"],
    }


def operation_schema(
    operations: Sequence[Operation], example: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Schema of one operation; ``category`` is restricted to observed values."""
    categories = sorted({op.category for op in operations})
    category: dict[str, Any] = {"type": "string", "description": "Primary command category"}
    if categories:
        category["enum"] = categories

    schema: dict[str, Any] = {
        "type": "object",
        "description": "Metadata for a discovered command",
        "properties": {
            "id": {"type": "string", "description": "Unique command identifier"},
            "category": category,
            "subcategory": {"type": "string", "description": "Functional subcategory"},
            "displayName": {"type": "string", "description": "Human-readable display name"},
            "description": {
                "type": ["string", "null"],
                "description": "Detailed description of command functionality",
            },
            "riskLevel": {
                "type": "string",
                "enum": [r.value for r in RiskLevel],
                "description": "Risk assessment for command execution",
            },
            "contextRequirements": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Context the command expects from its host",
            },
            "discoveredAt": {
                "type": "string",
                "format": "date-time",
                "description": "When this command was discovered",
            },
            "signature": {
                "oneOf": [{"$ref": "#/definitions/CommandSignature"}, {"type": "null"}],
                "description": "Command signature information",
            },
        },
        "required": [
            "id",
            "category",
            "subcategory",
            "displayName",
            "riskLevel",
            "contextRequirements",
            "discoveredAt",
        ],
    }
    if example is not None:
        schema["examples"] = [example]
    return schema


def build_example(operations: Sequence[Operation], results: Sequence[TestResult]) -> dict[str, Any] | None:
    """Operation document of the first successful result, with its invocation."""
    result = first_successful_result(operations, results)
    if result is None:
        return None
    operation = next(op for op in operations if op.id == result.command_id)
    example = operation.to_document()
    example["exampleInvocation"] = {
        "parameters": result.parameters,
        "result": result.outcome.result,
        "durationMs": result.outcome.duration_ms,
    }
    return example


def build_schema_document(
    operations: Sequence[Operation],
    results: Sequence[TestResult] = (),
    *,
    version: str = "1.0.0",
    include_examples: bool = True,
) -> dict[str, Any]:
    """Build the schema document for a set of operations.

    Parameters
    ----------
    operations : Sequence[Operation]
        Operations the schema describes
    results : Sequence[TestResult]
        Source of the illustrative example
    version : str
        Value advertised as the schema version example
    include_examples : bool
        Embed an example drawn from the first successful result

    Returns
    -------
    dict[str, Any]
        JSON Schema draft-07 document
    """
    example = build_example(operations, results) if include_examples else None
    return {
        "$schema": SCHEMA_DIALECT,
        "title": "Command Metadata Schema",
        "description": "Schema for discovered command metadata and signatures",
        "type": "object",
        "properties": {
            "version": {"type": "string", "description": "Schema version", "examples": [version]},
            "timestamp": {
                "type": "string",
                "format": "date-time",
                "description": "When this schema was generated",
            },
            "commands": {
                "type": "array",
                "description": "Array of discovered commands",
                "items": {"$ref": "#/definitions/CommandMetadata"},
            },
            "statistics": {
                "type": "object",
                "description": "Statistics about discovered commands",
                "properties": {
                    "totalCommands": {"type": "integer"},
                    "byCategory": {"type": "object", "additionalProperties": {"type": "integer"}},
                    "bySubcategory": {"type": "object", "additionalProperties": {"type": "integer"}},
                    "byRiskLevel": {"type": "object", "additionalProperties": {"type": "integer"}},
                },
                "required": ["totalCommands"],
            },
        },
        "required": ["version", "timestamp", "commands"],
        "additionalProperties": False,
        "definitions": {
            "CommandMetadata": operation_schema(operations, example),
            "ParameterInfo": parameter_schema(),
            "CommandSignature": signature_schema(),
        },
    }
