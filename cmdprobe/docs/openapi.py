"""OpenAPI description of the remote invocation protocol.

The protocol itself is not served by cmdprobe; the description documents
how a bridge exposing the discovered commands is expected to behave.
"""

from __future__ import annotations

import copy
from collections.abc import Sequence
from typing import Any

from cmdprobe.docs.schema import first_successful_result
from cmdprobe.models.operation import Operation
from cmdprobe.models.results import TestResult

DEFAULT_SERVER = {"url": "ws://localhost:8080", "description": "Local WebSocket server"}


def _component(definition: dict[str, Any]) -> dict[str, Any]:
    """Schema-document definition rewritten for ``components/schemas``."""
    schema = copy.deepcopy(definition)
    schema.pop("$schema", None)
    pending = [schema]
    while pending:
        node = pending.pop()
        if isinstance(node, dict):
            ref = node.get("$ref")
            if isinstance(ref, str) and ref.startswith("#/definitions/"):
                node["$ref"] = ref.replace("#/definitions/", "#/components/schemas/")
            pending.extend(node.values())
        elif isinstance(node, list):
            pending.extend(node)
    return schema


def _protocol_schemas() -> dict[str, dict[str, Any]]:
    side_effect = {
        "type": "object",
        "properties": {
            "type": {"type": "string"},
            "description": {"type": "string"},
            "resource": {"type": "string"},
            "timestamp": {"type": "string", "format": "date-time"},
        },
        "required": ["type", "description"],
    }
    return {
        "WebSocketMessage": {
            "type": "object",
            "description": "Message frame of the remote invocation protocol",
            "properties": {
                "type": {"type": "string", "enum": ["execute", "result", "error", "ping", "pong"]},
                "id": {"type": "string"},
                "timestamp": {"type": "string", "format": "date-time"},
                "payload": {"description": "Message payload"},
            },
            "required": ["type", "id", "timestamp"],
        },
        "ExecutionRequest": {
            "type": "object",
            "description": "Command execution request",
            "properties": {
                "commandId": {"type": "string", "description": "Command ID to execute"},
                "parameters": {"type": "object", "description": "Command parameters"},
                "timeoutMs": {"type": "integer", "description": "Execution timeout"},
                "createSnapshot": {"type": "boolean", "description": "Create workspace snapshot"},
                "requireConfirmation": {"type": "boolean", "description": "Require confirmation"},
            },
            "required": ["commandId", "parameters"],
        },
        "ExecutionResponse": {
            "type": "object",
            "description": "Command execution response",
            "properties": {
                "success": {"type": "boolean", "description": "Execution success"},
                "commandId": {"type": "string", "description": "Executed command ID"},
                "durationMs": {"type": "number", "description": "Execution duration"},
                "result": {"description": "Command result"},
                "error": {
                    "type": "object",
                    "properties": {
                        "message": {"type": "string"},
                        "kind": {"type": "string"},
                        "trace": {"type": "string"},
                    },
                    "required": ["message", "kind"],
                },
                "sideEffects": {"type": "array", "items": side_effect},
            },
            "required": ["success", "commandId", "durationMs"],
        },
    }


def _examples(
    operations: Sequence[Operation], results: Sequence[TestResult]
) -> tuple[dict[str, Any], dict[str, Any]]:
    result = first_successful_result(operations, results)
    if result is not None:
        request = {"commandId": result.command_id, "parameters": result.parameters}
        response = {
            "success": True,
            "commandId": result.command_id,
            "durationMs": result.outcome.duration_ms,
            "result": result.outcome.result,
            "sideEffects": [e.to_document() for e in result.outcome.side_effects],
        }
        return request, response

    command_id = operations[0].id if operations else "category.command"
    request = {"commandId": command_id, "parameters": {}, "timeoutMs": 30000}
    response = {"success": True, "commandId": command_id, "durationMs": 12.5, "sideEffects": []}
    return request, response


def build_api_description(
    schema_document: dict[str, Any],
    operations: Sequence[Operation],
    results: Sequence[TestResult] = (),
    *,
    version: str = "1.0.0",
    openapi_version: str = "3.0.3",
) -> dict[str, Any]:
    """Build the OpenAPI document.

    Component schemas reuse the schema document's definitions and add the
    protocol envelopes; ``/execute`` examples come from the first successful
    result when there is one.
    """
    request_example, response_example = _examples(operations, results)
    schemas = {name: _component(d) for name, d in schema_document.get("definitions", {}).items()}
    schemas.update(_protocol_schemas())

    def _json(ref: str, example: Any = None) -> dict[str, Any]:
        content: dict[str, Any] = {"schema": {"$ref": f"#/components/schemas/{ref}"}}
        if example is not None:
            content["example"] = example
        return {"application/json": content}

    return {
        "openapi": openapi_version,
        "info": {
            "title": "Command Bridge API",
            "version": version,
            "description": "WebSocket API for remote execution of discovered commands",
        },
        "servers": [dict(DEFAULT_SERVER)],
        "paths": {
            "/ws": {
                "get": {
                    "summary": "WebSocket Connection",
                    "description": "Establish WebSocket connection for command execution",
                    "tags": ["WebSocket"],
                    "responses": {
                        "101": {"description": "WebSocket connection established"},
                        "400": {"description": "Bad request"},
                    },
                }
            },
            "/commands": {
                "get": {
                    "summary": "Get Discovered Commands",
                    "description": "Retrieve all discovered commands",
                    "tags": ["Commands"],
                    "responses": {
                        "200": {
                            "description": "List of discovered commands",
                            "content": {
                                "application/json": {
                                    "schema": {
                                        "type": "array",
                                        "items": {"$ref": "#/components/schemas/CommandMetadata"},
                                    }
                                }
                            },
                        }
                    },
                }
            },
            "/execute": {
                "post": {
                    "summary": "Execute Command",
                    "description": "Execute a command with parameters",
                    "tags": ["Execution"],
                    "requestBody": {"required": True, "content": _json("ExecutionRequest", request_example)},
                    "responses": {
                        "200": {
                            "description": "Command executed successfully",
                            "content": _json("ExecutionResponse", response_example),
                        },
                        "400": {
                            "description": "Invalid request",
                            "content": _json(
                                "ExecutionResponse",
                                {
                                    "success": False,
                                    "commandId": request_example["commandId"],
                                    "durationMs": 0,
                                    "error": {"message": "Validation failed", "kind": "ValidationFailed"},
                                },
                            ),
                        },
                        "500": {
                            "description": "Execution failed",
                            "content": _json(
                                "ExecutionResponse",
                                {
                                    "success": False,
                                    "commandId": request_example["commandId"],
                                    "durationMs": 30000,
                                    "error": {"message": "Command timed out after 30000ms", "kind": "Timeout"},
                                },
                            ),
                        },
                    },
                }
            },
        },
        "components": {"schemas": schemas},
    }
