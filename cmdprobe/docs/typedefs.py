"""Language-neutral type definitions and their TypeScript / Python renderings.

Field types use a small neutral notation understood by both renderers:

- primitives ``string``, ``number``, ``boolean``, ``any`` and ``datetime``
- a defined type name such as ``ParameterInfo``
- ``T[]`` for arrays and ``map<string, T>`` for string-keyed maps
- ``'a'|'b'`` for a union of string literals
"""

from __future__ import annotations

import keyword
import re
from collections.abc import Iterable, Sequence

from cmdprobe.models.documentation import EnumMember, TypeDefinition, TypeField
from cmdprobe.models.operation import Operation, ParameterSource, RiskLevel
from cmdprobe.models.results import TestResult

_TS_PRIMITIVES = {"string": "string", "number": "number", "boolean": "boolean", "any": "any", "datetime": "string"}
_PY_PRIMITIVES = {"string": "str", "number": "float", "boolean": "bool", "any": "Any", "datetime": "str"}


def to_pascal_case(value: str) -> str:
    """``"file-ops"`` -> ``"FileOps"``; always a valid identifier."""
    words = [w for w in re.split(r"[^0-9A-Za-z]+", value) if w]
    key = "".join(w[:1].upper() + w[1:] for w in words) or "Unknown"
    return f"_{key}" if key[0].isdigit() else key


def _literals(values: Iterable[str]) -> str:
    return "|".join(f"'{v}'" for v in values)


def _interface(name: str, description: str, *fields: TypeField) -> TypeDefinition:
    return TypeDefinition(name=name, kind="interface", description=description, fields=fields)


def _field(name: str, type: str, description: str | None = None, optional: bool = False) -> TypeField:
    return TypeField(name=name, type=type, description=description, optional=optional)


def _enum(name: str, description: str, values: Iterable[str]) -> TypeDefinition:
    members: dict[str, EnumMember] = {}
    for value in values:
        key = to_pascal_case(value)
        while key in members:
            key += "_"
        members[key] = EnumMember(key=key, value=value)
    return TypeDefinition(name=name, kind="enum", description=description, members=tuple(members.values()))


def build_type_definitions(
    operations: Sequence[Operation], results: Sequence[TestResult] = ()
) -> list[TypeDefinition]:
    """Derive the type definitions for a set of operations.

    The protocol envelopes (``WebSocketMessage``, ``ExecutionRequest``,
    ``ExecutionResponse``) are only included when ``results`` is non-empty.
    """
    categories = sorted({op.category for op in operations})
    subcategories = sorted({op.subcategory for op in operations})

    definitions = [
        _interface(
            "CommandMetadata",
            "Metadata for a discovered command",
            _field("id", "string", "Unique command identifier"),
            _field("category", _literals(categories) or "string", "Primary command category"),
            _field("subcategory", "string", "Functional subcategory"),
            _field("displayName", "string", "Human-readable name"),
            _field("description", "string", "Detailed description", optional=True),
            _field("riskLevel", _literals(r.value for r in RiskLevel), "Risk assessment"),
            _field("contextRequirements", "string[]", "Context the command expects"),
            _field("discoveredAt", "datetime", "When the command was discovered"),
            _field("signature", "CommandSignature", "Signature, if researched", optional=True),
        ),
        _interface(
            "ParameterInfo",
            "Information about a command parameter",
            _field("name", "string", "Parameter name"),
            _field("type", "string", "Parameter type"),
            _field("required", "boolean", "Whether the parameter is required"),
            _field("description", "string", "Parameter description", optional=True),
            _field("defaultValue", "any", "Default value if known", optional=True),
            _field("source", _literals(s.value for s in ParameterSource), "How it was discovered"),
        ),
        _interface(
            "CommandSignature",
            "Command signature information",
            _field("parameters", "ParameterInfo[]"),
            _field("returnType", "string", optional=True),
            _field("async", "boolean"),
            _field("confidence", "'high'|'medium'|'low'"),
            _field("sources", "string[]"),
            _field("researchedAt", "datetime"),
        ),
        _interface(
            "DiscoveryResults",
            "Results of a discovery pass",
            _field("commands", "CommandMetadata[]"),
            _field("statistics", "DiscoveryStatistics"),
            _field("discoveryTimestamp", "datetime"),
        ),
        _interface(
            "DiscoveryStatistics",
            "Counts over discovered commands",
            _field("totalCommands", "number"),
            _field("byCategory", "map<string, number>"),
            _field("bySubcategory", "map<string, number>"),
            _field("byRiskLevel", "map<string, number>"),
        ),
        _enum("CommandCategory", "Available command categories", categories),
        _enum("RiskLevel", "Command risk levels", (r.value for r in RiskLevel)),
        _enum("CommandSubcategory", "Available command subcategories", subcategories),
        _interface(
            "CommandRegistry",
            "Registry of all discovered commands",
            _field("byId", "map<string, CommandMetadata>"),
            _field("byCategory", "map<string, CommandMetadata[]>"),
            _field("bySubcategory", "map<string, CommandMetadata[]>"),
            _field("byRiskLevel", "map<string, CommandMetadata[]>"),
        ),
    ]

    if results:
        definitions += [
            _interface(
                "WebSocketMessage",
                "Message frame of the remote invocation protocol",
                _field("type", "'execute'|'result'|'error'|'ping'|'pong'"),
                _field("id", "string"),
                _field("timestamp", "datetime"),
                _field("payload", "any"),
            ),
            _interface(
                "ExecutionRequest",
                "Command execution request",
                _field("commandId", "string"),
                _field("parameters", "map<string, any>"),
                _field("timeoutMs", "number", optional=True),
                _field("createSnapshot", "boolean", optional=True),
                _field("requireConfirmation", "boolean", optional=True),
            ),
            _interface(
                "ExecutionError",
                "Structured execution failure",
                _field("message", "string"),
                _field("kind", "string"),
                _field("trace", "string", optional=True),
            ),
            _interface(
                "SideEffect",
                "Observed external state change",
                _field("type", "string"),
                _field("description", "string"),
                _field("resource", "string", optional=True),
                _field("timestamp", "datetime"),
            ),
            _interface(
                "ExecutionResponse",
                "Command execution response",
                _field("success", "boolean"),
                _field("commandId", "string"),
                _field("durationMs", "number"),
                _field("result", "any", optional=True),
                _field("error", "ExecutionError", optional=True),
                _field("sideEffects", "SideEffect[]"),
            ),
        ]
    return definitions


def _render_type(expr: str, primitives: dict[str, str], python: bool) -> str:
    expr = expr.strip()
    if expr.startswith("'"):
        values = [v.strip().strip("'") for v in expr.split("|")]
        if python:
            return "Literal[" + ", ".join(f'"{v}"' for v in values) + "]"
        return " | ".join(f"'{v}'" for v in values)
    if expr.endswith("[]"):
        inner = _render_type(expr[:-2], primitives, python)
        return f"list[{inner}]" if python else f"{inner}[]"
    if expr.startswith("map<") and expr.endswith(">"):
        key, _, value = expr[4:-1].partition(",")
        key_type = _render_type(key, primitives, python)
        value_type = _render_type(value, primitives, python)
        return f"dict[{key_type}, {value_type}]" if python else f"Record<{key_type}, {value_type}>"
    return primitives.get(expr, expr)


def render_typescript(definitions: Sequence[TypeDefinition], header: str | None = None) -> str:
    """Render definitions as a TypeScript declaration file."""
    lines: list[str] = []
    if header:
        lines += [f"// {line}" if line else "//" for line in header.splitlines()] + [""]

    for definition in definitions:
        if definition.description:
            lines.append(f"/** {definition.description} */")
        if definition.kind == "enum":
            lines.append(f"export enum {definition.name} {{")
            lines += [f"  {m.key} = '{m.value}'," for m in definition.members]
        else:
            lines.append(f"export interface {definition.name} {{")
            for f in definition.fields:
                if f.description:
                    lines.append(f"  /** {f.description} */")
                marker = "?" if f.optional else ""
                lines.append(f"  readonly {f.name}{marker}: {_render_type(f.type, _TS_PRIMITIVES, False)};")
        lines += ["}", ""]
    return "\n".join(lines)


def render_python(definitions: Sequence[TypeDefinition], header: str | None = None) -> str:
    """Render definitions as a Python module of ``TypedDict`` and ``StrEnum`` classes.

    Interfaces with a field named after a keyword (``async``) use the
    functional ``TypedDict`` form.
    """
    body: list[str] = []
    for definition in definitions:
        body += ["", ""]
        docstring = f'    """{definition.description}."""' if definition.description else None

        if definition.kind == "enum":
            body.append(f"class {definition.name}(StrEnum):")
            if docstring:
                body += [docstring, ""]
            body += [f'    {m.key} = "{m.value}"' for m in definition.members] or ["    pass"]
            continue

        fields = []
        for f in definition.fields:
            rendered = _render_type(f.type, _PY_PRIMITIVES, True)
            fields.append((f.name, f"NotRequired[{rendered}]" if f.optional else rendered))

        if any(keyword.iskeyword(name) for name, _ in fields):
            body.append(f'{definition.name} = TypedDict("{definition.name}", {{')
            body += [f"    \"{name}\": '{rendered}'," for name, rendered in fields]
            body.append("})")
        else:
            body.append(f"class {definition.name}(TypedDict):")
            if docstring:
                body += [docstring, ""]
            body += [f"    {name}: {rendered}" for name, rendered in fields] or ["    pass"]

    text = "\n".join(body)
    typing_names = [n for n in ("Any", "Literal", "NotRequired") if re.search(rf"\b{n}\b", text)]
    imports = ", ".join([*typing_names, "TypedDict"])
    lines = [
        f'"""{header or "Generated command types."}"""',
        "",
        "from __future__ import annotations",
        "",
        "from enum import StrEnum",
        f"from typing import {imports}",
    ]
    return "\n".join(lines) + text + "\n"
