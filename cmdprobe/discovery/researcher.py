"""Infer command signatures from type hints, docstrings and naming heuristics."""

from __future__ import annotations

import collections.abc
import inspect
import re
import types
from collections.abc import Callable, Iterable
from decimal import Decimal
from pathlib import PurePath
from typing import Any, Literal, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel

from cmdprobe.core.exceptions import ResourceNotFoundError
from cmdprobe.core.logging import get_logger
from cmdprobe.discovery.scanner import split_words
from cmdprobe.models.operation import (
    Confidence,
    Operation,
    Parameter,
    ParameterSource,
    ParameterType,
    Signature,
)
from cmdprobe.models.results import to_jsonable

logger = get_logger(__name__)

SOURCE_CONFIDENCE = {
    ParameterSource.TYPES: Confidence.HIGH,
    ParameterSource.DOCS: Confidence.MEDIUM,
    ParameterSource.HEURISTIC: Confidence.LOW,
}

# Docstring type words -> parameter types
_DOC_TYPE_WORDS = {
    "str": ParameterType.STRING,
    "string": ParameterType.STRING,
    "path": ParameterType.STRING,
    "int": ParameterType.NUMBER,
    "float": ParameterType.NUMBER,
    "number": ParameterType.NUMBER,
    "bool": ParameterType.BOOLEAN,
    "boolean": ParameterType.BOOLEAN,
    "dict": ParameterType.OBJECT,
    "mapping": ParameterType.OBJECT,
    "object": ParameterType.OBJECT,
    "list": ParameterType.ARRAY,
    "tuple": ParameterType.ARRAY,
    "sequence": ParameterType.ARRAY,
    "callable": ParameterType.FUNCTION,
    "any": ParameterType.ANY,
}

_SECTION_HEADERS = {"args", "arguments", "parameters", "params", "keyword arguments"}
_NUMPY_PARAM = re.compile(r"^(?P<name>\*{0,2}\w+)\s*:\s*(?P<type>.+)$")
_GOOGLE_PARAM = re.compile(r"^(?P<name>\*{0,2}\w+)\s*(?:\((?P<type>[^)]*)\))?\s*:\s*(?P<desc>.*)$")


def map_annotation(annotation: Any) -> tuple[list[str], bool]:
    """Map a Python annotation onto parameter types.

    Returns
    -------
    tuple[list[str], bool]
        Type members and whether ``None`` is an accepted value
    """
    if annotation is inspect.Parameter.empty:
        return [ParameterType.UNKNOWN.value], False
    if annotation is Any:
        return [ParameterType.ANY.value], False
    if annotation is None or annotation is type(None):
        return [], True

    origin = get_origin(annotation)
    if origin in (Union, types.UnionType):
        members: list[str] = []
        nullable = False
        for arg in get_args(annotation):
            arg_members, arg_nullable = map_annotation(arg)
            nullable = nullable or arg_nullable
            members.extend(m for m in arg_members if m not in members)
        return members or [ParameterType.ANY.value], nullable
    if origin is Literal:
        members = []
        for value in get_args(annotation):
            member, _ = map_annotation(type(value))
            members.extend(m for m in member if m not in members)
        return members or [ParameterType.ANY.value], False

    target = origin or annotation
    if not isinstance(target, type):
        if target in (collections.abc.Callable,):
            return [ParameterType.FUNCTION.value], False
        return [ParameterType.ANY.value], False
    if issubclass(target, bool):
        return [ParameterType.BOOLEAN.value], False
    if issubclass(target, (str, PurePath)):
        return [ParameterType.STRING.value], False
    if issubclass(target, (int, float, Decimal)):
        return [ParameterType.NUMBER.value], False
    if issubclass(target, (collections.abc.Mapping, BaseModel)):
        return [ParameterType.OBJECT.value], False
    if issubclass(target, (list, tuple, set, frozenset, collections.abc.Sequence)):
        return [ParameterType.ARRAY.value], False
    if issubclass(target, collections.abc.Callable):  # type: ignore[arg-type]
        return [ParameterType.FUNCTION.value], False
    return [ParameterType.OBJECT.value], False


def format_annotation(annotation: Any) -> str:
    """Readable string for an annotation (``"list[str] | None"``)."""
    if annotation is inspect.Signature.empty:
        return "unknown"
    if annotation is None or annotation is type(None):
        return "None"
    if isinstance(annotation, str):
        return annotation
    if isinstance(annotation, type) and not get_args(annotation):
        return annotation.__name__
    return str(annotation).replace("typing.", "")


def parse_docstring_params(doc: str | None) -> dict[str, tuple[str | None, str]]:
    """Extract ``name -> (type text, description)`` from a docstring.

    NumPy (``name : type`` followed by an indented description) and Google
    (``name (type): description``) parameter sections are understood.
    """
    if not doc:
        return {}
    lines = inspect.cleandoc(doc).splitlines()
    params: dict[str, tuple[str | None, str]] = {}
    in_section = False
    current: str | None = None

    for index, line in enumerate(lines):
        stripped = line.strip()
        header = stripped.rstrip(":").lower()
        next_line = lines[index + 1].strip() if index + 1 < len(lines) else ""
        is_underlined = bool(next_line) and set(next_line) <= {"-", "="}

        if not line.startswith((" ", "\t")) and (stripped.endswith(":") or is_underlined):
            in_section = header in _SECTION_HEADERS
            current = None
            continue
        if not in_section or not stripped or set(stripped) <= {"-", "="}:
            continue

        indent = len(line) - len(line.lstrip())
        numpy = _NUMPY_PARAM.match(stripped)
        google = _GOOGLE_PARAM.match(stripped)
        if numpy and indent == 0:
            current = numpy["name"].lstrip("*")
            params[current] = (numpy["type"].strip(), "")
        elif google and (indent <= 4 and (google["type"] is not None or google["desc"])):
            current = google["name"].lstrip("*")
            params[current] = (google["type"], google["desc"].strip())
        elif current is not None:
            doc_type, description = params[current]
            params[current] = (doc_type, f"{description} {stripped}".strip())
    return params


def _doc_type_members(doc_type: str | None) -> list[str]:
    if not doc_type:
        return []
    members: list[str] = []
    for word in re.split(r"[\s,|\[\]]+|\bor\b", doc_type.lower()):
        mapped = _DOC_TYPE_WORDS.get(word.strip())
        if mapped and mapped.value not in members:
            members.append(mapped.value)
    return members


def heuristic_parameters(command_id: str) -> list[Parameter]:
    """Guess parameters from the words of a command id."""
    words = set(split_words(command_id.rsplit(".", 1)[-1]))
    params: list[Parameter] = []
    if words & {"file", "open"}:
        params.append(
            Parameter(
                name="uri",
                type=ParameterType.STRING,
                description="Path or URI of the target resource",
                source=ParameterSource.HEURISTIC,
            )
        )
    if "create" in words:
        params.append(
            Parameter(
                name="name",
                type=ParameterType.STRING,
                required=True,
                description="Name of the item to create",
                source=ParameterSource.HEURISTIC,
            )
        )
    if words & {"execute", "run"}:
        params.append(
            Parameter(
                name="options",
                type=ParameterType.OBJECT,
                description="Execution options",
                source=ParameterSource.HEURISTIC,
            )
        )
    return params


class ParameterResearcher:
    """Infer a :class:`Signature` for an operation.

    Evidence is gathered in decreasing order of trust: the callable's
    signature and type hints, then its docstring, then naming heuristics.
    The resulting confidence is the best confidence among the sources that
    actually contributed.
    """

    def research(self, operation: Operation, target: Callable[..., Any] | None = None) -> Signature:
        """Research the signature of ``operation``.

        Never raises: a failure yields an empty, low-confidence signature
        with source ``"error"``.
        """
        try:
            return self._research(operation, target)
        except Exception as e:
            logger.warning(
                "Signature research failed for {command}: {error}", command=operation.id, error=e
            )
            return Signature(confidence=Confidence.LOW, sources=("error",))

    def research_all(
        self,
        operations: Iterable[Operation],
        resolve: Callable[[str], Callable[..., Any] | None],
    ) -> list[Operation]:
        """Research every operation, resolving callables through ``resolve``."""
        researched = []
        for operation in operations:
            try:
                target = resolve(operation.id)
            except ResourceNotFoundError:
                target = None
            signature = self.research(operation, target)
            researched.append(operation.model_copy(update={"signature": signature}))
        return researched

    def _research(self, operation: Operation, target: Callable[..., Any] | None) -> Signature:
        sources: list[ParameterSource] = []
        parameters: list[Parameter] = []
        return_type: str | None = None
        is_async = False

        if target is not None:
            is_async = inspect.iscoroutinefunction(target)
            sig = inspect.signature(target)
            try:
                hints = get_type_hints(target)
            except Exception:
                hints = {}
            docs = parse_docstring_params(inspect.getdoc(target))

            if sig.return_annotation is not inspect.Signature.empty:
                return_type = format_annotation(hints.get("return", sig.return_annotation))

            for name, param in sig.parameters.items():
                if name in ("self", "cls") or param.kind in (
                    inspect.Parameter.VAR_POSITIONAL,
                    inspect.Parameter.VAR_KEYWORD,
                ):
                    continue
                parameter, source = self._from_inspect(param, hints.get(name), docs.get(name))
                parameters.append(parameter)
                if source not in sources:
                    sources.append(source)
                if docs.get(name) and ParameterSource.DOCS not in sources:
                    sources.append(ParameterSource.DOCS)

            if not sig.parameters and (return_type or hints):
                sources.append(ParameterSource.TYPES)

        if not parameters:
            guessed = heuristic_parameters(operation.id)
            if guessed:
                parameters = guessed
                sources.append(ParameterSource.HEURISTIC)

        confidence = Confidence.best(SOURCE_CONFIDENCE[s] for s in sources)
        logger.debug(
            "Researched {command}: {count} parameters, {confidence} confidence",
            command=operation.id,
            count=len(parameters),
            confidence=confidence.value,
        )
        return Signature(
            parameters=tuple(parameters),
            return_type=return_type,
            is_async=is_async,
            confidence=confidence,
            sources=tuple(s.value for s in sources),
        )

    @staticmethod
    def _from_inspect(
        param: inspect.Parameter,
        hint: Any,
        doc: tuple[str | None, str] | None,
    ) -> tuple[Parameter, ParameterSource]:
        annotation = hint if hint is not None else param.annotation
        members, nullable = map_annotation(annotation)
        source = ParameterSource.TYPES
        doc_type, description = doc if doc else (None, "")

        if members == [ParameterType.UNKNOWN.value]:
            doc_members = _doc_type_members(doc_type)
            if doc_members:
                members = doc_members
                source = ParameterSource.DOCS
            else:
                source = ParameterSource.HEURISTIC

        has_default = param.default is not inspect.Parameter.empty
        return (
            Parameter(
                name=param.name,
                type="|".join(members) if members else ParameterType.ANY.value,
                required=not has_default and not nullable,
                description=description or None,
                default_value=to_jsonable(param.default) if has_default else None,
                source=source,
            ),
            source,
        )
