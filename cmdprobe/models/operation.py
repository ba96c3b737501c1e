"""Operation, signature and parameter records."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from cmdprobe.models.base import RecordModel, utcnow


class RiskLevel(StrEnum):
    """How dangerous it is to invoke an operation."""

    SAFE = "safe"
    MODERATE = "moderate"
    DESTRUCTIVE = "destructive"


class ParameterType(StrEnum):
    """Vocabulary for declared parameter types."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"
    FUNCTION = "function"
    ANY = "any"
    UNKNOWN = "unknown"


class ParameterSource(StrEnum):
    """Where a parameter definition came from."""

    TYPES = "inferred-from-types"
    DOCS = "inferred-from-docs"
    HEURISTIC = "inferred-by-heuristic"
    MANUAL = "manual"


class Confidence(StrEnum):
    """Trust level of a signature."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _CONFIDENCE_RANK[self]

    @classmethod
    def best(cls, values: Iterable[Confidence | str]) -> Confidence:
        """Highest confidence among ``values``, LOW when empty."""
        ranked = [cls(v) for v in values]
        return max(ranked, key=lambda c: c.rank, default=cls.LOW)


_CONFIDENCE_RANK = {Confidence.LOW: 0, Confidence.MEDIUM: 1, Confidence.HIGH: 2}


class Parameter(RecordModel):
    """One parameter of an operation signature.

    ``type`` is a member of :class:`ParameterType` or a ``|``-separated union
    of members such as ``"string|number"``.
    """

    name: str = Field(min_length=1)
    type: str = ParameterType.UNKNOWN.value
    required: bool = False
    description: str | None = None
    default_value: Any = None
    source: ParameterSource = ParameterSource.HEURISTIC

    @field_validator("type")
    @classmethod
    def _normalize_type(cls, value: str) -> str:
        members = [part.strip().lower() for part in value.split("|") if part.strip()]
        if not members:
            return ParameterType.UNKNOWN.value
        known = {t.value for t in ParameterType}
        unknown = [m for m in members if m not in known]
        if unknown:
            raise ValueError(
                f"unknown parameter type(s) {unknown}; expected one of {sorted(known)}"
            )
        return "|".join(members)

    @property
    def type_members(self) -> list[str]:
        """Union members of the declared type."""
        return self.type.split("|")


class Signature(RecordModel):
    """Callable shape of an operation.

    Parameter names are unique: when the same name appears twice, the later
    definition replaces the earlier one in the earlier one's position.
    """

    parameters: tuple[Parameter, ...] = ()
    return_type: str | None = None
    is_async: bool = Field(default=False, alias="async")
    confidence: Confidence = Confidence.LOW
    sources: tuple[str, ...] = ()
    researched_at: datetime = Field(default_factory=utcnow)

    @field_validator("parameters")
    @classmethod
    def _unique_names(cls, parameters: tuple[Parameter, ...]) -> tuple[Parameter, ...]:
        by_name: dict[str, Parameter] = {}
        for parameter in parameters:
            by_name[parameter.name] = parameter
        return tuple(by_name.values())

    @property
    def parameter_names(self) -> list[str]:
        return [p.name for p in self.parameters]

    def get_parameter(self, name: str) -> Parameter | None:
        return next((p for p in self.parameters if p.name == name), None)


class Operation(RecordModel):
    """A discovered, invokable command."""

    id: str = Field(min_length=1)
    category: str
    subcategory: str = "core"
    display_name: str = ""
    description: str | None = None
    risk_level: RiskLevel = RiskLevel.SAFE
    context_requirements: tuple[str, ...] = ()
    discovered_at: datetime = Field(default_factory=utcnow)
    signature: Signature | None = None

    @property
    def is_destructive(self) -> bool:
        return self.risk_level is RiskLevel.DESTRUCTIVE


class DiscoveryStatistics(RecordModel):
    """Counts describing one discovery pass."""

    total_commands: int = 0
    by_category: dict[str, int] = Field(default_factory=dict)
    by_subcategory: dict[str, int] = Field(default_factory=dict)
    by_risk_level: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_operations(cls, operations: Iterable[Operation]) -> DiscoveryStatistics:
        by_category: dict[str, int] = {}
        by_subcategory: dict[str, int] = {}
        by_risk: dict[str, int] = {level.value: 0 for level in RiskLevel}
        total = 0
        for op in operations:
            total += 1
            by_category[op.category] = by_category.get(op.category, 0) + 1
            by_subcategory[op.subcategory] = by_subcategory.get(op.subcategory, 0) + 1
            by_risk[op.risk_level.value] += 1
        return cls(
            total_commands=total,
            by_category=by_category,
            by_subcategory=by_subcategory,
            by_risk_level=by_risk,
        )


class DiscoveryResults(RecordModel):
    """Persisted outcome of a discovery pass."""

    commands: tuple[Operation, ...] = ()
    statistics: DiscoveryStatistics = Field(default_factory=DiscoveryStatistics)
    discovery_timestamp: datetime = Field(default_factory=utcnow)

    def get(self, command_id: str) -> Operation | None:
        return next((op for op in self.commands if op.id == command_id), None)
