"""User-authored parameter overrides."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from cmdprobe.models.base import RecordModel, utcnow
from cmdprobe.models.operation import Parameter, ParameterSource


class ManualParameterEntry(RecordModel):
    """A manual definition of one parameter of one command.

    The wrapped parameter always carries ``source="manual"``.
    """

    command_id: str = Field(min_length=1)
    parameter: Parameter
    notes: str = ""
    examples: tuple[Any, ...] = ()
    validation_rules: tuple[str, ...] = ()
    created_at: datetime = Field(default_factory=utcnow)
    modified_at: datetime = Field(default_factory=utcnow)
    created_by: str = "user"

    @field_validator("parameter")
    @classmethod
    def _mark_manual(cls, parameter: Parameter) -> Parameter:
        if parameter.source is ParameterSource.MANUAL:
            return parameter
        return parameter.model_copy(update={"source": ParameterSource.MANUAL})

    @field_validator("validation_rules")
    @classmethod
    def _strip_rules(cls, rules: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(rule.strip() for rule in rules if rule.strip())

    @property
    def name(self) -> str:
        return self.parameter.name
