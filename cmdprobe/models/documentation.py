"""Documentation package, change summary and export records."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from cmdprobe.models.base import RecordModel, utcnow
from cmdprobe.models.operation import DiscoveryStatistics, Operation
from cmdprobe.models.results import TestResult


class TypeChange(RecordModel):
    name: str
    before: str
    after: str


class SignatureChange(RecordModel):
    """Parameter-level differences of one command between two generations."""

    command_id: str
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    type_changed: tuple[TypeChange, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.type_changed)


class CommandModification(RecordModel):
    command_id: str
    changes: tuple[str, ...] = ()


class ChangeSummary(RecordModel):
    """Difference between two successive documentation packages."""

    commands_added: tuple[str, ...] = ()
    commands_removed: tuple[str, ...] = ()
    commands_modified: tuple[CommandModification, ...] = ()
    signature_changes: tuple[SignatureChange, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (
            self.commands_added
            or self.commands_removed
            or self.commands_modified
            or self.signature_changes
        )


class PackageMetadata(RecordModel):
    version: str = "1.0.0"
    generated_at: datetime = Field(default_factory=utcnow)
    command_count: int = 0
    test_result_count: int = 0
    generator_version: str = ""
    author: str | None = None
    organization: str | None = None
    change_summary: ChangeSummary | None = None


class TypeField(RecordModel):
    name: str
    type: str
    optional: bool = False
    description: str | None = None


class EnumMember(RecordModel):
    key: str
    value: str


class TypeDefinition(RecordModel):
    """Language-neutral description of one generated type.

    Interfaces carry ``fields``; enums carry ``members``.
    """

    name: str
    kind: Literal["interface", "enum"]
    description: str = ""
    fields: tuple[TypeField, ...] = ()
    members: tuple[EnumMember, ...] = ()


class Coverage(RecordModel):
    """Percentages (0-100) of commands with each kind of documentation."""

    descriptions: float = 0.0
    signatures: float = 0.0
    examples: float = 0.0


class QualityReport(RecordModel):
    overall_score: int = 0
    coverage: Coverage = Field(default_factory=Coverage)
    issues: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()


class DocumentationPackage(RecordModel):
    """Everything one generation produced, ready for format renderers."""

    metadata: PackageMetadata
    operations: tuple[Operation, ...] = ()
    test_results: tuple[TestResult, ...] = ()
    statistics: DiscoveryStatistics = Field(default_factory=DiscoveryStatistics)
    schema_document: dict[str, Any] = Field(default_factory=dict)
    type_definitions: tuple[TypeDefinition, ...] = ()
    api_description: dict[str, Any] = Field(default_factory=dict)
    quality: QualityReport = Field(default_factory=QualityReport)

    def get_operation(self, command_id: str) -> Operation | None:
        return next((op for op in self.operations if op.id == command_id), None)


class ExportedFile(RecordModel):
    path: str
    format: str
    size: int


class ExportResult(RecordModel):
    """Outcome of writing a package in one or more formats."""

    success: bool
    files: tuple[ExportedFile, ...] = ()
    metadata: PackageMetadata | None = None
    duration_ms: float = 0.0
    warnings: tuple[str, ...] = ()
    error: str | None = None
