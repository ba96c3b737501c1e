"""Typed records shared by every cmdprobe component."""

from cmdprobe.models.documentation import (
    ChangeSummary,
    CommandModification,
    Coverage,
    DocumentationPackage,
    EnumMember,
    ExportedFile,
    ExportResult,
    PackageMetadata,
    QualityReport,
    SignatureChange,
    TypeChange,
    TypeDefinition,
    TypeField,
)
from cmdprobe.models.manual import ManualParameterEntry
from cmdprobe.models.operation import (
    Confidence,
    DiscoveryResults,
    DiscoveryStatistics,
    Operation,
    Parameter,
    ParameterSource,
    ParameterType,
    RiskLevel,
    Signature,
)
from cmdprobe.models.results import (
    ExecutionError,
    ExecutionOptions,
    ExecutionOutcome,
    SideEffect,
    SideEffectType,
    TestResult,
)

__all__ = [
    "ChangeSummary",
    "CommandModification",
    "Confidence",
    "Coverage",
    "DiscoveryResults",
    "DiscoveryStatistics",
    "DocumentationPackage",
    "EnumMember",
    "ExecutionError",
    "ExecutionOptions",
    "ExecutionOutcome",
    "ExportResult",
    "ExportedFile",
    "ManualParameterEntry",
    "Operation",
    "PackageMetadata",
    "Parameter",
    "ParameterSource",
    "ParameterType",
    "QualityReport",
    "RiskLevel",
    "SideEffect",
    "SideEffectType",
    "Signature",
    "SignatureChange",
    "TestResult",
    "TypeChange",
    "TypeDefinition",
    "TypeField",
]
