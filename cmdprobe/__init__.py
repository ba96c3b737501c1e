"""cmdprobe - discover, test and document the commands of a command registry.

Commands are discovered from a registry, their signatures inferred and
refined with manual entries, arguments validated, and invocations executed
under a timeout with snapshot rollback. Every attempt is recorded and the
whole catalogue can be exported as schemas, type definitions, an OpenAPI
description and narrative documentation.
"""

# Version is defined in pyproject.toml and read dynamically
try:
    from importlib.metadata import version

    __version__ = version("cmdprobe")
except Exception:
    __version__ = "0.0.0.dev0"  # Fallback for development installs

from cmdprobe.discovery import CallableRegistry, ParameterResearcher, RegistryScanner
from cmdprobe.docs import DocumentationExporter, DocumentationGenerator
from cmdprobe.execution import ResultAnalyzer, SafeExecutionEngine
from cmdprobe.models import (
    DocumentationPackage,
    ExecutionOptions,
    ExecutionOutcome,
    ManualParameterEntry,
    Operation,
    Parameter,
    Signature,
    TestResult,
)
from cmdprobe.results import JsonResultStore, ResultStore
from cmdprobe.signatures import ManualEntryStore, merge
from cmdprobe.validation import ParameterValidator, validate

__all__ = [
    "CallableRegistry",
    "DocumentationExporter",
    "DocumentationGenerator",
    "DocumentationPackage",
    "ExecutionOptions",
    "ExecutionOutcome",
    "JsonResultStore",
    "ManualEntryStore",
    "ManualParameterEntry",
    "Operation",
    "Parameter",
    "ParameterResearcher",
    "ParameterValidator",
    "RegistryScanner",
    "ResultAnalyzer",
    "ResultStore",
    "SafeExecutionEngine",
    "Signature",
    "TestResult",
    "__version__",
]
