"""Configuration data models for cmdprobe."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from cmdprobe.core.exceptions import ValidationError


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """How cmdprobe logs, read from the ``[logging]`` table.

    Fields mirror the keyword arguments of
    :func:`cmdprobe.core.logging.configure_logging`. Each one can be
    overridden by a ``CMDPROBE_LOG_*`` environment variable, for example
    ``CMDPROBE_LOG_LEVEL=DEBUG`` or ``CMDPROBE_LOG_FILE=run.log``.

    ```toml
    [logging]
    level = "DEBUG"
    format = "rich"
    ```
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "structured", "rich"] = "structured"
    output_file: str | None = None
    use_color: bool = True
    include_timestamp: bool = True
    use_rich: bool = False
    backtrace: bool = True
    diagnose: bool = True


@dataclass(frozen=True, slots=True)
class ExecutionConfig:
    """Defaults applied to every command execution.

    Attributes
    ----------
    default_timeout_ms : int
        Time budget for a single command invocation
    create_snapshot : bool
        Capture workspace state before invoking a command
    require_confirmation : bool
        Refuse destructive commands that were not explicitly confirmed
    retain_snapshot : bool
        Keep the snapshot after a successful run
    max_snapshots : int
        Number of retained snapshots kept before the oldest is evicted
    """

    default_timeout_ms: int = 30_000
    create_snapshot: bool = True
    require_confirmation: bool = True
    retain_snapshot: bool = False
    max_snapshots: int = 10

    def __post_init__(self) -> None:
        if self.default_timeout_ms <= 0:
            raise ValidationError("default_timeout_ms", "must be positive", self.default_timeout_ms)
        if self.max_snapshots < 1:
            raise ValidationError("max_snapshots", "must be at least 1", self.max_snapshots)


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Where persisted documents live."""

    data_dir: str = ".cmdprobe"
    discovery_file: str = "discovery.json"
    manual_entries_file: str = "manual-parameters.json"
    results_file: str = "test-results.json"


@dataclass(frozen=True, slots=True)
class ExportSettings:
    """Documentation export settings.

    Attributes
    ----------
    output_dir : str
        Directory that receives generated artifacts
    formats : tuple[str, ...]
        Formats to render (markdown, html, json, typescript, python, openapi, yaml)
    include_examples : bool
        Embed examples from successful executions
    include_test_results : bool
        Include execution history in the package
    max_examples : int
        Upper bound on examples written to EXAMPLES.md
    author, organization : str | None
        Optional attribution stored in package metadata
    schema_version : str
        Version written into package metadata and schema documents
    openapi_version : str
        OpenAPI version of the API description
    """

    output_dir: str = "docs/generated"
    formats: tuple[str, ...] = ("markdown", "json", "typescript", "openapi")
    include_examples: bool = True
    include_test_results: bool = True
    max_examples: int = 10
    author: str | None = None
    organization: str | None = None
    schema_version: str = "1.0.0"
    openapi_version: str = "3.0.3"


@dataclass(frozen=True, slots=True)
class CmdProbeConfig:
    """Top-level cmdprobe configuration.

    Attributes
    ----------
    modules : list[str]
        Python modules whose public callables are registered as commands
    logging, execution, storage, export
        Section configs
    settings : dict[str, Any]
        Free-form settings passed through untouched
    """

    modules: list[str] = field(default_factory=list)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    export: ExportSettings = field(default_factory=ExportSettings)
    settings: dict[str, Any] = field(default_factory=dict)
