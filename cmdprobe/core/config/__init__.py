"""Configuration loading for cmdprobe."""

from cmdprobe.core.config.loader import ConfigLoader, clear_config_cache, load_config
from cmdprobe.core.config.models import (
    CmdProbeConfig,
    ExecutionConfig,
    ExportSettings,
    LoggingConfig,
    StorageConfig,
)

__all__ = [
    "CmdProbeConfig",
    "ConfigLoader",
    "ExecutionConfig",
    "ExportSettings",
    "LoggingConfig",
    "StorageConfig",
    "clear_config_cache",
    "load_config",
]
