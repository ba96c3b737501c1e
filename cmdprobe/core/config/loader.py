"""TOML configuration loader for cmdprobe.

Configuration lives either in a dedicated ``cmdprobe.toml`` (top-level
tables) or under ``[tool.cmdprobe]`` of a ``pyproject.toml``. String values
may reference the environment as ``${VAR}``; ``CMDPROBE_LOG_*`` variables
override the logging table after substitution.
"""

from __future__ import annotations

import dataclasses
import os
import re
import tomllib
from collections.abc import Callable
from functools import lru_cache
from pathlib import Path
from typing import Any

from cmdprobe.core.config.models import (
    CmdProbeConfig,
    ExecutionConfig,
    ExportSettings,
    LoggingConfig,
    StorageConfig,
)
from cmdprobe.core.exceptions import ConfigurationError, ValidationError
from cmdprobe.core.logging import get_logger

logger = get_logger(__name__)

CONFIG_CANDIDATES = ("cmdprobe.toml", "pyproject.toml", ".cmdprobe.toml")

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")
_BOOL_WORDS = {
    "true": True, "1": True, "yes": True, "on": True,
    "false": False, "0": False, "no": False, "off": False,
}


def _as_bool(raw: str) -> bool:
    try:
        return _BOOL_WORDS[raw.strip().lower()]
    except KeyError:
        raise ValueError(f"expected one of {sorted(_BOOL_WORDS)}, got {raw!r}") from None


# env var -> (LoggingConfig field, converter)
_LOGGING_OVERRIDES: dict[str, tuple[str, Callable[[str], Any]]] = {
    "CMDPROBE_LOG_LEVEL": ("level", str.upper),
    "CMDPROBE_LOG_FORMAT": ("format", str.lower),
    "CMDPROBE_LOG_FILE": ("output_file", str),
    "CMDPROBE_LOG_COLOR": ("use_color", _as_bool),
    "CMDPROBE_LOG_TIMESTAMP": ("include_timestamp", _as_bool),
    "CMDPROBE_LOG_RICH": ("use_rich", _as_bool),
    "CMDPROBE_LOG_BACKTRACE": ("backtrace", _as_bool),
    "CMDPROBE_LOG_DIAGNOSE": ("diagnose", _as_bool),
}


def _has_tool_section(pyproject: Path) -> bool:
    with pyproject.open("rb") as f:
        try:
            return "cmdprobe" in tomllib.load(f).get("tool", {})
        except tomllib.TOMLDecodeError:
            return False


def _expand(value: Any) -> Any:
    """Replace ``${VAR}`` placeholders throughout nested TOML data.

    Unset variables leave their placeholder in place.
    """
    if isinstance(value, str):
        return _PLACEHOLDER.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)
    if isinstance(value, dict):
        return {k: _expand(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand(v) for v in value]
    return value


def _section(cls: type[Any], name: str, values: dict[str, Any]) -> Any:
    """Build one section dataclass, rejecting keys it does not declare."""
    unknown = sorted(set(values) - {f.name for f in dataclasses.fields(cls)})
    if unknown:
        raise ConfigurationError(name, f"unknown keys: {', '.join(unknown)}")
    try:
        return cls(**values)
    except ValidationError as e:
        raise ConfigurationError(name, str(e)) from e


class ConfigLoader:
    """Locates, reads and validates cmdprobe configuration files."""

    def locate(self, path: str | Path | None = None) -> Path:
        """Resolve the configuration file to read.

        An explicit ``path`` must exist. Otherwise ``CMDPROBE_CONFIG_PATH`` is
        tried, then each directory from the working directory upwards is
        searched for :data:`CONFIG_CANDIDATES`. A ``pyproject.toml`` only
        counts when it has a ``[tool.cmdprobe]`` table.

        Raises
        ------
        FileNotFoundError
            If no configuration file is found
        """
        if path:
            explicit = Path(path)
            if not explicit.exists():
                raise FileNotFoundError(f"Configuration file not found: {explicit}")
            return explicit

        if env_path := os.getenv("CMDPROBE_CONFIG_PATH"):
            if Path(env_path).exists():
                return Path(env_path)
            logger.warning("CMDPROBE_CONFIG_PATH points at a missing file: {path}", path=env_path)

        directory = Path.cwd()
        for directory in (directory, *directory.parents):
            for name in CONFIG_CANDIDATES:
                candidate = directory / name
                if not candidate.is_file():
                    continue
                if name != "pyproject.toml" or _has_tool_section(candidate):
                    return candidate

        raise FileNotFoundError(f"No configuration file found (looked for {', '.join(CONFIG_CANDIDATES)})")

    def load_from_toml(self, path: str | Path | None = None) -> CmdProbeConfig:
        """Locate and parse a configuration file, caching by absolute path."""
        return _load_cached(str(self.locate(path).absolute()))

    def read(self, config_path: Path) -> CmdProbeConfig:
        """Parse ``config_path`` into a :class:`CmdProbeConfig`."""
        logger.info("Loading configuration from {path}", path=config_path)
        try:
            data = tomllib.loads(config_path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(str(config_path), f"invalid TOML: {e}") from e

        tool_table = data.get("tool", {}).get("cmdprobe")
        if tool_table is not None:
            data = tool_table
        elif config_path.name == "pyproject.toml":
            logger.warning("{path} has no [tool.cmdprobe] table, using defaults", path=config_path)
            return CmdProbeConfig()

        return self.build(_expand(data))

    def build(self, data: dict[str, Any]) -> CmdProbeConfig:
        """Validate raw configuration tables."""
        export = dict(data.get("export", {}))
        if "formats" in export:
            export["formats"] = tuple(export["formats"])

        return CmdProbeConfig(
            modules=list(data.get("modules", [])),
            logging=_section(LoggingConfig, "logging", self._logging_values(data.get("logging", {}))),
            execution=_section(ExecutionConfig, "execution", data.get("execution", {})),
            storage=_section(StorageConfig, "storage", data.get("storage", {})),
            export=_section(ExportSettings, "export", export),
            settings=dict(data.get("settings", {})),
        )

    @staticmethod
    def _logging_values(table: dict[str, Any]) -> dict[str, Any]:
        values = dict(table)
        for env_name, (field_name, convert) in _LOGGING_OVERRIDES.items():
            raw = os.getenv(env_name)
            if not raw:
                continue
            try:
                values[field_name] = convert(raw)
            except ValueError as e:
                logger.warning("Ignoring {var}: {error}", var=env_name, error=e)
        return values


@lru_cache(maxsize=32)
def _load_cached(path_str: str) -> CmdProbeConfig:
    return ConfigLoader().read(Path(path_str))


def load_config(path: str | Path | None = None) -> CmdProbeConfig:
    """Load configuration, falling back to defaults when none is found.

    Parameters
    ----------
    path : str | Path | None
        Explicit configuration file; a missing explicit file is an error

    Returns
    -------
    CmdProbeConfig
    """
    try:
        return ConfigLoader().load_from_toml(path)
    except FileNotFoundError:
        if path:
            raise
        logger.debug("No configuration file found, using defaults")
        return CmdProbeConfig()


def clear_config_cache() -> None:
    """Forget previously parsed files."""
    _load_cached.cache_clear()
