"""Logging setup for cmdprobe, built on Loguru.

Every module obtains its logger through :func:`get_logger`. The first call
configures a sensible default from ``CMDPROBE_LOG_LEVEL`` and
``CMDPROBE_LOG_FORMAT``; applications call :func:`configure_logging`
explicitly to choose another sink.

Examples
--------
>>> from cmdprobe.core.logging import get_logger
>>> logger = get_logger(__name__)
>>> logger.info("Scanning {count} commands", count=12)

Switch to JSON output for log aggregation::

    from cmdprobe.core.logging import configure_logging
    configure_logging(level="DEBUG", format="json")
"""

import contextvars
import os
import sys
from contextlib import suppress
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from loguru import Logger

from loguru import logger
from rich.logging import RichHandler

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["console", "json", "structured", "rich"]

_CURRENT_CONFIG: dict | None = None
_HANDLER_IDS: list[int] = []

# Correlation ID for tying log lines to one execution
correlation_id: contextvars.ContextVar[str] = contextvars.ContextVar("correlation_id", default="-")


def configure_logging(
    level: LogLevel = "INFO",
    format: LogFormat = "structured",
    output_file: str | Path | None = None,
    use_color: bool = True,
    include_timestamp: bool = True,
    force_reconfigure: bool = False,
    use_rich: bool = False,
    backtrace: bool = True,
    diagnose: bool = True,
) -> None:
    """Configure global logging for cmdprobe.

    Calling this repeatedly with the same arguments is a no-op. Only handlers
    added by a previous call are removed, so sinks installed by the host
    application (or by pytest) stay untouched.

    Parameters
    ----------
    level : LogLevel, default="INFO"
        Minimum log level to output
    format : LogFormat, default="structured"
        Output format:
        - "console": plain text, no colors
        - "json": one JSON object per line (Loguru ``serialize``)
        - "structured": colored single-line records
        - "rich": Rich console handler
    output_file : str | Path | None, default=None
        Optional file that receives JSON records in addition to the console
    use_color : bool, default=True
        Use ANSI colors in structured format (disabled for non-TTY stderr)
    include_timestamp : bool, default=True
        Include timestamps in console output
    force_reconfigure : bool, default=False
        Reinstall handlers even if the configuration did not change
    use_rich : bool, default=False
        Shortcut for ``format="rich"``
    backtrace : bool, default=True
        Extend tracebacks beyond the catching frame
    diagnose : bool, default=True
        Show variable values in tracebacks (disable in production)

    Examples
    --------
    Quiet test setup::

        configure_logging(level="WARNING", format="console")
    """
    global _CURRENT_CONFIG

    if use_rich:
        format = "rich"
    wanted = {
        "level": level,
        "format": format,
        "output_file": str(output_file) if output_file else None,
        "use_color": use_color,
        "include_timestamp": include_timestamp,
        "backtrace": backtrace,
        "diagnose": diagnose,
    }
    if wanted == _CURRENT_CONFIG and not force_reconfigure:
        return

    while _HANDLER_IDS:
        with suppress(ValueError):
            logger.remove(_HANDLER_IDS.pop())

    # Every record carries the id of the execution it belongs to
    logger.configure(patcher=_stamp_correlation_id)

    colorize = use_color and sys.stderr.isatty()
    _HANDLER_IDS.append(
        logger.add(
            level=level,
            backtrace=backtrace,
            diagnose=diagnose,
            **_console_sink(format, colorize, include_timestamp),
        )
    )

    if output_file:
        path = Path(output_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        _HANDLER_IDS.append(
            logger.add(
                path,
                level=level,
                serialize=True,
                rotation="10 MB",
                retention="1 week",
                compression="zip",
                backtrace=backtrace,
                diagnose=diagnose,
            )
        )

    _CURRENT_CONFIG = wanted


def _stamp_correlation_id(record: dict) -> None:
    record["extra"]["correlation_id"] = correlation_id.get()
    record["extra"].setdefault("module", record["name"])


def _console_sink(format: str, colorize: bool, include_timestamp: bool) -> dict:
    """Sink keyword arguments for the stderr handler of a given format."""
    if format == "rich":
        handler = RichHandler(show_time=include_timestamp, show_path=False, markup=False)
        return {"sink": handler, "format": "{message}"}
    if format == "json":
        return {"sink": sys.stderr, "serialize": True}

    stamp = "{time:YYYY-MM-DD HH:mm:ss.SSS} | " if include_timestamp else ""
    if format == "console":
        line = stamp + "{level: <8} | {extra[correlation_id]} | {message}\n{exception}"
        return {"sink": sys.stderr, "format": line, "colorize": False}
    line = (
        f"<green>{stamp}</green>" if stamp else ""
    ) + (
        "<level>{level: <8}</level> | <magenta>{extra[correlation_id]}</magenta> | "
        "<cyan>{extra[module]}</cyan> - <level>{message}</level>\n{exception}"
    )
    return {"sink": sys.stderr, "format": line, "colorize": colorize}


@lru_cache(maxsize=256)
def get_logger(name: str) -> "Logger":
    """Get a logger bound to ``name``.

    Parameters
    ----------
    name : str
        Logger name, typically ``__name__`` of the calling module

    Returns
    -------
    loguru.Logger
        Logger instance bound with ``module=name``
    """
    _ensure_configured()
    return logger.bind(module=name)


def set_correlation_id(cid: str) -> None:
    """Set the correlation ID for the current context."""
    correlation_id.set(cid)


def get_correlation_id() -> str:
    """Get the current correlation ID, ``"-"`` when unset.

    Examples
    --------
    >>> clear_correlation_id()
    >>> get_correlation_id()
    '-'
    """
    return correlation_id.get()


def clear_correlation_id() -> None:
    """Reset the correlation ID for the current context."""
    correlation_id.set("-")


def _ensure_configured() -> None:
    """Apply the environment-driven default configuration once."""
    if _CURRENT_CONFIG is None:
        level = os.getenv("CMDPROBE_LOG_LEVEL", "INFO").upper()
        format_type = os.getenv("CMDPROBE_LOG_FORMAT", "structured").lower()
        configure_logging(level=level, format=format_type)  # type: ignore[arg-type]
