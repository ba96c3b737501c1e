"""Tests for cmdprobe logging configuration."""

import json

from loguru import logger

from cmdprobe.core.logging import (
    clear_correlation_id,
    configure_logging,
    get_correlation_id,
    get_logger,
    set_correlation_id,
)


class TestCorrelationId:
    """Test the correlation id context variable."""

    def test_set_and_clear(self) -> None:
        """The id can be set and reset to the default."""
        set_correlation_id("abc123")
        assert get_correlation_id() == "abc123"
        clear_correlation_id()
        assert get_correlation_id() == "-"


class TestConfigureLogging:
    """Test handler installation."""

    def test_output_file_receives_records(self, tmp_path) -> None:
        """Records are written as JSON lines to the output file."""
        log_file = tmp_path / "logs" / "cmdprobe.log"
        configure_logging(level="INFO", format="console", output_file=log_file, force_reconfigure=True)
        try:
            get_logger("tests.logging").info("hello {name}", name="world")
            logger.complete()
            assert log_file.exists()
            assert "hello world" in log_file.read_text()
        finally:
            configure_logging(level="WARNING", format="console", force_reconfigure=True)

    def test_reconfigure_is_idempotent(self) -> None:
        """Calling twice with the same arguments keeps one handler set."""
        configure_logging(level="WARNING", format="console", force_reconfigure=True)
        configure_logging(level="WARNING", format="console")
        get_logger("tests.logging").warning("still works")

    def test_records_carry_correlation_id(self, tmp_path) -> None:
        """The active correlation id is stamped on every record."""
        log_file = tmp_path / "cmdprobe.log"
        configure_logging(level="INFO", format="console", output_file=log_file, force_reconfigure=True)
        set_correlation_id("exec-42")
        try:
            get_logger("tests.logging").info("tagged")
            logger.complete()
            record = json.loads(log_file.read_text().splitlines()[-1])["record"]
            assert record["extra"]["correlation_id"] == "exec-42"
            assert record["extra"]["module"] == "tests.logging"
        finally:
            clear_correlation_id()
            configure_logging(level="WARNING", format="console", force_reconfigure=True)
