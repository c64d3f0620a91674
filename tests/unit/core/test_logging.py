# tests/unit/core/test_logging.py
"""Tests for structured logging configuration."""

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """configure_logging mutates process-wide state; put it back after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class TestLoggingConfig:
    """Tests for logging configuration."""

    def test_get_logger_returns_logger(self) -> None:
        """get_logger returns a bound logger."""
        from zapforge.core.logging import get_logger

        logger = get_logger("test")
        assert hasattr(logger, "info")
        assert hasattr(logger, "bind")

    def test_json_output_goes_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        """stdout stays clean for machine-parsed lines."""
        from zapforge.core.logging import configure_logging, get_logger

        configure_logging(json_output=True)
        get_logger("test").info("test message", key="value")

        captured = capsys.readouterr()
        assert captured.out == ""
        data = json.loads(captured.err.strip().split("\n")[-1])
        assert data["event"] == "test message"
        assert data["key"] == "value"
        assert data["level"] == "info"

    def test_console_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Logger outputs human-readable in console mode."""
        from zapforge.core.logging import configure_logging, get_logger

        configure_logging(json_output=False)
        get_logger("test").info("test message", key="value")

        captured = capsys.readouterr()
        assert "test message" in captured.err
        assert not captured.err.strip().startswith("{")

    def test_stdlib_loggers_share_format(self, capsys: pytest.CaptureFixture[str]) -> None:
        from zapforge.core.logging import configure_logging

        configure_logging(json_output=True)
        logging.getLogger("some.library").warning("from stdlib")

        data = json.loads(capsys.readouterr().err.strip().split("\n")[-1])
        assert data["event"] == "from stdlib"

    def test_log_file_receives_json(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        from zapforge.core.logging import configure_logging, get_logger

        log_file = tmp_path / "logs" / "zap.log"
        configure_logging(log_file=log_file)
        get_logger("test").info("to file", n=1)
        for handler in logging.getLogger().handlers:
            handler.flush()

        data = json.loads(log_file.read_text().strip().split("\n")[-1])
        assert data["event"] == "to file"
        assert data["n"] == 1

    def test_level_filters(self, capsys: pytest.CaptureFixture[str]) -> None:
        from zapforge.core.logging import configure_logging, get_logger

        configure_logging(json_output=True, level="WARNING")
        get_logger("test").info("hidden")

        assert "hidden" not in capsys.readouterr().err

    def test_noisy_third_party_loggers_silenced(self) -> None:
        """Even in DEBUG mode, server and SQL engine chatter stays at WARNING."""
        from zapforge.core.logging import configure_logging

        configure_logging(level="DEBUG")

        assert logging.getLogger("uvicorn.error").level == logging.WARNING
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
