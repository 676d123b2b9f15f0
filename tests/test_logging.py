"""Tests for logging setup."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from activeshell.config import load_config
from activeshell.config.schema import LoggingConfig
from activeshell.logging import TRACE, get_logger, reset_logging, resolve_level, setup_logging


@pytest.fixture
def fresh_logging():
    """Start from an unconfigured package logger and undo setup afterwards."""
    reset_logging()
    yield logging.getLogger("activeshell")
    reset_logging()


def _flush(logger: logging.Logger) -> None:
    for handler in logger.handlers:
        handler.flush()


class TestResolveLevel:
    def test_default_is_info(self) -> None:
        assert resolve_level(None) == logging.INFO
        assert resolve_level(LoggingConfig()) == logging.INFO

    @pytest.mark.parametrize(
        ("name", "expected"),
        [("debug", logging.DEBUG), ("WARN", logging.WARNING), ("trace", TRACE), ("bogus", logging.INFO)],
    )
    def test_level_names(self, name: str, expected: int) -> None:
        assert resolve_level(LoggingConfig(level=name)) == expected


class TestLoggers:
    def test_child_logger_names(self) -> None:
        assert get_logger("session").name == "activeshell.session"
        assert get_logger().name == "activeshell"

    def test_trace_level_registered(self) -> None:
        assert logging.getLevelName(TRACE) == "TRACE"


class TestSetupLogging:
    def test_file_lines_name_the_component(self, fresh_logging, tmp_path: Path) -> None:
        log_file = tmp_path / "activeshell.log"
        setup_logging(LoggingConfig(level="DEBUG", file=str(log_file)))

        get_logger("session").info("Started session %r", "abc")
        get_logger("tools.bash").warning("Rejected call")
        _flush(fresh_logging)

        lines = log_file.read_text().splitlines()
        assert lines[0].endswith("info [session] Started session 'abc'")
        assert lines[1].endswith("warning [tools.bash] Rejected call")
        assert fresh_logging.level == logging.DEBUG

    def test_trace_filtered_below_level(self, fresh_logging, tmp_path: Path) -> None:
        log_file = tmp_path / "activeshell.log"
        setup_logging(LoggingConfig(level="DEBUG", file=str(log_file)))

        get_logger("session").log(TRACE, "exit code 0")
        _flush(fresh_logging)
        assert "exit code" not in log_file.read_text()

    def test_second_call_is_noop(self, fresh_logging, tmp_path: Path) -> None:
        setup_logging(LoggingConfig(file=str(tmp_path / "one.log")))
        count = len(fresh_logging.handlers)
        setup_logging(LoggingConfig(file=str(tmp_path / "two.log")))
        assert len(fresh_logging.handlers) == count
        assert not (tmp_path / "two.log").exists()

    def test_reset_removes_handlers(self, fresh_logging, tmp_path: Path) -> None:
        before = list(fresh_logging.handlers)
        setup_logging(LoggingConfig(file=str(tmp_path / "one.log")))
        reset_logging()
        assert fresh_logging.handlers == before

    def test_env_settings_via_config(
        self, fresh_logging, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        log_file = tmp_path / "env.log"
        monkeypatch.setenv("ACTIVESHELL_LOG", str(log_file))
        monkeypatch.setenv("ACTIVESHELL_LOG_LEVEL", "trace")

        setup_logging(load_config(reload=True).logging)
        get_logger("session").log(TRACE, "exit code 0")
        _flush(fresh_logging)
        assert "trace [session] exit code 0" in log_file.read_text()
