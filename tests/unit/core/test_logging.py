# tests/unit/core/test_logging.py
"""Tests for structured logging configuration."""

import io
import json
import logging

import pytest
import structlog

from logship.core.config import LoggingSettings
from logship.core.logging import configure_logging, configure_logging_from_settings, cycle_context


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield
    root.handlers = saved_handlers
    root.setLevel(saved_level)


def _last_json_line(text: str) -> dict:
    return json.loads(text.strip().split("\n")[-1])


class TestConfigureLogging:
    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=True)
        structlog.get_logger("logship.test").info("Shipped events", actor_id="u1", count=3)

        data = _last_json_line(capsys.readouterr().err)
        assert data["event"] == "Shipped events"
        assert data["actor_id"] == "u1"
        assert data["count"] == 3
        assert data["level"] == "info"
        assert data["logger"] == "logship.test"
        assert "_record" not in data

    def test_console_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(json_output=False)
        structlog.get_logger("test").info("Shipped events", count=3)

        err = capsys.readouterr().err
        assert "Shipped events" in err
        assert not err.strip().startswith("{")

    def test_explicit_stream(self) -> None:
        stream = io.StringIO()
        configure_logging(json_output=True, stream=stream)
        structlog.get_logger("test").warning("Store close failed", store="memory")
        assert _last_json_line(stream.getvalue())["store"] == "memory"

    def test_stdlib_records_use_same_format(self) -> None:
        stream = io.StringIO()
        configure_logging(json_output=True, stream=stream)
        logging.getLogger("some.library").warning("library says %s", "hi")
        assert _last_json_line(stream.getvalue())["event"] == "library says hi"

    def test_level_filters(self) -> None:
        stream = io.StringIO()
        configure_logging(json_output=True, level="warning", stream=stream)
        structlog.get_logger("test").info("hidden")
        assert "hidden" not in stream.getvalue()

    def test_unknown_level_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging(level="CHATTY")

    def test_noisy_third_party_loggers_capped(self) -> None:
        configure_logging(level="DEBUG")
        for name in ("azure", "urllib3.connectionpool", "sqlalchemy.engine"):
            assert logging.getLogger(name).level == logging.WARNING

    def test_noisy_loggers_follow_stricter_root(self) -> None:
        configure_logging(level="ERROR")
        assert logging.getLogger("azure").level == logging.ERROR


class TestConfigureFromSettings:
    def test_settings_level_and_format(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging_from_settings(LoggingSettings(level="WARNING", json_output=True))
        assert logging.getLogger().level == logging.WARNING
        structlog.get_logger("test").warning("Ship cycle failed")
        assert _last_json_line(capsys.readouterr().err)["event"] == "Ship cycle failed"

    def test_flags_override_settings(self) -> None:
        configure_logging_from_settings(LoggingSettings(level="ERROR"), verbose=True)
        assert logging.getLogger().level == logging.DEBUG


class TestCycleContext:
    def test_fields_bound_inside_block_only(self) -> None:
        stream = io.StringIO()
        configure_logging(json_output=True, stream=stream)
        logger = structlog.get_logger("test")

        with cycle_context(actor_id="user-1", batch_size=4):
            logger.info("Retrying remote call", operation="write")
        logger.info("after")

        inside, after = (json.loads(line) for line in stream.getvalue().strip().split("\n")[-2:])
        assert (inside["actor_id"], inside["batch_size"]) == ("user-1", 4)
        assert "actor_id" not in after

    def test_explicit_field_wins_over_context(self) -> None:
        stream = io.StringIO()
        configure_logging(json_output=True, stream=stream)
        with cycle_context(actor_id="user-1", batch_size=1):
            structlog.get_logger("test").info("override", actor_id="user-2")
        assert _last_json_line(stream.getvalue())["actor_id"] == "user-2"
