"""Tests for structlog configuration."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from stackctl.logging import configure_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_level_applied() -> None:
    configure_logging("debug", "console")
    assert logging.getLogger().level == logging.DEBUG


def test_unknown_level_falls_back_to_warning() -> None:
    configure_logging("verbose", "console")
    assert logging.getLogger().level == logging.WARNING


def test_json_lines_on_stderr(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging("info", "json")
    structlog.get_logger("stackctl.test").info("switch.planned", files=3)

    captured = capsys.readouterr()
    assert captured.out == ""
    record = json.loads(captured.err.strip().splitlines()[-1])
    assert record["event"] == "switch.planned"
    assert record["files"] == 3
    assert record["level"] == "info"


def test_json_exception_is_structured(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging("error", "json")
    try:
        raise OSError("disk full")
    except OSError:
        structlog.get_logger("stackctl.test").exception("backup.restore_failed")

    record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert record["event"] == "backup.restore_failed"
    assert record["exception"][0]["exc_type"] == "OSError"
    assert record["timestamp"].endswith("Z")


def test_unknown_format_renders_console(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging("info", "yaml")
    structlog.get_logger("stackctl.test").info("switch.completed", provider="sqlite")

    err = capsys.readouterr().err
    assert "switch.completed" in err
    assert "provider=sqlite" in err
    assert not err.lstrip().startswith("{")


def test_filtered_below_threshold(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging("warning", "json")
    structlog.get_logger("stackctl.test").info("switch.planned")
    assert capsys.readouterr().err == ""
