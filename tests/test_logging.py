"""Tests for setup_logging — levels, renderer choice, stderr only."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from soresolve.core.logging import setup_logging


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()
    logging.getLogger("soresolve").setLevel(logging.NOTSET)


def _emit(capsys, event: str, level: str = "warning") -> tuple[str, str]:
    logger = logging.getLogger("soresolve.test")
    getattr(structlog.wrap_logger(logger, wrapper_class=structlog.stdlib.BoundLogger), level)(
        event, soname="libz.so.1"
    )
    captured = capsys.readouterr()
    return captured.out, captured.err


class TestSetupLogging:
    def test_default_level_from_env(self, monkeypatch):
        monkeypatch.delenv("SORESOLVE_LOG_LEVEL", raising=False)
        setup_logging()
        assert logging.getLogger("soresolve").level == logging.WARNING

    def test_env_level(self, monkeypatch):
        monkeypatch.setenv("SORESOLVE_LOG_LEVEL", "info")
        setup_logging()
        assert logging.getLogger("soresolve").level == logging.INFO

    def test_explicit_level_wins(self, monkeypatch):
        monkeypatch.setenv("SORESOLVE_LOG_LEVEL", "ERROR")
        setup_logging("DEBUG")
        assert logging.getLogger("soresolve").level == logging.DEBUG
        assert logging.getLogger().level == logging.WARNING

    def test_console_goes_to_stderr(self, monkeypatch, capsys):
        monkeypatch.delenv("SORESOLVE_LOG_FORMAT", raising=False)
        setup_logging()
        out, err = _emit(capsys, "scanner.ldconfig_failed")
        assert out == ""
        assert "scanner.ldconfig_failed" in err

    def test_json_lines_carry_timestamp_and_logger(self, monkeypatch, capsys):
        monkeypatch.setenv("SORESOLVE_LOG_FORMAT", "json")
        setup_logging()
        _, err = _emit(capsys, "index.unparsed_line")
        record = json.loads(err.strip().splitlines()[-1])
        assert record["event"] == "index.unparsed_line"
        assert record["soname"] == "libz.so.1"
        assert record["level"] == "warning"
        assert record["logger"] == "soresolve.test"
        assert "timestamp" in record

    def test_debug_filtered_at_default_level(self, monkeypatch, capsys):
        monkeypatch.delenv("SORESOLVE_LOG_LEVEL", raising=False)
        setup_logging()
        _, err = _emit(capsys, "index.query_done", level="debug")
        assert "index.query_done" not in err
