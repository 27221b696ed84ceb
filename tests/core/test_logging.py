"""Tests for hookspine.core.logging (structlog configuration and context)."""

from __future__ import annotations

import json

import structlog

from hookspine.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)


class TestConfigureLogging:
    def test_json_output_to_stderr(self, capsys):
        configure_logging(level="INFO", json_format=True, service="hookspine-test")
        get_logger("tests").info("workflow.start", step_count=3)

        captured = capsys.readouterr()
        assert captured.out == ""
        record = json.loads(captured.err.strip().splitlines()[-1])
        assert record["event"] == "workflow.start"
        assert record["step_count"] == 3
        assert record["level"] == "info"
        assert record["service"] == "hookspine-test"
        assert "timestamp" in record

    def test_level_filters(self, capsys):
        configure_logging(level="WARNING", json_format=True)
        get_logger("tests").info("hidden")
        get_logger("tests").warning("shown")
        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "shown" in err


class TestLogContext:
    def test_binds_and_unbinds(self):
        with LogContext(workflow="wf", run_id="r1"):
            assert structlog.contextvars.get_contextvars() == {"workflow": "wf", "run_id": "r1"}
        assert structlog.contextvars.get_contextvars() == {}

    def test_none_values_dropped(self):
        with LogContext(hook="h", run_id=None):
            assert structlog.contextvars.get_contextvars() == {"hook": "h"}

    def test_context_in_output(self, capsys):
        configure_logging(level="INFO", json_format=True)
        with LogContext(hook="http://example.org/h1"):
            get_logger("tests").info("hook.triggered")
        record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert record["hook"] == "http://example.org/h1"

    def test_clear_context(self):
        bind_context(a=1)
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
