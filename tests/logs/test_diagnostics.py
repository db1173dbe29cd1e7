"""Tests for runguard.logging.config (library diagnostics)."""

import json
import logging

import pytest

from runguard.logging.config import configure_logging, get_logger, is_configured


@pytest.fixture
def diagnostics():
    configure_logging(level="DEBUG", force=True)
    yield
    configure_logging(level="WARNING", format="console", force=True)


class TestConfigureLogging:
    def test_marks_configured(self, diagnostics):
        assert is_configured()

    def test_second_call_is_noop_without_force(self, diagnostics):
        configure_logging(level="ERROR")
        assert logging.getLogger("runguard").level == logging.DEBUG

    def test_force_reconfigures(self, diagnostics):
        configure_logging(level="ERROR", force=True)
        assert logging.getLogger("runguard").level == logging.ERROR

    def test_env_level(self, monkeypatch, diagnostics):
        monkeypatch.setenv("RUNGUARD_DIAG_LEVEL", "info")
        configure_logging(force=True)
        assert logging.getLogger("runguard").level == logging.INFO


class TestDiagnosticsOutput:
    def test_console_event(self, diagnostics, caplog):
        caplog.set_level(logging.DEBUG, logger="runguard")
        get_logger("runguard.tests.console").debug("shell.attempt", exit_code=0)
        assert any("shell.attempt" in r.getMessage() for r in caplog.records)

    def test_json_event(self, diagnostics, capsys):
        # basicConfig(force=True) binds the handler to the captured stderr
        configure_logging(level="DEBUG", format="json", force=True)
        get_logger("runguard.tests.json").info("shell.attempt", exit_code=3)
        payload = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert payload["event"] == "shell.attempt"
        assert payload["exit_code"] == 3
        assert payload["level"] == "info"
