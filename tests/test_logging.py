"""
Tests for logging setup.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from preflight.core.models.report import OperationReport
from preflight.core.observability.logging_config import _parse_level, setup_logging


@pytest.fixture(autouse=True)
def _restore_root():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestParseLevel:
    @pytest.mark.parametrize("name,expected", [
        ("DEBUG", logging.DEBUG),
        ("info", logging.INFO),
        ("", logging.WARNING),
        (None, logging.WARNING),
        ("LOUD", logging.WARNING),
    ])
    def test_levels(self, name, expected):
        assert _parse_level(name) == expected


class TestSetupLogging:
    def test_console_level(self):
        setup_logging("ERROR")
        root = logging.getLogger()
        assert root.level == logging.ERROR
        assert len(root.handlers) == 1

    def test_file_handler_lower_level(self, tmp_path: Path):
        log_file = tmp_path / "preflight.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2

        logging.getLogger("preflight.test").debug("to the file only")
        for h in root.handlers:
            h.flush()
        assert "to the file only" in log_file.read_text()

    def test_report_messages_reach_file_not_console(self, tmp_path: Path, capsys):
        log_file = tmp_path / "preflight.log"
        setup_logging("INFO", log_file=str(log_file))

        report = OperationReport(operation="packages.install")
        report.warn("Purge completed with some errors")
        for h in logging.getLogger().handlers:
            h.flush()

        assert "Purge completed with some errors" in log_file.read_text()
        assert "Purge completed" not in capsys.readouterr().err

    def test_console_line_format(self, capsys):
        setup_logging("WARNING")
        logging.getLogger("preflight.adapters.test").warning("sudo install failed")
        assert capsys.readouterr().err == "preflight: WARNING: sudo install failed\n"

    def test_console_detail_names_the_logger(self, capsys):
        setup_logging("INFO")
        logging.getLogger("preflight.adapters.test").info("running apt-get")
        err = capsys.readouterr().err
        assert err.startswith("preflight: INFO [preflight.adapters.test:")
        assert err.endswith("] running apt-get\n")
