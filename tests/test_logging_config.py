"""
Tests for logging setup — level resolution, handlers, and file output.
"""

import logging

import pytest

from specops.core.observability.logging_config import resolve_level, setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestResolveLevel:
    def test_flag_precedence(self):
        assert resolve_level(debug=True, verbose=True, quiet=True, env_level="ERROR") == "DEBUG"
        assert resolve_level(debug=False, verbose=True, quiet=True, env_level=None) == "INFO"
        assert resolve_level(debug=False, verbose=False, quiet=True, env_level="INFO") == "ERROR"

    def test_env_then_default(self):
        assert resolve_level(debug=False, verbose=False, quiet=False, env_level="INFO") == "INFO"
        assert resolve_level(debug=False, verbose=False, quiet=False, env_level=None) == "WARNING"


class TestSetupLogging:
    def test_console_level(self):
        setup_logging(level="INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

    def test_unknown_level_falls_back(self):
        setup_logging(level="LOUD")
        assert logging.getLogger().level == logging.WARNING

    def test_file_handler_lowers_root_level(self, tmp_path):
        log_file = tmp_path / "specops.log"
        setup_logging(level="WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2

        logging.getLogger("specops.test").debug("written to file only")
        for handler in root.handlers:
            handler.flush()
        assert "written to file only" in log_file.read_text()

    def test_asyncio_quieted(self):
        setup_logging(level="INFO")
        assert logging.getLogger("asyncio").level == logging.WARNING
