"""
Tests for structured logging setup.
"""

import logging

import pytest
import structlog

from utilities.logger import get_logger, setup_logging


@pytest.fixture(autouse=True)
def reset_logging():
    """Restore structlog and root handlers after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.setLevel(level)
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    structlog.reset_defaults()


def test_setup_logging_writes_log_file(tmp_path):
    log_file = tmp_path / "logs" / "api.log"

    setup_logging(log_level="INFO", log_format="json", log_file=str(log_file))
    get_logger("tests").info("Book created", book_id="abc")

    contents = log_file.read_text()
    assert "Logging system initialized" in contents
    assert '"book_id": "abc"' in contents


def test_console_format_configures_structlog():
    setup_logging(log_level="DEBUG", log_format="console", debug=True)

    processors = structlog.get_config()["processors"]
    assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
