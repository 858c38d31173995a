"""
Tests for logging setup.
"""

import json
import logging
import sys

from rich.logging import RichHandler

from mediapull.logging import ROOT_LOGGER, JsonFormatter, get_logger, setup_logging


class TestGetLogger:
    """Tests for get_logger."""

    def test_namespaced(self):
        assert get_logger("transfer").name == "mediapull.transfer"

    def test_module_name_kept(self):
        assert get_logger("mediapull.services.transfer._pipeline").name == "mediapull.services.transfer._pipeline"

    def test_root(self):
        assert get_logger(ROOT_LOGGER).name == "mediapull"


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_rich_handler(self):
        logger = setup_logging("DEBUG")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)
        assert logger.propagate is False

    def test_json_handler(self):
        logger = setup_logging("warning", json_output=True)
        assert logger.level == logging.WARNING
        assert isinstance(logger.handlers[0].formatter, JsonFormatter)

    def test_repeat_calls_replace_handlers(self):
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_format(self):
        record = logging.LogRecord("mediapull.x", logging.INFO, __file__, 1, "Resuming %s", ("a.mkv",), None)
        payload = json.loads(JsonFormatter().format(record))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "mediapull.x"
        assert payload["message"] == "Resuming a.mkv"
        assert "ts" in payload

    def test_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord("mediapull.x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        payload = json.loads(JsonFormatter().format(record))
        assert "ValueError: boom" in payload["exc_info"]
