"""
Unit tests for logger_module.py.

Tests cover:
- Logger initialization and handler attachment
- Console-only mode
- Idempotency of initialization
- Convenience logging methods
"""

import logging
from unittest.mock import patch, MagicMock
import pytest

import mapsaver.config.logger_module as logger_module
from .logger_module import (
    LOGGER_NAME,
    initialize_logger,
    log_debug,
    log_error,
    log_info,
    log_warning,
)


@pytest.fixture(autouse=True)
def reset_logger():
    """Reset the application logger before and after each test."""
    def reset():
        logger = logging.getLogger(LOGGER_NAME)
        for handler in list(logger.handlers):
            handler.close()
        logger.handlers.clear()
        logger.setLevel(logging.NOTSET)
        logger_module._logger_initialized = False

    reset()
    yield
    reset()


def flush_handlers():
    for handler in logging.getLogger(LOGGER_NAME).handlers:
        handler.flush()


class TestInitializeLogger:
    """Test cases for initialize_logger function."""

    def test_initialize_logger_default_level(self, tmp_path):
        log_file = tmp_path / "logs" / "map_saver.log"

        initialize_logger(log_file=str(log_file))

        logger = logging.getLogger(LOGGER_NAME)
        assert logger.level == logging.INFO
        handler_types = [type(h).__name__ for h in logger.handlers]
        assert handler_types == ["StreamHandler", "FileHandler"]
        assert log_file.exists()

    def test_initialize_logger_console_only(self):
        initialize_logger(log_level="DEBUG", log_file=None)

        logger = logging.getLogger(LOGGER_NAME)
        assert logger.level == logging.DEBUG
        assert [type(h).__name__ for h in logger.handlers] == ["StreamHandler"]

    def test_initialize_logger_invalid_level_falls_back(self, tmp_path):
        initialize_logger(log_level="CHATTY", log_file=str(tmp_path / "app.log"))

        assert logging.getLogger(LOGGER_NAME).level == logging.INFO

    def test_initialize_logger_idempotent(self, tmp_path):
        initialize_logger(log_file=str(tmp_path / "first.log"))
        initialize_logger(log_level="ERROR", log_file=str(tmp_path / "second.log"))

        logger = logging.getLogger(LOGGER_NAME)
        assert len(logger.handlers) == 2
        assert logger.level == logging.INFO
        assert not (tmp_path / "second.log").exists()

    def test_level_filters_file_output(self, tmp_path):
        log_file = tmp_path / "app.log"
        initialize_logger(log_level="WARNING", log_file=str(log_file))

        log_debug("Debug message")
        log_info("Info message")
        log_warning("Warning message")
        log_error("Error message")
        flush_handlers()

        content = log_file.read_text()
        assert "Debug message" not in content
        assert "Info message" not in content
        assert "Warning message" in content
        assert "Error message" in content


class TestConvenienceMethods:
    """Test cases for convenience logging methods."""

    def test_log_info_written_to_file(self, tmp_path):
        log_file = tmp_path / "app.log"
        initialize_logger(log_level="INFO", log_file=str(log_file))

        log_info("Saved images/Athens-wide.png")
        flush_handlers()

        content = log_file.read_text()
        assert "INFO" in content
        assert "Saved images/Athens-wide.png" in content

    def test_log_debug_written_at_debug_level(self, tmp_path):
        log_file = tmp_path / "app.log"
        initialize_logger(log_level="DEBUG", log_file=str(log_file))

        log_debug("Airtable GET Places")
        flush_handlers()

        assert "Airtable GET Places" in log_file.read_text()

    def test_convenience_methods_before_initialization(self):
        """Convenience methods must not fail before initialize_logger."""
        log_warning("Warning without initialization")

    @patch('logging.getLogger')
    def test_convenience_methods_call_correct_levels(self, mock_get_logger):
        mock_logger = MagicMock()
        mock_get_logger.return_value = mock_logger

        log_debug("debug message")
        log_info("info message")
        log_warning("warning message")
        log_error("error message")

        mock_get_logger.assert_called_with(LOGGER_NAME)
        mock_logger.debug.assert_called_once_with("debug message")
        mock_logger.info.assert_called_once_with("info message")
        mock_logger.warning.assert_called_once_with("warning message")
        mock_logger.error.assert_called_once_with("error message")
