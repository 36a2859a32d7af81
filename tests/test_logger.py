"""Tests for logger module."""

import logging
from unittest.mock import patch

from modflow.util.logger import (
    get_logger,
    setup_logger,
    should_use_color,
    handle_exception,
    ColorFormatter,
    LOG_FORMAT,
    DATE_FORMAT,
)


def _record(level: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
        func="test_func",
    )


class TestShouldUseColor:
    """Tests for should_use_color function."""

    @patch('sys.stderr.isatty')
    def test_should_use_color_tty(self, mock_isatty):
        mock_isatty.return_value = True
        assert should_use_color() is True

    @patch('sys.stderr.isatty')
    def test_should_use_color_no_tty(self, mock_isatty):
        mock_isatty.return_value = False
        assert should_use_color() is False

    @patch('sys.stderr.isatty')
    def test_should_use_color_exception(self, mock_isatty):
        """Test color returns False on exception."""
        mock_isatty.side_effect = Exception("Error")
        assert should_use_color() is False


class TestColorFormatter:
    """Tests for ColorFormatter class."""

    def test_error_records_are_red(self):
        formatter = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        formatted = formatter.format(_record(logging.ERROR, "Error message"))

        assert formatted.startswith("\033[31m")
        assert formatted.endswith("\033[0m")
        assert "Error message" in formatted

    def test_debug_records_are_cyan(self):
        formatter = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        formatted = formatter.format(_record(logging.DEBUG, "Debug message"))

        assert "\033[36m" in formatted
        assert "[test:test_func:10]" in formatted


class TestSetupLogger:
    """Tests for setup_logger function."""

    def test_setup_logger_creates_debug_logger(self):
        logger = setup_logger("modflow_test_logger_1")

        assert logger.name == "modflow_test_logger_1"
        assert logger.level == logging.DEBUG
        assert logger.propagate is False

    def test_setup_logger_does_not_stack_handlers(self):
        first = setup_logger("modflow_test_logger_2")
        count = len(first.handlers)
        second = setup_logger("modflow_test_logger_2")

        assert first is second
        assert len(second.handlers) == count == 2

    def test_get_logger_returns_configured_logger(self):
        logger = get_logger("modflow_test_logger_3")

        assert isinstance(logger, logging.Logger)
        assert logger.handlers


class TestHandleException:
    """Tests for the global exception hook."""

    @patch('sys.__excepthook__')
    def test_keyboard_interrupt_goes_to_default_hook(self, mock_hook):
        handle_exception(KeyboardInterrupt, KeyboardInterrupt(), None)
        mock_hook.assert_called_once()

    @patch('logging.error')
    def test_other_exceptions_are_logged(self, mock_error):
        error = ValueError("boom")
        handle_exception(ValueError, error, None)

        mock_error.assert_called_once()
        assert mock_error.call_args.kwargs["exc_info"][1] is error
