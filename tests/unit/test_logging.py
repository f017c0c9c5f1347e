"""Unit tests for logging configuration."""

import logging

import pytest

from autoinvest.utils.logging import format_context, get_logger, log_with_context, setup_logging


class TestLoggingSetup:
    """Test cases for logging setup."""

    def test_setup_logging_default_level(self) -> None:
        """Test setup_logging with default INFO level."""
        setup_logging()
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_debug_level(self) -> None:
        """Test setup_logging with DEBUG level."""
        setup_logging(level="DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_setup_logging_invalid_level_fallback(self) -> None:
        """Test setup_logging with invalid level falls back to INFO."""
        setup_logging(level="INVALID")
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_quiets_urllib3_debug(self) -> None:
        """Test urllib3 connection chatter stays above DEBUG."""
        setup_logging(level="DEBUG")
        assert logging.getLogger("urllib3").level == logging.INFO
        assert logging.getLogger("requests").level == logging.INFO

    def test_setup_logging_custom_format(self) -> None:
        """Test setup_logging accepts custom format."""
        setup_logging(level="WARNING", log_format="%(levelname)s - %(message)s")
        assert logging.getLogger().level == logging.WARNING


class TestGetLogger:
    """Test cases for get_logger."""

    def test_get_logger_name(self) -> None:
        """Test get_logger returns a named logger."""
        logger = get_logger("autoinvest.test")
        assert logger.name == "autoinvest.test"

    def test_get_logger_same_instance(self) -> None:
        """Test get_logger returns the same logger for the same name."""
        assert get_logger("same") is get_logger("same")


class TestLogWithContext:
    """Test cases for log_with_context."""

    def test_context_appended(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test context is appended as key=value pairs."""
        logger = get_logger("autoinvest.context")

        with caplog.at_level(logging.INFO, logger="autoinvest.context"):
            log_with_context(logger, "info", "Order placed", symbol="VOO", order_id="123")

        assert "Order placed | symbol=VOO order_id=123" in caplog.text

    def test_without_context(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test message is logged unchanged without context."""
        logger = get_logger("autoinvest.plain")

        with caplog.at_level(logging.WARNING, logger="autoinvest.plain"):
            log_with_context(logger, "warning", "Gateway slow")

        assert "Gateway slow" in caplog.text
        assert "|" not in caplog.text

    def test_order_context_formatting(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test amounts, missing values and warning texts are rendered."""
        logger = get_logger("autoinvest.orders")

        with caplog.at_level(logging.INFO, logger="autoinvest.orders"):
            log_with_context(
                logger,
                "info",
                "Skipping VOO",
                reason=None,
                equity_after=9200.5,
                warning="Order exceeds 1% of volume",
            )

        assert 'Skipping VOO | equity_after=9200.50 warning="Order exceeds 1% of volume"' in caplog.text


class TestFormatContext:
    """Test cases for format_context."""

    def test_empty(self) -> None:
        """Test empty or all-None context renders nothing."""
        assert format_context({}) == ""
        assert format_context({"reason": None}) == ""

    def test_values(self) -> None:
        """Test ints and strings are kept, floats get two decimals."""
        assert format_context({"round": 1, "reply_id": "abc", "buffer": 500.0}) == (
            "round=1 reply_id=abc buffer=500.00"
        )

    def test_quotes_inside_quoted_value(self) -> None:
        """Test embedded double quotes do not break the field."""
        assert format_context({"warning": 'say "yes" twice'}) == "warning=\"say 'yes' twice\""
