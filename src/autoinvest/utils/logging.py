"""Logging configuration for IBKR Auto-Invest.

Every module logs through ``get_logger(__name__)``. Order and conversion
events use ``log_with_context`` so each line carries the ids needed to find
the order again on the gateway (order id, reply id, instrument id).
"""

import logging
import sys
from typing import Any, Dict

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# HTTP libraries log every gateway round trip at DEBUG
NOISY_LOGGERS = ("urllib3", "requests")


def setup_logging(
    level: str = "INFO",
    log_format: str | None = None,
) -> None:
    """Configure logging for the application.

    Logs go to stdout. HTTP library loggers are kept at INFO or above even
    when ``level`` is DEBUG.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom format string. If None, uses DEFAULT_FORMAT.

    Example:
        >>> from autoinvest.utils.logging import setup_logging
        >>> setup_logging(level="DEBUG")
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format=log_format or DEFAULT_FORMAT,
        stream=sys.stdout,
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.INFO))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def format_context(context: Dict[str, Any]) -> str:
    """Render context as ``key=value`` pairs.

    None values are dropped, floats get two decimals (amounts and equity),
    and values containing spaces are quoted so gateway warning texts stay
    one field.

    Example:
        >>> format_context({"order_id": "1234", "equity_after": 9200.0, "reason": None})
        'order_id=1234 equity_after=9200.00'
    """
    parts = []
    for key, value in context.items():
        if value is None:
            continue
        if isinstance(value, float):
            text = f"{value:.2f}"
        else:
            text = str(value)
            if " " in text:
                text = '"' + text.replace('"', "'") + '"'
        parts.append(f"{key}={text}")
    return " ".join(parts)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: Any,
) -> None:
    """Log a message with structured context.

    Args:
        logger: Logger instance
        level: Log level (debug, info, warning, error, critical)
        message: Log message
        **context: Context fields, rendered by ``format_context``

    Example:
        >>> log_with_context(
        ...     logger, "info", "Order placed",
        ...     symbol="VOO", shares=3, order_id="1234"
        ... )
        # Logs: "Order placed | symbol=VOO shares=3 order_id=1234"
    """
    log_func = getattr(logger, level.lower())

    context_str = format_context(context)
    log_func(f"{message} | {context_str}" if context_str else message)
