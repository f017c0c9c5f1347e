"""Custom exceptions for IBKR Auto-Invest.

This module defines the exception hierarchy for the application.
"""


class AutoInvestError(Exception):
    """Base exception for all Auto-Invest errors.

    All custom exceptions in the application should inherit from this class.
    """

    pass


class ConfigurationError(AutoInvestError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Missing required configuration keys
        - Invalid configuration values
        - Stored allocation file is corrupt
    """

    pass


class AllocationError(ConfigurationError):
    """Raised when an allocation set or buffer value fails validation.

    Examples:
        - Target percentages sum to more than 100%
        - Duplicate symbols (case-insensitive)
        - Buffer percent outside [0, 1]
    """

    pass


class GatewayError(AutoInvestError):
    """Raised when a request to the Client Portal gateway fails.

    Attributes:
        status_code: HTTP status of the response, or 0 for transport-level
            failures (network error, timeout, too many redirects)
        message: Response body or failure description
    """

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __str__(self) -> str:
        return f"[{self.status_code}] {self.message}"

    @property
    def is_transport_error(self) -> bool:
        """True when the gateway could not be reached at all."""
        return self.status_code == 0


class DataError(AutoInvestError):
    """Base exception for market and account data errors.

    Parent class for all data-related exceptions.
    """

    pass


class ExchangeRateError(DataError):
    """Raised when the gateway returns no usable exchange rate.

    Examples:
        - Rate missing from the response
        - Rate is zero or negative
    """

    pass


class InstrumentNotFoundError(DataError):
    """Raised when a symbol cannot be resolved to an instrument id."""

    pass


class ExecutionError(AutoInvestError):
    """Base exception for order execution errors.

    Parent class for all execution-related exceptions.
    """

    pass


class OrderExecutionError(ExecutionError):
    """Raised when the order protocol cannot complete.

    Examples:
        - Unrecognised response from order placement
        - Confirmation loop exceeded its round limit
    """

    pass


class OrderRejectedError(ExecutionError):
    """Raised when the gateway explicitly rejects an order."""

    pass
