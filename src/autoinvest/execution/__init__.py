"""Execution Layer - Order submission protocol and currency conversion.

This module provides preview, affordability, placement, confirmation and fill
tracking for orders sent to the Client Portal gateway.
"""

from autoinvest.execution.base import (
    AffordabilityCheck,
    ConfirmationRequired,
    ConversionOutcome,
    ConversionStatus,
    FillOutcome,
    LiveOrder,
    OrderRequest,
    OrderResponse,
    OrderResult,
    OrderResultStatus,
    OrderSide,
    OrderType,
    TerminalOrder,
    TimeInForce,
    WhatIfPreview,
    decode_order_response,
)
from autoinvest.execution.forex import CurrencyConverter
from autoinvest.execution.orders import OrderProtocol, can_afford

__all__ = [
    # Protocol
    "OrderProtocol",
    "CurrencyConverter",
    "can_afford",
    "decode_order_response",
    # Data classes
    "OrderRequest",
    "WhatIfPreview",
    "AffordabilityCheck",
    "TerminalOrder",
    "ConfirmationRequired",
    "OrderResponse",
    "LiveOrder",
    "FillOutcome",
    "OrderResult",
    "ConversionOutcome",
    # Enums
    "OrderType",
    "OrderSide",
    "TimeInForce",
    "OrderResultStatus",
    "ConversionStatus",
]
