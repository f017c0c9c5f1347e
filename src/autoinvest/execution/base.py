"""Order protocol data structures.

This module defines the request and response shapes of the gateway's order
endpoints, and the outcome records the executor reports:

- OrderRequest: one order as submitted to what-if / place
- WhatIfPreview / AffordabilityCheck: dry-run result and the buffer decision
- OrderResponse: tagged union decoded once from a place/reply response
- OrderResult / ConversionOutcome: what happened to each attempted order
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from autoinvest.utils.exceptions import OrderExecutionError, OrderRejectedError


class OrderType(Enum):
    """Order types submitted by the engine."""

    MARKET = "MKT"


class OrderSide(Enum):
    """Order side."""

    BUY = "BUY"
    SELL = "SELL"


class TimeInForce(Enum):
    """Order duration/validity."""

    DAY = "DAY"  # Valid for current trading day only
    GTC = "GTC"  # Good-til-cancelled
    IOC = "IOC"  # Immediate-or-cancel


class OrderResultStatus(Enum):
    """Outcome of one attempted order."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class ConversionStatus(Enum):
    """Outcome of a currency conversion."""

    CONVERTED = "converted"  # Placed and filled
    PENDING = "pending"  # Placed, fill not observed (yet)
    FAILED = "failed"  # Not placed, or terminated without a fill


# Live order states after which no fill will come
TERMINAL_NON_FILL_STATUSES = ("cancelled", "rejected", "inactive")


@dataclass
class OrderRequest:
    """A single order for the what-if and placement endpoints.

    Attributes:
        instrument_id: Contract id (conid)
        side: BUY or SELL
        quantity: Share quantity (equity orders)
        fx_qty: Amount of the quote currency to convert (forex orders)
        order_type: Order type (market only)
        tif: Time in force
        outside_rth: Allow execution outside regular trading hours
        is_ccy_conv: Marks a currency conversion order
    """

    instrument_id: int
    side: OrderSide = OrderSide.BUY
    quantity: Optional[int] = None
    fx_qty: Optional[float] = None
    order_type: OrderType = OrderType.MARKET
    tif: TimeInForce = TimeInForce.DAY
    outside_rth: bool = False
    is_ccy_conv: bool = False

    def __post_init__(self):
        """Validate order fields."""
        if self.instrument_id <= 0:
            raise ValueError(f"instrument_id must be positive, got {self.instrument_id}")
        if self.quantity is None and self.fx_qty is None:
            raise ValueError("Either quantity or fx_qty must be set")
        if self.quantity is not None and self.quantity <= 0:
            raise ValueError(f"quantity must be positive, got {self.quantity}")
        if self.fx_qty is not None and self.fx_qty <= 0:
            raise ValueError(f"fx_qty must be positive, got {self.fx_qty}")

    @classmethod
    def market_buy(cls, instrument_id: int, quantity: int) -> "OrderRequest":
        """Day market order buying ``quantity`` shares."""
        return cls(instrument_id=instrument_id, quantity=quantity)

    @classmethod
    def currency_conversion(cls, instrument_id: int, amount: float) -> "OrderRequest":
        """Market order buying the pair's base currency with ``amount`` of its quote."""
        return cls(instrument_id=instrument_id, fx_qty=amount, is_ccy_conv=True)

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the gateway's order JSON."""
        payload: Dict[str, Any] = {
            "conid": self.instrument_id,
            "orderType": self.order_type.value,
            "side": self.side.value,
            "tif": self.tif.value,
        }
        if self.quantity is not None:
            payload["quantity"] = self.quantity
        if self.fx_qty is not None:
            payload["fxQty"] = self.fx_qty
        if self.is_ccy_conv:
            payload["isCcyConv"] = True
        else:
            payload["outsideRTH"] = self.outside_rth
        return payload


def _parse_amount(value: Any) -> float:
    """Parse a what-if amount such as "1,234.56" or "1,234.56 USD"."""
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace(",", "")
    if not text:
        return 0.0
    try:
        return float(text.split()[0])
    except ValueError:
        return 0.0


@dataclass
class WhatIfPreview:
    """Projected impact of an order set, from the what-if endpoint.

    Attributes:
        order_total: Total order amount including commission
        commission: Commission charged
        equity_current: Equity before the orders
        equity_change: Change in equity
        equity_after: Equity after the orders
        warning: Warning text returned by the gateway
        error: Error text; a non-empty error means the orders cannot be placed
    """

    order_total: float = 0.0
    commission: float = 0.0
    equity_current: float = 0.0
    equity_change: float = 0.0
    equity_after: float = 0.0
    warning: str = ""
    error: str = ""

    @classmethod
    def from_response(cls, payload: Any) -> "WhatIfPreview":
        if not isinstance(payload, dict):
            return cls(error=f"Unexpected what-if response: {payload!r}")

        amount = payload.get("amount") or {}
        equity = payload.get("equity") or {}
        error = str(payload.get("error") or "")
        if not isinstance(amount, dict) or not isinstance(equity, dict):
            return cls(error=error or f"Unexpected what-if response: {payload!r}")

        return cls(
            order_total=_parse_amount(amount.get("total")),
            commission=_parse_amount(amount.get("commission")),
            equity_current=_parse_amount(equity.get("current")),
            equity_change=_parse_amount(equity.get("change")),
            equity_after=_parse_amount(equity.get("after")),
            warning=str(payload.get("warn") or ""),
            error=error,
        )


@dataclass
class AffordabilityCheck:
    """Decision whether an order set keeps equity above the safety buffer."""

    can_afford: bool
    reason: Optional[str] = None
    order_total: float = 0.0
    current_equity: float = 0.0
    equity_after: float = 0.0
    buffer_amount: float = 0.0
    commission: float = 0.0


@dataclass
class TerminalOrder:
    """Placement finished: the order exists on the remote book."""

    order_id: str
    status: str = ""


@dataclass
class ConfirmationRequired:
    """Placement paused: the gateway wants a reply to its warnings."""

    confirmation_id: str
    warnings: List[str] = field(default_factory=list)
    message_ids: List[str] = field(default_factory=list)


OrderResponse = Union[TerminalOrder, ConfirmationRequired]


def decode_order_response(payload: Any) -> OrderResponse:
    """Decode a place or reply response into an OrderResponse.

    Args:
        payload: Decoded JSON from the placement or reply endpoint

    Returns:
        TerminalOrder or ConfirmationRequired

    Raises:
        OrderRejectedError: If the gateway answered with an error
        OrderExecutionError: If the response shape is not recognised
    """
    if isinstance(payload, dict):
        if payload.get("error"):
            raise OrderRejectedError(str(payload["error"]))
        payload = [payload]

    if not isinstance(payload, list) or not payload or not isinstance(payload[0], dict):
        raise OrderExecutionError(f"Unexpected response from order placement: {payload!r}")

    first = payload[0]
    order_id = first.get("order_id", first.get("orderId"))
    if order_id is not None:
        return TerminalOrder(
            order_id=str(order_id),
            status=str(first.get("order_status") or ""),
        )

    if "id" in first and "message" in first:
        message = first.get("message")
        warnings = list(message) if isinstance(message, list) else [str(message)]
        return ConfirmationRequired(
            confirmation_id=str(first["id"]),
            warnings=[str(w) for w in warnings],
            message_ids=[str(m) for m in first.get("messageIds") or []],
        )

    if first.get("error"):
        raise OrderRejectedError(str(first["error"]))

    raise OrderExecutionError(f"Unexpected response from order placement: {payload!r}")


@dataclass
class LiveOrder:
    """An entry of the live orders list."""

    order_id: str
    status: str
    ticker: str = ""
    side: str = ""
    filled_quantity: float = 0.0
    remaining_quantity: float = 0.0

    @classmethod
    def from_response(cls, payload: Dict[str, Any]) -> "LiveOrder":
        return cls(
            order_id=str(payload.get("orderId", "")),
            status=str(payload.get("status") or ""),
            ticker=str(payload.get("ticker") or ""),
            side=str(payload.get("side") or ""),
            filled_quantity=float(payload.get("filledQuantity") or 0),
            remaining_quantity=float(payload.get("remainingQuantity") or 0),
        )


@dataclass
class FillOutcome:
    """Result of waiting for an order fill.

    Attributes:
        filled: Order reached a filled state
        status: Last observed status ("filled", "cancelled", ... or "unknown")
    """

    filled: bool
    status: str


@dataclass
class OrderResult:
    """Outcome of one attempted equity order."""

    symbol: str
    shares: int
    status: OrderResultStatus
    message: str
    order_id: Optional[str] = None


@dataclass
class ConversionOutcome:
    """Outcome of a currency conversion.

    Attributes:
        status: converted, pending or failed
        amount: Amount of the secondary currency offered for conversion
        message: Human readable description
        order_id: Gateway order id, when an order was placed
        filled: Fill was observed
    """

    status: ConversionStatus
    amount: float
    message: str
    order_id: Optional[str] = None
    filled: bool = False

    @property
    def placed(self) -> bool:
        """An order exists on the remote book."""
        return self.order_id is not None
