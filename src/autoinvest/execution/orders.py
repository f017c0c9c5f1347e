"""Order submission protocol against the Client Portal gateway.

Every order goes through the same steps:
1. Preview (what-if) to see projected equity
2. Affordability decision against the safety buffer (pure function)
3. Place
4. Reply "confirmed" to each confirmation request until a terminal answer
5. Optionally poll the live orders list until the order fills
"""

import time
from typing import Any, Callable, List, Optional

from autoinvest.execution.base import (
    TERMINAL_NON_FILL_STATUSES,
    AffordabilityCheck,
    ConfirmationRequired,
    FillOutcome,
    LiveOrder,
    OrderRequest,
    OrderResponse,
    TerminalOrder,
    WhatIfPreview,
    decode_order_response,
)
from autoinvest.gateway.client import GatewayClient
from autoinvest.utils.exceptions import OrderExecutionError
from autoinvest.utils.logging import get_logger, log_with_context
from autoinvest.utils.polling import poll_until

logger = get_logger(__name__)


def can_afford(preview: WhatIfPreview, buffer_percent: float = 0.05) -> AffordabilityCheck:
    """Decide whether an order set keeps equity above the safety buffer.

    The order set is affordable iff
    ``equity_after >= equity_current * buffer_percent``.

    Args:
        preview: What-if result
        buffer_percent: Fraction of current equity to keep (0..1)

    Returns:
        AffordabilityCheck with the numbers behind the decision

    Example:
        >>> preview = WhatIfPreview(equity_current=10000, equity_after=400)
        >>> can_afford(preview, 0.05).can_afford
        False
    """
    if preview.error:
        return AffordabilityCheck(can_afford=False, reason=preview.error)

    buffer_amount = preview.equity_current * buffer_percent
    affordable = preview.equity_after >= buffer_amount

    return AffordabilityCheck(
        can_afford=affordable,
        reason=None if affordable else "Insufficient funds after applying safety buffer",
        order_total=preview.order_total,
        current_equity=preview.equity_current,
        equity_after=preview.equity_after,
        buffer_amount=buffer_amount,
        commission=preview.commission,
    )


class OrderProtocol:
    """Preview, place, confirm and track orders for one gateway.

    Example:
        >>> protocol = OrderProtocol(GatewayClient())
        >>> order = OrderRequest.market_buy(instrument_id=97907157, quantity=3)
        >>> preview = protocol.preview("U1234567", [order])
        >>> if can_afford(preview, 0.05).can_afford:
        ...     placed = protocol.place_and_confirm("U1234567", [order])
    """

    def __init__(
        self,
        client: GatewayClient,
        max_confirmations: int = 5,
        fill_poll_interval: float = 2.0,
        fill_poll_timeout: float = 60.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize order protocol.

        Args:
            client: Gateway client
            max_confirmations: Confirmation rounds accepted before giving up
            fill_poll_interval: Default seconds between live-order polls
            fill_poll_timeout: Default fill wait in seconds
            sleep: Sleep function used while polling
            clock: Monotonic clock used while polling
        """
        self.client = client
        self.max_confirmations = max_confirmations
        self.fill_poll_interval = fill_poll_interval
        self.fill_poll_timeout = fill_poll_timeout
        self._sleep = sleep
        self._clock = clock

    def preview(self, account_id: str, orders: List[OrderRequest]) -> WhatIfPreview:
        """Run a what-if for the order set."""
        payload = self.client.request(
            f"iserver/account/{account_id}/orders/whatif",
            method="POST",
            body={"orders": [order.to_payload() for order in orders]},
        )
        preview = WhatIfPreview.from_response(payload)
        logger.debug("What-if for %s: %s", account_id, preview)
        return preview

    def place(self, account_id: str, orders: List[OrderRequest]) -> OrderResponse:
        """Submit the order set for placement."""
        payload = self.client.request(
            f"iserver/account/{account_id}/orders",
            method="POST",
            body={"orders": [order.to_payload() for order in orders]},
        )
        return decode_order_response(payload)

    def reply(self, confirmation_id: str, confirmed: bool = True) -> OrderResponse:
        """Answer a confirmation request."""
        payload = self.client.request(
            f"iserver/reply/{confirmation_id}",
            method="POST",
            body={"confirmed": confirmed},
        )
        return decode_order_response(payload)

    def place_and_confirm(self, account_id: str, orders: List[OrderRequest]) -> TerminalOrder:
        """Place the order set and confirm every warning until it is accepted.

        Returns:
            TerminalOrder carrying the order id

        Raises:
            OrderExecutionError: If confirmations do not end within
                ``max_confirmations`` rounds or the response is malformed
            OrderRejectedError: If the gateway rejects the order
            GatewayError: On transport or HTTP failure
        """
        response = self.place(account_id, orders)
        rounds = 0

        while isinstance(response, ConfirmationRequired):
            if rounds >= self.max_confirmations:
                raise OrderExecutionError(
                    f"Order still awaiting confirmation after {rounds} replies"
                )
            rounds += 1
            log_with_context(
                logger,
                "info",
                "Confirming order warning",
                round=rounds,
                reply_id=response.confirmation_id,
                warning="; ".join(response.warnings),
            )
            response = self.reply(response.confirmation_id, confirmed=True)

        log_with_context(
            logger,
            "info",
            "Order accepted",
            order_id=response.order_id,
            status=response.status or "n/a",
            confirmations=rounds,
        )
        return response

    def get_live_orders(self) -> List[LiveOrder]:
        """Fetch orders still live on the remote book."""
        payload = self.client.request("iserver/account/orders")
        entries: Any = payload.get("orders") if isinstance(payload, dict) else payload
        return [LiveOrder.from_response(entry) for entry in entries or [] if isinstance(entry, dict)]

    def cancel_order(self, account_id: str, order_id: str) -> Any:
        """Cancel a live order."""
        logger.info("Cancelling order %s on %s", order_id, account_id)
        return self.client.request(
            f"iserver/account/{account_id}/order/{order_id}", method="DELETE"
        )

    def wait_for_fill(
        self,
        order_id: str,
        timeout: Optional[float] = None,
        interval: Optional[float] = None,
    ) -> FillOutcome:
        """Poll the live orders list until the order fills or terminates.

        An order absent from the live list counts as filled, since the
        gateway drops completed orders from it.

        Args:
            order_id: Order to watch
            timeout: Seconds to wait (defaults to fill_poll_timeout)
            interval: Seconds between polls (defaults to fill_poll_interval)

        Returns:
            FillOutcome; status is "unknown" on timeout
        """
        timeout = self.fill_poll_timeout if timeout is None else timeout
        interval = self.fill_poll_interval if interval is None else interval
        observed: List[FillOutcome] = []

        def order_done() -> bool:
            match = next(
                (o for o in self.get_live_orders() if o.order_id == str(order_id)),
                None,
            )
            if match is None:
                logger.info("Order %s no longer live, treating as filled", order_id)
                observed.append(FillOutcome(filled=True, status="filled"))
                return True

            status = match.status.lower()
            logger.debug("Order %s status: %s", order_id, status)
            if status == "filled":
                observed.append(FillOutcome(filled=True, status=status))
                return True
            if status in TERMINAL_NON_FILL_STATUSES:
                logger.warning("Order %s ended without fill: %s", order_id, status)
                observed.append(FillOutcome(filled=False, status=status))
                return True
            return False

        logger.info("Waiting up to %.0fs for order %s to fill", timeout, order_id)
        outcome = poll_until(
            order_done,
            interval=interval,
            timeout=timeout,
            sleep=self._sleep,
            clock=self._clock,
        )

        if outcome.met:
            return observed[-1]
        return FillOutcome(filled=False, status="unknown")
