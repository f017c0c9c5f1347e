"""Currency conversion through forex market orders.

Converting the secondary currency into the quote currency is done by buying
the pair's base currency (e.g., USD in "USD.ILS") with an amount of the
pair's quote currency. Conversion is best-effort: every failure is reported
in the returned ConversionOutcome instead of raised.
"""

from typing import Optional

from autoinvest.data.instruments import InstrumentResolver
from autoinvest.execution.base import ConversionOutcome, ConversionStatus, OrderRequest
from autoinvest.execution.orders import OrderProtocol
from autoinvest.utils.exceptions import AutoInvestError, GatewayError
from autoinvest.utils.logging import get_logger

logger = get_logger(__name__)


class CurrencyConverter:
    """Convert one currency into another with a forex market order.

    Example:
        >>> converter = CurrencyConverter(protocol, resolver, forex_pair="USD.ILS")
        >>> outcome = converter.convert_and_wait("U1234567", 5000.0, fill_timeout=180)
        >>> outcome.status
        <ConversionStatus.CONVERTED: 'converted'>
    """

    def __init__(
        self,
        protocol: OrderProtocol,
        resolver: InstrumentResolver,
        forex_pair: str = "USD.ILS",
    ):
        """Initialize converter.

        Args:
            protocol: Order protocol used to place and confirm
            resolver: Resolver for the forex contract id
            forex_pair: Pair symbol BASE.QUOTE; QUOTE is spent to buy BASE
        """
        self.protocol = protocol
        self.resolver = resolver
        self.forex_pair = forex_pair.upper()

    @classmethod
    def pair_for(cls, from_currency: str, to_currency: str) -> str:
        """Forex pair symbol for converting ``from_currency`` into ``to_currency``."""
        return f"{to_currency.upper()}.{from_currency.upper()}"

    def convert(self, account_id: str, amount: float) -> ConversionOutcome:
        """Place and confirm a conversion order without waiting for the fill.

        Args:
            account_id: Brokerage account id
            amount: Amount of the pair's quote currency to convert

        Returns:
            ConversionOutcome; PENDING when the order was accepted
        """
        if amount <= 0:
            return ConversionOutcome(
                status=ConversionStatus.FAILED,
                amount=amount,
                message="Conversion amount must be greater than 0",
            )

        try:
            instrument_id = self.resolver.find_forex_instrument_id(self.forex_pair)
        except GatewayError as e:
            logger.error("Forex contract lookup for %s failed: %s", self.forex_pair, e)
            instrument_id = None

        if not instrument_id:
            return ConversionOutcome(
                status=ConversionStatus.FAILED,
                amount=amount,
                message=f"Could not find {self.forex_pair} forex contract",
            )

        order = OrderRequest.currency_conversion(instrument_id, amount)

        try:
            preview = self.protocol.preview(account_id, [order])
            if preview.error:
                return ConversionOutcome(
                    status=ConversionStatus.FAILED,
                    amount=amount,
                    message=f"Order preview failed: {preview.error}",
                )
        except GatewayError as e:
            # some forex orders do not support what-if
            logger.warning("Forex preview failed, placing anyway: %s", e)

        logger.info("Placing %s conversion order for %.2f", self.forex_pair, amount)
        try:
            placed = self.protocol.place_and_confirm(account_id, [order])
        except AutoInvestError as e:
            logger.error("Currency conversion failed: %s", e)
            return ConversionOutcome(
                status=ConversionStatus.FAILED,
                amount=amount,
                message=f"Currency conversion failed: {e}",
            )

        return ConversionOutcome(
            status=ConversionStatus.PENDING,
            amount=amount,
            message="Currency conversion order placed successfully",
            order_id=placed.order_id,
        )

    def convert_and_wait(
        self,
        account_id: str,
        amount: float,
        fill_timeout: Optional[float] = None,
        wait_for_fill: bool = True,
    ) -> ConversionOutcome:
        """Convert and wait for the conversion order to fill.

        Args:
            account_id: Brokerage account id
            amount: Amount of the pair's quote currency to convert
            fill_timeout: Seconds to wait for the fill (protocol default if None)
            wait_for_fill: Return right after placement when False

        Returns:
            ConversionOutcome: CONVERTED when filled, PENDING when the wait
            timed out, FAILED when the order was not placed or terminated
            without a fill
        """
        outcome = self.convert(account_id, amount)
        if not outcome.placed or not wait_for_fill:
            return outcome

        fill = self.protocol.wait_for_fill(outcome.order_id, timeout=fill_timeout)

        if fill.filled:
            outcome.status = ConversionStatus.CONVERTED
            outcome.filled = True
            outcome.message = f"Currency conversion completed ({fill.status})"
        elif fill.status == "unknown":
            outcome.message = (
                f"Currency conversion order placed but not yet filled ({fill.status})"
            )
        else:
            outcome.status = ConversionStatus.FAILED
            outcome.message = f"Currency conversion order ended without fill ({fill.status})"

        logger.info("Conversion %s: %s", outcome.order_id, outcome.message)
        return outcome
