"""Portfolio analyzer - compares current holdings against target allocations."""

import math
from typing import Dict, List, Optional

from autoinvest.data.accounts import AccountsAPI
from autoinvest.data.models import LedgerEntry, Position
from autoinvest.data.positions import PositionsAPI
from autoinvest.portfolio.base import PortfolioAnalysis, PositionAnalysis
from autoinvest.store.base import Allocation, AllocationStore
from autoinvest.utils.exceptions import ExchangeRateError, GatewayError
from autoinvest.utils.logging import get_logger

logger = get_logger(__name__)


class PortfolioAnalyzer:
    """Value an account in the quote currency and measure allocation drift.

    Example:
        >>> analyzer = PortfolioAnalyzer(accounts_api, positions_api, store)
        >>> analysis = analyzer.analyze("U1234567")
        >>> for p in analysis.positions:
        ...     print(p.symbol, round(p.deviation_percent, 2), p.shares_to_buy)
        VOO 12.5 7
        BND -1.3 0
    """

    def __init__(
        self,
        accounts_api: AccountsAPI,
        positions_api: PositionsAPI,
        store: AllocationStore,
        quote_currency: str = "USD",
        secondary_currency: str = "ILS",
        exchange_rate_fallback: Optional[float] = None,
    ):
        """Initialize analyzer.

        Args:
            accounts_api: Ledger and exchange rate accessor
            positions_api: Positions accessor
            store: Allocation store holding the target weights
            quote_currency: Currency the portfolio is valued in
            secondary_currency: Second cash currency
            exchange_rate_fallback: Rate to use when the gateway has none.
                None means an unavailable rate raises ExchangeRateError.
        """
        self.accounts_api = accounts_api
        self.positions_api = positions_api
        self.store = store
        self.quote_currency = quote_currency.upper()
        self.secondary_currency = secondary_currency.upper()
        self.exchange_rate_fallback = exchange_rate_fallback

    def analyze(self, account_id: str) -> PortfolioAnalysis:
        """Analyze ``account_id`` against the stored allocations.

        Raises:
            ExchangeRateError: If no positive rate is available and no
                fallback is configured
            GatewayError: If the ledger or positions cannot be fetched
        """
        ledger = self.accounts_api.get_ledger(account_id)
        positions = self.positions_api.get_all_positions(account_id)
        exchange_rate = self.get_exchange_rate()

        quote_cash = _cash(ledger, self.quote_currency)
        secondary_cash = _cash(ledger, self.secondary_currency)

        # Market values are taken as reported, in the quote currency
        holdings_value = sum(p.market_value for p in positions)
        total_value = holdings_value + quote_cash + secondary_cash * exchange_rate

        analyses = [
            self.analyze_position(allocation, positions, total_value)
            for allocation in self.store.get_allocations()
        ]

        logger.info(
            "Analyzed %s: total=%.2f %s, %d positions held, %d allocations",
            account_id,
            total_value,
            self.quote_currency,
            len(positions),
            len(analyses),
        )

        return PortfolioAnalysis(
            total_value=total_value,
            quote_cash=quote_cash,
            secondary_cash=secondary_cash,
            exchange_rate=exchange_rate,
            positions=analyses,
            quote_currency=self.quote_currency,
            secondary_currency=self.secondary_currency,
        )

    def get_exchange_rate(self) -> float:
        """Secondary to quote currency rate.

        Raises:
            ExchangeRateError: If unavailable and no fallback is configured
        """
        try:
            return self.accounts_api.get_exchange_rate(
                self.secondary_currency, self.quote_currency
            )
        except (ExchangeRateError, GatewayError) as e:
            if self.exchange_rate_fallback is None:
                if isinstance(e, ExchangeRateError):
                    raise
                raise ExchangeRateError(
                    f"Could not fetch {self.secondary_currency}/{self.quote_currency} rate: {e}"
                ) from e
            logger.warning(
                "Could not fetch %s/%s rate, using fallback %s: %s",
                self.secondary_currency,
                self.quote_currency,
                self.exchange_rate_fallback,
                e,
            )
            return self.exchange_rate_fallback

    def analyze_position(
        self,
        allocation: Allocation,
        positions: List[Position],
        total_value: float,
    ) -> PositionAnalysis:
        """Compare one allocation with its matching position (if any)."""
        position = _find_position(positions, allocation.symbol)

        current_value = position.market_value if position else 0.0
        current_shares = position.quantity if position else 0.0
        price = position.market_price if position else 0.0

        current_percent = current_value / total_value * 100 if total_value > 0 else 0.0
        deviation = allocation.target_percent - current_percent

        value_needed = allocation.target_percent / 100 * total_value - current_value
        shares_to_buy = max(0, math.floor(value_needed / price)) if price > 0 else 0

        instrument_id = allocation.instrument_id or (position.instrument_id if position else None)

        return PositionAnalysis(
            symbol=allocation.symbol,
            instrument_id=instrument_id or None,
            current_shares=current_shares,
            current_value=current_value,
            current_percent=current_percent,
            target_percent=allocation.target_percent,
            deviation_percent=deviation,
            shares_to_buy=shares_to_buy,
            estimated_cost=shares_to_buy * price,
            price_per_share=price,
        )


def _cash(ledger: Dict[str, LedgerEntry], currency: str) -> float:
    entry = ledger.get(currency)
    return entry.cash_balance if entry else 0.0


def _find_position(positions: List[Position], symbol: str) -> Optional[Position]:
    key = symbol.upper()
    for position in positions:
        if position.symbol and position.symbol.upper() == key:
            return position
    return None
