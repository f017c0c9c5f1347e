"""Greedy auto-invest planner.

Algorithm:
1. Investable cash = (quote cash + secondary cash * rate) * (1 - buffer)
2. Keep underweight positions (positive deviation, shares and price)
3. Rank them by deviation, most underweight first (stable)
4. Walk the ranking once, buying the full shortfall when affordable and as
   many whole shares as possible otherwise
5. Stop once the remaining cash drops below a small threshold
"""

import math
from typing import List, Optional

from autoinvest.data.instruments import InstrumentResolver
from autoinvest.portfolio.analyzer import PortfolioAnalyzer
from autoinvest.portfolio.base import (
    AutoInvestPlan,
    PlannedOrder,
    PortfolioAnalysis,
    PositionAnalysis,
)
from autoinvest.store.base import AllocationStore
from autoinvest.utils.exceptions import GatewayError
from autoinvest.utils.logging import get_logger

logger = get_logger(__name__)

NO_CASH_SUMMARY = "No cash available for investment after applying safety buffer."
NO_ORDERS_SUMMARY = "No orders to place - all positions are at or above target allocation."
UNAFFORDABLE_SUMMARY = (
    "No orders to place - available cash does not cover a single share "
    "of any underweight position."
)


class PlanBuilder:
    """Build an AutoInvestPlan from a fresh portfolio analysis.

    Configuration Parameters:
        min_remaining_cash: The walk stops once remaining cash is below this
            (default 10)

    Example:
        >>> builder = PlanBuilder(analyzer, resolver, store)
        >>> plan = builder.build_plan("U1234567")
        >>> plan.summary
        'Planning to invest $9480.00 across 2 positions.'
        >>> [(o.priority, o.symbol, o.shares) for o in plan.orders]
        [(1, 'VOO', 12), (2, 'QQQ', 5)]
    """

    def __init__(
        self,
        analyzer: PortfolioAnalyzer,
        resolver: InstrumentResolver,
        store: AllocationStore,
        min_remaining_cash: float = 10.0,
    ):
        self.analyzer = analyzer
        self.resolver = resolver
        self.store = store
        self.min_remaining_cash = min_remaining_cash

        if self.min_remaining_cash < 0:
            raise ValueError(
                f"min_remaining_cash must be >= 0, got {self.min_remaining_cash}"
            )

    def build_plan(self, account_id: str) -> AutoInvestPlan:
        """Analyze ``account_id`` and plan buys for the investable cash."""
        analysis = self.analyzer.analyze(account_id)
        return self.plan_from_analysis(analysis, self.store.get_buffer_percent())

    def plan_from_analysis(
        self,
        analysis: PortfolioAnalysis,
        buffer_percent: float,
    ) -> AutoInvestPlan:
        """Plan buys for an existing analysis.

        Args:
            analysis: Portfolio analysis to plan against
            buffer_percent: Fraction of the total cash withheld

        Returns:
            AutoInvestPlan whose total estimated cost never exceeds
            ``total_available``
        """
        total_cash = analysis.total_cash
        available = total_cash - total_cash * buffer_percent

        if available <= 0:
            logger.info("No investable cash (total cash %.2f)", total_cash)
            return AutoInvestPlan(
                total_available=0.0,
                secondary_to_convert=analysis.secondary_cash,
                exchange_rate=analysis.exchange_rate,
                orders=[],
                summary=NO_CASH_SUMMARY,
            )

        candidates = self.rank_candidates(analysis.positions)
        orders = self._allocate(candidates, available)

        if orders:
            total = sum(o.estimated_cost for o in orders)
            summary = f"Planning to invest ${total:.2f} across {len(orders)} positions."
        elif candidates:
            summary = UNAFFORDABLE_SUMMARY
        else:
            summary = NO_ORDERS_SUMMARY

        logger.info(
            "Plan: %d order(s), available=%.2f %s, %d candidate(s)",
            len(orders),
            available,
            analysis.quote_currency,
            len(candidates),
        )

        return AutoInvestPlan(
            total_available=available,
            secondary_to_convert=analysis.secondary_cash,
            exchange_rate=analysis.exchange_rate,
            orders=orders,
            summary=summary,
        )

    @staticmethod
    def rank_candidates(positions: List[PositionAnalysis]) -> List[PositionAnalysis]:
        """Underweight positions, most underweight first.

        ``sorted`` is stable, so equal deviations keep allocation order.
        """
        underweight = [p for p in positions if p.is_underweight]
        return sorted(underweight, key=lambda p: p.deviation_percent, reverse=True)

    def _allocate(
        self,
        candidates: List[PositionAnalysis],
        available: float,
    ) -> List[PlannedOrder]:
        orders: List[PlannedOrder] = []
        remaining = available

        for rank, position in enumerate(candidates, start=1):
            price = position.price_per_share

            if remaining < price:
                logger.debug("Skipping %s: %.2f left, price %.2f", position.symbol, remaining, price)
                continue

            max_affordable = math.floor(remaining / price)
            if max_affordable >= position.shares_to_buy:
                shares = position.shares_to_buy
                reason = f"Reaching target allocation of {position.target_percent:g}%"
            else:
                shares = max_affordable
                filled = shares * price / position.estimated_cost * 100
                reason = f"Partial fill ({filled:.1f}% of needed)"

            instrument_id = position.instrument_id or self._resolve(position.symbol)
            if instrument_id:
                cost = shares * price
                orders.append(
                    PlannedOrder(
                        symbol=position.symbol,
                        instrument_id=instrument_id,
                        shares=shares,
                        estimated_cost=cost,
                        price_per_share=price,
                        priority=rank,
                        reason=reason,
                    )
                )
                remaining -= cost

            if remaining < self.min_remaining_cash:
                break

        return orders

    def _resolve(self, symbol: str) -> Optional[int]:
        try:
            instrument_id = self.resolver.find_instrument_id(symbol)
        except GatewayError as e:
            logger.warning("Instrument lookup for %s failed, skipping: %s", symbol, e)
            return None

        if not instrument_id:
            logger.warning("No instrument found for %s, skipping", symbol)
        return instrument_id
