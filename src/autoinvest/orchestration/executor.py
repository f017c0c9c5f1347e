"""Auto-invest workflow - plan, convert, then place orders one at a time.

Workflow Chain:
Portfolio Analysis -> Plan -> Currency Conversion -> Preview -> Affordability
-> Place and Confirm
"""

from datetime import datetime
from typing import List, Optional

from autoinvest.execution.base import (
    ConversionOutcome,
    ConversionStatus,
    OrderRequest,
    OrderResult,
    OrderResultStatus,
)
from autoinvest.execution.forex import CurrencyConverter
from autoinvest.execution.orders import OrderProtocol, can_afford
from autoinvest.portfolio.base import AutoInvestPlan, AutoInvestResult, PlannedOrder
from autoinvest.portfolio.planner import PlanBuilder
from autoinvest.store.base import AllocationStore
from autoinvest.utils.exceptions import AutoInvestError
from autoinvest.utils.logging import get_logger, log_with_context

logger = get_logger(__name__)


class AutoInvestExecutor:
    """Executes an auto-invest plan against a brokerage account.

    A failure of one order is recorded and the remaining orders continue.
    Unaffordable orders are skipped, not failed.

    Example:
        >>> executor = AutoInvestExecutor(plan_builder, protocol, converter, store)
        >>> result = executor.execute("U1234567")
        >>> result.orders_placed, result.orders_failed
        (2, 0)
    """

    def __init__(
        self,
        plan_builder: PlanBuilder,
        protocol: OrderProtocol,
        converter: CurrencyConverter,
        store: AllocationStore,
        min_conversion_amount: float = 100.0,
        conversion_fill_timeout: float = 180.0,
    ):
        """Initialize executor.

        Args:
            plan_builder: Builds the plan at execution time
            protocol: Order preview/place/confirm protocol
            converter: Secondary to quote currency converter
            store: Source of the current buffer percent
            min_conversion_amount: Secondary cash at or below this is not converted
            conversion_fill_timeout: Seconds to wait for the conversion fill
        """
        self.plan_builder = plan_builder
        self.protocol = protocol
        self.converter = converter
        self.store = store
        self.min_conversion_amount = min_conversion_amount
        self.conversion_fill_timeout = conversion_fill_timeout

    def execute(self, account_id: str) -> AutoInvestResult:
        """Build a fresh plan for ``account_id`` and execute it.

        Raises:
            AutoInvestError: If the plan cannot be built (gateway down,
                exchange rate unavailable, invalid stored allocations)
        """
        logger.info("=" * 60)
        logger.info("AUTO-INVEST - %s - %s", account_id, datetime.now().strftime("%Y-%m-%d %H:%M:%S"))
        logger.info("=" * 60)

        logger.info("Step 1/3: Building plan...")
        plan = self.plan_builder.build_plan(account_id)
        logger.info("  %s", plan.summary)

        return self.execute_plan(account_id, plan)

    def execute_plan(self, account_id: str, plan: AutoInvestPlan) -> AutoInvestResult:
        """Execute an already built plan."""
        errors: List[str] = []

        logger.info("Step 2/3: Currency conversion...")
        conversion = self._convert(account_id, plan)
        if conversion is not None and conversion.status != ConversionStatus.CONVERTED:
            errors.append(conversion.message)

        logger.info("Step 3/3: Placing %d order(s)...", len(plan.orders))
        results: List[OrderResult] = []
        placed = failed = 0
        invested = 0.0

        for planned in sorted(plan.orders, key=lambda o: o.priority):
            try:
                result = self._execute_order(account_id, planned)
            except AutoInvestError as e:
                logger.error("Order for %s failed: %s", planned.symbol, e)
                failed += 1
                result = OrderResult(
                    symbol=planned.symbol,
                    shares=planned.shares,
                    status=OrderResultStatus.FAILED,
                    message=str(e),
                )
                errors.append(f"Failed to place order for {planned.symbol}: {e}")
            else:
                if result.status == OrderResultStatus.SUCCESS:
                    placed += 1
                    invested += planned.estimated_cost
            results.append(result)

        result = AutoInvestResult(
            success=placed > 0 and failed == 0,
            orders_placed=placed,
            orders_failed=failed,
            total_invested=invested,
            results=results,
            errors=errors,
            currency_conversion=conversion,
        )

        logger.info(
            "Auto-invest finished: placed=%d failed=%d skipped=%d invested=%.2f",
            placed,
            failed,
            len(results) - placed - failed,
            invested,
        )
        return result

    def _convert(self, account_id: str, plan: AutoInvestPlan) -> Optional[ConversionOutcome]:
        if plan.secondary_to_convert <= self.min_conversion_amount:
            logger.info(
                "  Nothing to convert (%.2f <= %.2f)",
                plan.secondary_to_convert,
                self.min_conversion_amount,
            )
            return None

        outcome = self.converter.convert_and_wait(
            account_id,
            plan.secondary_to_convert,
            fill_timeout=self.conversion_fill_timeout,
        )
        logger.info("  Conversion %s: %s", outcome.status.value, outcome.message)
        return outcome

    def _execute_order(self, account_id: str, planned: PlannedOrder) -> OrderResult:
        order = OrderRequest.market_buy(planned.instrument_id, planned.shares)

        preview = self.protocol.preview(account_id, [order])
        # Buffer is read now; equity may have moved since planning
        check = can_afford(preview, self.store.get_buffer_percent())

        if not check.can_afford:
            log_with_context(
                logger,
                "info",
                f"Skipping {planned.symbol}",
                reason=check.reason,
                equity_after=check.equity_after,
                buffer=check.buffer_amount,
            )
            return OrderResult(
                symbol=planned.symbol,
                shares=planned.shares,
                status=OrderResultStatus.SKIPPED,
                message=check.reason or "Insufficient funds",
            )

        placed = self.protocol.place_and_confirm(account_id, [order])
        log_with_context(
            logger,
            "info",
            f"Order placed for {planned.symbol}",
            order_id=placed.order_id,
            shares=planned.shares,
            priority=planned.priority,
        )
        return OrderResult(
            symbol=planned.symbol,
            shares=planned.shares,
            status=OrderResultStatus.SUCCESS,
            message="Order placed successfully",
            order_id=placed.order_id,
        )
