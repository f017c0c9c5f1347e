"""Data classes for portfolio analysis and auto-invest planning.

The Portfolio Layer turns the account snapshot (cash, positions, exchange
rate) and the target allocations into a prioritized list of buy orders.

Flow:
    PortfolioAnalyzer -> PortfolioAnalysis -> PlanBuilder -> AutoInvestPlan
    AutoInvestExecutor -> AutoInvestResult
"""

from dataclasses import asdict, dataclass, field
from typing import List, Optional

import pandas as pd

from autoinvest.execution.base import ConversionOutcome, OrderResult


@dataclass
class PositionAnalysis:
    """One allocation compared against the current holding.

    Attributes:
        symbol: Allocation symbol
        instrument_id: Contract id if known (allocation cache or position)
        current_shares: Shares held
        current_value: Market value held, in the quote currency
        current_percent: Share of the total portfolio value
        target_percent: Target share of the total portfolio value
        deviation_percent: target_percent - current_percent (positive = underweight)
        shares_to_buy: Whole shares needed to reach target (never negative)
        estimated_cost: shares_to_buy * price_per_share
        price_per_share: Latest market price (0 when not held)
    """

    symbol: str
    instrument_id: Optional[int]
    current_shares: float
    current_value: float
    current_percent: float
    target_percent: float
    deviation_percent: float
    shares_to_buy: int
    estimated_cost: float
    price_per_share: float

    @property
    def is_underweight(self) -> bool:
        return self.deviation_percent > 0 and self.shares_to_buy > 0 and self.price_per_share > 0


@dataclass
class PortfolioAnalysis:
    """Account snapshot valued in the quote currency.

    Attributes:
        total_value: Positions + quote cash + converted secondary cash
        quote_cash: Cash in the quote currency (e.g., USD)
        secondary_cash: Cash in the secondary currency (e.g., ILS)
        exchange_rate: Units of quote currency per unit of secondary
        positions: One PositionAnalysis per allocation, in allocation order
        quote_currency: Valuation currency code
        secondary_currency: Second cash currency code
    """

    total_value: float
    quote_cash: float
    secondary_cash: float
    exchange_rate: float
    positions: List[PositionAnalysis] = field(default_factory=list)
    quote_currency: str = "USD"
    secondary_currency: str = "ILS"

    @property
    def total_cash(self) -> float:
        """Quote cash plus secondary cash converted at ``exchange_rate``."""
        return self.quote_cash + self.secondary_cash * self.exchange_rate

    def to_dataframe(self) -> pd.DataFrame:
        """Positions as a DataFrame indexed by symbol."""
        columns = [
            "symbol",
            "instrument_id",
            "current_shares",
            "current_value",
            "current_percent",
            "target_percent",
            "deviation_percent",
            "shares_to_buy",
            "estimated_cost",
            "price_per_share",
        ]
        df = pd.DataFrame([asdict(p) for p in self.positions], columns=columns)
        return df.set_index("symbol")


@dataclass
class PlannedOrder:
    """A buy order chosen by the plan builder.

    Attributes:
        symbol: Ticker symbol
        instrument_id: Resolved contract id
        shares: Whole shares to buy (>= 1)
        estimated_cost: shares * price_per_share
        price_per_share: Price used for planning
        priority: 1-based rank among underweight candidates
        reason: Human readable reason
    """

    symbol: str
    instrument_id: int
    shares: int
    estimated_cost: float
    price_per_share: float
    priority: int
    reason: str = ""

    def __post_init__(self):
        if self.shares < 1:
            raise ValueError(f"shares must be >= 1, got {self.shares}")
        if self.priority < 1:
            raise ValueError(f"priority must be >= 1, got {self.priority}")


@dataclass
class AutoInvestPlan:
    """Planned orders for the available cash.

    Attributes:
        total_available: Investable cash after the safety buffer
        secondary_to_convert: Secondary currency balance to convert first
        exchange_rate: Rate used for planning
        orders: Planned orders in priority order
        summary: One line description of the plan
    """

    total_available: float
    secondary_to_convert: float
    exchange_rate: float
    orders: List[PlannedOrder] = field(default_factory=list)
    summary: str = ""

    @property
    def total_estimated_cost(self) -> float:
        return sum(o.estimated_cost for o in self.orders)


@dataclass
class AutoInvestResult:
    """Outcome of executing an auto-invest plan.

    Attributes:
        success: True iff at least one order was placed and none failed
        orders_placed: Orders accepted by the broker
        orders_failed: Orders that raised during preview/place/confirm
        total_invested: Estimated cost of the placed orders
        results: Per-order results (success, failed or skipped)
        errors: Error messages collected along the way
        currency_conversion: Conversion outcome, if one was attempted
    """

    success: bool
    orders_placed: int
    orders_failed: int
    total_invested: float
    results: List[OrderResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    currency_conversion: Optional[ConversionOutcome] = None
