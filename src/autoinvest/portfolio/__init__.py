"""Portfolio Layer - Allocation analysis and auto-invest planning.

This module compares holdings against target allocations and plans the buy
orders that move the portfolio toward them with the available cash.
"""

from autoinvest.portfolio.analyzer import PortfolioAnalyzer
from autoinvest.portfolio.base import (
    AutoInvestPlan,
    AutoInvestResult,
    PlannedOrder,
    PortfolioAnalysis,
    PositionAnalysis,
)
from autoinvest.portfolio.planner import PlanBuilder

__all__ = [
    "PortfolioAnalyzer",
    "PlanBuilder",
    "PositionAnalysis",
    "PortfolioAnalysis",
    "PlannedOrder",
    "AutoInvestPlan",
    "AutoInvestResult",
]
