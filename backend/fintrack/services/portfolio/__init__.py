# backend/fintrack/services/portfolio/__init__.py
"""
Portfolio engine package.

Pure computation over records already loaded from the store: no I/O and
no store access happen here.

Architecture:
    portfolio/
    ├── __init__.py      # Package exports
    ├── types.py         # Lot, Position and result dataclasses
    ├── aggregator.py    # Lots → positions (weighted-average merge)
    ├── valuation.py     # Day change and value/P&L totals
    ├── lifetime.py      # Cash-flow reconstructed lifetime earnings
    ├── networth.py      # Liquidity, net worth, allocation
    ├── goals.py         # Goal progress
    └── charges.py       # Approximate trading charges

Data Flow:
    Records → lots_from_*() → PositionAggregator → Positions
    Positions → ValuationEngine → ValuationSummary
    Transactions → LifetimeCalculator → LifetimeBreakdown
    Accounts + Summaries → NetWorthComposer → DashboardMetrics
"""

from fintrack.services.portfolio.aggregator import (
    PositionAggregator,
    group_positions,
    lots_from_bonds,
    lots_from_mutual_funds,
    lots_from_stocks,
)
from fintrack.services.portfolio.goals import goal_progress
from fintrack.services.portfolio.lifetime import (
    BOND_RULES,
    MUTUAL_FUND_RULES,
    STOCK_RULES,
    CashFlow,
    LifetimeCalculator,
    calc_lifetime_earned,
    flows_from_bond_transactions,
    flows_from_mutual_fund_transactions,
    flows_from_stock_transactions,
    lifetime_return_pct,
)
from fintrack.services.portfolio.networth import NetWorthComposer
from fintrack.services.portfolio.types import (
    AllocationSlice,
    DashboardMetrics,
    FnoStats,
    LifetimeBreakdown,
    Lot,
    Position,
    ValuationSummary,
)
from fintrack.services.portfolio.valuation import ValuationEngine, day_change

__all__ = [
    # Aggregation
    "PositionAggregator",
    "group_positions",
    "lots_from_stocks",
    "lots_from_mutual_funds",
    "lots_from_bonds",
    # Valuation
    "ValuationEngine",
    "day_change",
    # Lifetime
    "LifetimeCalculator",
    "calc_lifetime_earned",
    "lifetime_return_pct",
    "CashFlow",
    "STOCK_RULES",
    "MUTUAL_FUND_RULES",
    "BOND_RULES",
    "flows_from_stock_transactions",
    "flows_from_mutual_fund_transactions",
    "flows_from_bond_transactions",
    # Net worth and goals
    "NetWorthComposer",
    "goal_progress",
    # Types
    "Lot",
    "Position",
    "ValuationSummary",
    "LifetimeBreakdown",
    "FnoStats",
    "AllocationSlice",
    "DashboardMetrics",
]
