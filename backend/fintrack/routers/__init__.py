# backend/fintrack/routers/__init__.py
"""
API routers for Fintrack.

Each router handles a specific domain:
- accounts: Bank accounts, funds, transfers and the balance ledger
- holdings: Stocks, mutual funds, bonds and F&O trades
- dashboard: Net worth, allocation and lifetime earnings
- goals: Savings goals and contributions
- family_transfers: Money sent to family members
- bonds: Bond catalog search
- mutual_funds: Mutual fund scheme search and NAV quotes
"""

from fintrack.routers.accounts import router as accounts_router
from fintrack.routers.bonds import router as bonds_router
from fintrack.routers.dashboard import router as dashboard_router
from fintrack.routers.family_transfers import router as family_transfers_router
from fintrack.routers.goals import router as goals_router
from fintrack.routers.holdings import router as holdings_router
from fintrack.routers.mutual_funds import router as mutual_funds_router

__all__ = [
    "accounts_router",
    "holdings_router",
    "dashboard_router",
    "goals_router",
    "family_transfers_router",
    "bonds_router",
    "mutual_funds_router",
]
