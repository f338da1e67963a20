# backend/fintrack/dependencies.py
"""
Dependency injection for FastAPI routes.

Provides singleton service instances shared across all requests. The
FinanceState is the in-memory view every router reads and mutates, so
there must be exactly one per process.

Services are lazily initialized on first use to avoid import-time side
effects (tests override get_finance_state instead).

Usage in routers:
    from fintrack.dependencies import get_finance_state

    @router.get("/")
    def dashboard(state: FinanceState = Depends(get_finance_state)):
        ...
"""

import logging
from functools import lru_cache

from fintrack.config import settings
from fintrack.database import SessionLocal
from fintrack.services.finance_state import FinanceState
from fintrack.services.fund_quotes import FundQuoteProvider, MfApiProvider
from fintrack.services.scheduler import RefreshScheduler
from fintrack.services.store import SqlAlchemyRecordStore

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON SERVICE INSTANCES
# =============================================================================
# Order matters: define dependencies before dependents
# 1. get_record_store (no deps)
# 2. get_finance_state (depends on store, loads every table once)
# 3. get_refresh_scheduler (calls the state's refresh_holdings)
# 4. get_fund_quote_provider (no deps)


@lru_cache(maxsize=1)
def get_record_store() -> SqlAlchemyRecordStore:
    logger.debug("Initializing singleton SqlAlchemyRecordStore")
    return SqlAlchemyRecordStore(SessionLocal)


@lru_cache(maxsize=1)
def get_finance_state() -> FinanceState:
    """
    Get the singleton FinanceState, loaded from the store on first use.

    Tables that fail to load are logged and start empty; the state is
    still returned so the API stays up.
    """
    logger.debug("Initializing singleton FinanceState")
    state = FinanceState(
        get_record_store(),
        base_currency=settings.base_currency,
        max_workers=settings.load_max_workers,
    )
    state.load_all()
    return state


@lru_cache(maxsize=1)
def get_refresh_scheduler() -> RefreshScheduler:
    """Background price refresh; the handler is bound at startup."""
    logger.debug("Initializing singleton RefreshScheduler")
    return RefreshScheduler(settings.price_refresh_interval_seconds)


@lru_cache(maxsize=1)
def get_fund_quote_provider() -> FundQuoteProvider:
    """Mutual fund search and NAV provider; its HTTP client is closed at shutdown."""
    logger.debug("Initializing singleton MfApiProvider")
    return MfApiProvider(settings.mf_api_base_url, timeout=settings.mf_api_timeout_seconds)
