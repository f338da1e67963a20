# backend/fintrack/routers/dashboard.py
"""Dashboard endpoint: net worth, allocation, valuation and lifetime earnings."""

from fastapi import APIRouter, Depends

from fintrack.dependencies import get_finance_state
from fintrack.schemas.dashboard import AllocationSliceResponse, DashboardResponse
from fintrack.schemas.holdings import FnoStatsResponse, ValuationSummaryResponse
from fintrack.services.finance_state import FinanceState

router = APIRouter(
    prefix="/dashboard",
    tags=["Dashboard"],
)


@router.get("/", response_model=DashboardResponse, summary="Dashboard metrics")
def get_dashboard(state: FinanceState = Depends(get_finance_state)):
    """
    Net worth = liquidity (base-currency accounts only) + the current value
    of every enabled asset class. Lifetime earnings include closed F&O
    trades when F&O is enabled.
    """
    metrics = state.dashboard()
    return DashboardResponse(
        base_currency=metrics.base_currency,
        liquidity=metrics.liquidity,
        net_worth=metrics.net_worth,
        class_values=metrics.class_values,
        valuation=ValuationSummaryResponse.model_validate(metrics.valuation),
        lifetime_by_class=metrics.lifetime_by_class,
        total_lifetime=metrics.total_lifetime,
        allocation=[AllocationSliceResponse.model_validate(s) for s in metrics.allocation],
        fno=FnoStatsResponse.model_validate(state.fno_stats()) if state.settings.fno_enabled else None,
    )
