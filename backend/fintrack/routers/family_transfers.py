# backend/fintrack/routers/family_transfers.py
"""Money sent to family members."""

from fastapi import APIRouter, Depends, Request, status

from fintrack.dependencies import get_finance_state
from fintrack.middleware.rate_limit import RATE_LIMIT_WRITE, limiter
from fintrack.schemas.goals import FamilyTransferCreate, FamilyTransferResponse
from fintrack.schemas.records import FamilyTransferRecord
from fintrack.services.finance_state import FinanceState

router = APIRouter(
    prefix="/family-transfers",
    tags=["Family Transfers"],
)


@router.get("/", response_model=list[FamilyTransferResponse], summary="List family transfers")
def list_transfers(state: FinanceState = Depends(get_finance_state)):
    return state.data.family_transfers


@router.post(
    "/",
    response_model=FamilyTransferResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a family transfer",
)
@limiter.limit(RATE_LIMIT_WRITE)
def create_transfer(
        request: Request,
        transfer: FamilyTransferCreate,
        state: FinanceState = Depends(get_finance_state),
):
    """With an **account_id**, the amount is debited as a "Family" expense (409 if short)."""
    return state.add_family_transfer(FamilyTransferRecord(**transfer.model_dump()))
