# backend/fintrack/routers/accounts.py
"""
Account endpoints.

Accounts hold cash. Every change to a balance (opening balance, manual
adjustment, deposit, withdrawal, transfer) is written through the ledger,
so GET /accounts/{id}/reconcile should always report balanced.
"""

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import PlainTextResponse

from fintrack.dependencies import get_finance_state
from fintrack.middleware.rate_limit import RATE_LIMIT_WRITE, limiter
from fintrack.schemas.accounts import (
    AccountCreate,
    AccountResponse,
    AccountUpdate,
    FundsRequest,
    LedgerEntryResponse,
    ReconciliationResponse,
    TransferRequest,
    TransferResponse,
)
from fintrack.schemas.records import AccountRecord
from fintrack.services.finance_state import FinanceState

router = APIRouter(
    prefix="/accounts",
    tags=["Accounts"],
)


@router.get("/", response_model=list[AccountResponse], summary="List accounts")
def list_accounts(state: FinanceState = Depends(get_finance_state)):
    return state.data.accounts


@router.post(
    "/",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
)
@limiter.limit(RATE_LIMIT_WRITE)
def create_account(
        request: Request,
        account: AccountCreate,
        state: FinanceState = Depends(get_finance_state),
):
    """
    Create an account. A non-zero **balance** is recorded as an
    "Initial Deposit" ledger entry.
    """
    return state.add_account(AccountRecord(**account.model_dump()))


@router.get("/{account_id}", response_model=AccountResponse, summary="Get an account")
def get_account(account_id: int, state: FinanceState = Depends(get_finance_state)):
    return state.data.get_account(account_id)


@router.patch("/{account_id}", response_model=AccountResponse, summary="Update an account")
@limiter.limit(RATE_LIMIT_WRITE)
def update_account(
        request: Request,
        account_id: int,
        changes: AccountUpdate,
        state: FinanceState = Depends(get_finance_state),
):
    """
    Update metadata and/or set a new **balance**. The balance difference is
    recorded as a "Balance Update" adjustment.
    """
    return state.update_account(account_id, changes.model_dump(exclude_unset=True))


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete an account")
@limiter.limit(RATE_LIMIT_WRITE)
def delete_account(
        request: Request,
        account_id: int,
        state: FinanceState = Depends(get_finance_state),
) -> None:
    state.delete_entity("accounts", account_id)


@router.post(
    "/{account_id}/funds",
    response_model=LedgerEntryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Deposit or withdraw",
)
@limiter.limit(RATE_LIMIT_WRITE)
def add_funds(
        request: Request,
        account_id: int,
        funds: FundsRequest,
        state: FinanceState = Depends(get_finance_state),
):
    """Positive **amount** deposits, negative withdraws (blocked below zero)."""
    return state.add_funds(account_id, funds.amount, funds.description, funds.category, funds.date)


@router.post(
    "/{account_id}/transfer",
    response_model=TransferResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Transfer between accounts",
)
@limiter.limit(RATE_LIMIT_WRITE)
def transfer(
        request: Request,
        account_id: int,
        body: TransferRequest,
        state: FinanceState = Depends(get_finance_state),
):
    debit, credit = state.transfer_funds(account_id, body.target_id, body.amount, body.date)
    return TransferResponse(
        debit=LedgerEntryResponse.model_validate(debit),
        credit=LedgerEntryResponse.model_validate(credit),
    )


@router.get("/{account_id}/ledger", response_model=list[LedgerEntryResponse], summary="Account ledger")
def get_ledger(account_id: int, state: FinanceState = Depends(get_finance_state)):
    return state.ledger_entries(account_id)


@router.get(
    "/{account_id}/ledger.csv",
    response_class=PlainTextResponse,
    summary="Export account ledger as CSV",
)
def export_ledger(account_id: int, state: FinanceState = Depends(get_finance_state)):
    return PlainTextResponse(
        state.ledger_csv(account_id),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="ledger-{account_id}-{date.today()}.csv"'},
    )


@router.get(
    "/{account_id}/reconcile",
    response_model=ReconciliationResponse,
    summary="Check the balance against the ledger",
)
def reconcile(
        account_id: int,
        opening_balance: Decimal = Query(default=Decimal("0"), description="Balance before the first ledger entry"),
        state: FinanceState = Depends(get_finance_state),
):
    return ReconciliationResponse.model_validate(state.reconcile(account_id, opening_balance))
