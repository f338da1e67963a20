# backend/fintrack/routers/holdings.py
"""
Holdings endpoints: stocks, mutual funds, bonds and F&O.

GET endpoints return aggregated positions (one per instrument and venue)
with a valuation summary and the class's lifetime earnings. POST
.../transactions settles a trade: holdings, ledger and account balance
are updated together or not at all.
"""

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Request, status

from fintrack.dependencies import get_finance_state
from fintrack.middleware.rate_limit import RATE_LIMIT_WRITE, limiter
from fintrack.models import FnoTradeType
from fintrack.schemas.holdings import (
    BondTradeCreate,
    BondTransactionResponse,
    ChargeEstimateResponse,
    FnoCloseRequest,
    FnoListResponse,
    FnoStatsResponse,
    FnoTradeCreate,
    FnoTradeResponse,
    HoldingsResponse,
    LifetimeBreakdownResponse,
    MutualFundTradeCreate,
    MutualFundTransactionResponse,
    PositionResponse,
    PriceUpdate,
    PriceUpdateResponse,
    StockTradeCreate,
    StockTransactionResponse,
    ValuationSummaryResponse,
)
from fintrack.schemas.records import FnoTradeRecord
from fintrack.services.finance_state import BONDS, MUTUAL_FUNDS, STOCKS, FinanceState
from fintrack.services.portfolio import Position, ValuationSummary

router = APIRouter(
    prefix="/holdings",
    tags=["Holdings"],
)


def _holdings(
        state: FinanceState,
        asset_class: str,
        positions: list[Position],
        summary: ValuationSummary,
) -> HoldingsResponse:
    lifetime = state.lifetime_breakdowns().get(asset_class)
    return HoldingsResponse(
        positions=[PositionResponse.model_validate(p) for p in positions],
        summary=ValuationSummaryResponse.model_validate(summary),
        lifetime=LifetimeBreakdownResponse.model_validate(lifetime) if lifetime else None,
    )


# =============================================================================
# STOCKS
# =============================================================================

@router.get("/stocks", response_model=HoldingsResponse, summary="Stock positions")
def get_stocks(state: FinanceState = Depends(get_finance_state)):
    return _holdings(state, STOCKS, state.stock_positions(), state.stock_summary())


@router.get(
    "/stocks/transactions",
    response_model=list[StockTransactionResponse],
    summary="Stock transaction history",
)
def list_stock_transactions(state: FinanceState = Depends(get_finance_state)):
    return state.data.stock_transactions


@router.post(
    "/stocks/transactions",
    response_model=StockTransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Buy or sell a stock",
)
@limiter.limit(RATE_LIMIT_WRITE)
def create_stock_transaction(
        request: Request,
        trade: StockTradeCreate,
        state: FinanceState = Depends(get_finance_state),
):
    """
    Settle a stock trade against an account.

    - **BUY** debits quantity × price + charges (409 if the balance is short)
    - **SELL** credits quantity × price − charges (400 if selling more than held)

    Leave **brokerage** and **taxes** empty to have charges estimated.
    """
    return state.record_stock_trade(**trade.model_dump())


@router.post(
    "/stocks/{symbol}/price",
    response_model=PriceUpdateResponse,
    summary="Mark a stock to a new price",
)
@limiter.limit(RATE_LIMIT_WRITE)
def update_stock_price(
        request: Request,
        symbol: str,
        body: PriceUpdate,
        state: FinanceState = Depends(get_finance_state),
):
    count = state.set_stock_price(symbol, body.price, body.exchange)
    return PriceUpdateResponse(symbol=symbol.upper(), price=body.price, lots_updated=count)


# =============================================================================
# MUTUAL FUNDS
# =============================================================================

@router.get("/mutual-funds", response_model=HoldingsResponse, summary="Mutual fund positions")
def get_mutual_funds(state: FinanceState = Depends(get_finance_state)):
    return _holdings(state, MUTUAL_FUNDS, state.mutual_fund_positions(), state.mutual_fund_summary())


@router.get(
    "/mutual-funds/transactions",
    response_model=list[MutualFundTransactionResponse],
    summary="Mutual fund transaction history",
)
def list_mutual_fund_transactions(state: FinanceState = Depends(get_finance_state)):
    return state.data.mutual_fund_transactions


@router.post(
    "/mutual-funds/transactions",
    response_model=MutualFundTransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Buy, SIP or redeem a mutual fund",
)
@limiter.limit(RATE_LIMIT_WRITE)
def create_mutual_fund_transaction(
        request: Request,
        trade: MutualFundTradeCreate,
        state: FinanceState = Depends(get_finance_state),
):
    return state.record_mutual_fund_trade(**trade.model_dump())


# =============================================================================
# BONDS
# =============================================================================

@router.get("/bonds", response_model=HoldingsResponse, summary="Bond positions")
def get_bonds(state: FinanceState = Depends(get_finance_state)):
    return _holdings(state, BONDS, state.bond_positions(), state.bond_summary())


@router.get(
    "/bonds/transactions",
    response_model=list[BondTransactionResponse],
    summary="Bond transaction history",
)
def list_bond_transactions(state: FinanceState = Depends(get_finance_state)):
    return state.data.bond_transactions


@router.post(
    "/bonds/transactions",
    response_model=BondTransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Buy, sell, mature or receive interest on a bond",
)
@limiter.limit(RATE_LIMIT_WRITE)
def create_bond_transaction(
        request: Request,
        trade: BondTradeCreate,
        state: FinanceState = Depends(get_finance_state),
):
    return state.record_bond_trade(**trade.model_dump())


# =============================================================================
# F&O
# =============================================================================

@router.get("/fno", response_model=FnoListResponse, summary="F&O trades and statistics")
def list_fno_trades(state: FinanceState = Depends(get_finance_state)):
    return FnoListResponse(
        trades=[FnoTradeResponse.model_validate(t) for t in state.data.fno_trades],
        stats=FnoStatsResponse.model_validate(state.fno_stats()),
    )


@router.post(
    "/fno",
    response_model=FnoTradeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open an F&O trade",
)
@limiter.limit(RATE_LIMIT_WRITE)
def create_fno_trade(
        request: Request,
        trade: FnoTradeCreate,
        state: FinanceState = Depends(get_finance_state),
):
    record = FnoTradeRecord(
        instrument=trade.instrument,
        trade_type=FnoTradeType(trade.trade_type),
        product=trade.product,
        quantity=trade.quantity,
        avg_price=trade.avg_price,
        entry_date=trade.entry_date or date.today(),
        notes=trade.notes,
        account_id=trade.account_id,
    )
    return state.add_fno_trade(record)


@router.post("/fno/{trade_id}/close", response_model=FnoTradeResponse, summary="Close an F&O trade")
@limiter.limit(RATE_LIMIT_WRITE)
def close_fno_trade(
        request: Request,
        trade_id: int,
        body: FnoCloseRequest,
        state: FinanceState = Depends(get_finance_state),
):
    """Realize P&L: (exit − entry) × qty for BUY, reversed for SELL, less charges."""
    return state.close_fno_trade(trade_id, body.exit_price, body.exit_date)


# =============================================================================
# CHARGES AND DELETION
# =============================================================================

@router.get("/charges", response_model=ChargeEstimateResponse, summary="Estimate trade charges")
def estimate_charges(
        asset_class: str = Query(..., description="stock, mutual_fund, bond or fno"),
        trade_type: str = Query(default="BUY"),
        quantity: Decimal = Query(..., gt=0),
        price: Decimal = Query(..., ge=0),
        instrument: str | None = Query(default=None, description="F&O instrument name"),
        exit_price: Decimal | None = Query(default=None, ge=0),
        state: FinanceState = Depends(get_finance_state),
):
    return ChargeEstimateResponse.model_validate(
        state.estimate_charges(asset_class, trade_type, quantity, price, instrument, exit_price)
    )


@router.delete(
    "/{table}/{entity_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a holding, transaction or trade row",
)
@limiter.limit(RATE_LIMIT_WRITE)
def delete_entity(
        request: Request,
        table: str,
        entity_id: int,
        state: FinanceState = Depends(get_finance_state),
) -> None:
    """
    **table** is a store table name such as `stocks`, `stock_transactions`
    or `fno_trades`. Nothing is removed from memory if the store refuses.
    """
    state.delete_entity(table, entity_id)
