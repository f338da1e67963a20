# backend/fintrack/schemas/holdings.py
"""
Pydantic schemas for holdings: aggregated positions, trade settlement
requests, and F&O trades.

Position and summary responses are built straight from the portfolio
engine's dataclasses (from_attributes=True).
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _enum_value(v):
    return getattr(v, "value", v)


# =============================================================================
# POSITIONS AND SUMMARIES
# =============================================================================

class PositionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    symbol: str
    venue: str
    name: str | None = None
    quantity: Decimal
    cost_basis: Decimal
    avg_cost: Decimal
    current_price: Decimal
    previous_price: Decimal | None
    current_value: Decimal
    unrealized_pnl: Decimal
    pnl_percentage: Decimal
    source_ids: list[int] = Field(default_factory=list, description="Stored lot ids merged into this position")


class ValuationSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_investment: Decimal
    total_current_value: Decimal
    total_unrealized_pnl: Decimal
    total_day_change: Decimal
    pnl_percentage: Decimal
    position_count: int


class LifetimeBreakdownResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    asset_class: str
    buys: Decimal
    sells: Decimal
    charges: Decimal
    current_value: Decimal
    lifetime: Decimal
    return_percentage: Decimal


class HoldingsResponse(BaseModel):
    positions: list[PositionResponse]
    summary: ValuationSummaryResponse
    lifetime: LifetimeBreakdownResponse | None = Field(
        default=None,
        description="None when the asset class is disabled in settings",
    )


# =============================================================================
# TRADE REQUESTS
# =============================================================================

class StockTradeCreate(BaseModel):
    symbol: str = Field(..., min_length=1, max_length=30, examples=["RELIANCE", "TCS"])
    exchange: str = Field(default="NSE", max_length=10, examples=["NSE", "BSE"])
    transaction_type: str = Field(..., examples=["BUY", "SELL"])
    quantity: Decimal = Field(..., gt=0)
    price: Decimal = Field(..., gt=0)
    transaction_date: date | None = None
    account_id: int | None = Field(
        default=None,
        description="Funding account; settings.default_stock_account_id when omitted",
    )
    company_name: str | None = None
    sector: str | None = None
    brokerage: Decimal | None = Field(
        default=None,
        ge=0,
        description="Leave brokerage and taxes empty to auto-calculate charges",
    )
    taxes: Decimal | None = Field(default=None, ge=0)
    notes: str | None = None

    @field_validator("symbol", "exchange")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip().upper()


class MutualFundTradeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    transaction_type: str = Field(..., examples=["BUY", "SIP", "SELL"])
    amount: Decimal = Field(..., gt=0)
    nav: Decimal = Field(..., gt=0)
    units: Decimal | None = Field(default=None, gt=0, description="Defaults to amount / nav")
    transaction_date: date | None = None
    account_id: int | None = None
    scheme_code: str | None = None
    isin: str | None = None
    category: str | None = None
    folio_number: str | None = None
    notes: str | None = None


class BondTradeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    transaction_type: str = Field(..., examples=["BUY", "SELL", "MATURITY", "INTEREST"])
    quantity: Decimal = Field(..., gt=0)
    price: Decimal = Field(..., gt=0, description="Per unit; coupon per unit for INTEREST")
    transaction_date: date | None = None
    account_id: int | None = None
    isin: str | None = None
    company_name: str | None = None
    face_value: Decimal | None = None
    coupon_rate: Decimal | None = None
    maturity_date: date | None = None
    interest_frequency: str | None = None
    notes: str | None = None


class PriceUpdate(BaseModel):
    price: Decimal = Field(..., gt=0)
    exchange: str | None = None


class PriceUpdateResponse(BaseModel):
    symbol: str
    price: Decimal
    lots_updated: int


# =============================================================================
# TRANSACTION RESPONSES
# =============================================================================

class StockTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    stock_id: int | None
    transaction_type: str
    quantity: Decimal
    price: Decimal
    total_amount: Decimal
    brokerage: Decimal
    taxes: Decimal
    transaction_date: date
    notes: str | None
    account_id: int | None

    @field_validator("transaction_type", mode="before")
    @classmethod
    def type_value(cls, v):
        return _enum_value(v)


class MutualFundTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    mutual_fund_id: int | None
    transaction_type: str
    units: Decimal
    nav: Decimal
    total_amount: Decimal
    transaction_date: date
    notes: str | None
    account_id: int | None

    @field_validator("transaction_type", mode="before")
    @classmethod
    def type_value(cls, v):
        return _enum_value(v)


class BondTransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    bond_id: int | None
    transaction_type: str
    quantity: Decimal
    price: Decimal
    total_amount: Decimal
    transaction_date: date
    notes: str | None
    account_id: int | None

    @field_validator("transaction_type", mode="before")
    @classmethod
    def type_value(cls, v):
        return _enum_value(v)


# =============================================================================
# F&O
# =============================================================================

class FnoTradeCreate(BaseModel):
    instrument: str = Field(..., min_length=1, max_length=100, examples=["NIFTY 22FEB 21500 CE"])
    trade_type: str = Field(..., examples=["BUY", "SELL"])
    product: str = Field(default="NRML", max_length=10)
    quantity: Decimal = Field(..., gt=0)
    avg_price: Decimal = Field(..., ge=0)
    entry_date: date | None = None
    notes: str | None = None
    account_id: int | None = None

    @field_validator("trade_type")
    @classmethod
    def normalize_trade_type(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in ("BUY", "SELL"):
            raise ValueError("trade_type must be BUY or SELL")
        return v


class FnoCloseRequest(BaseModel):
    exit_price: Decimal = Field(..., ge=0)
    exit_date: date | None = None


class FnoTradeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    instrument: str
    trade_type: str
    product: str
    quantity: Decimal
    avg_price: Decimal
    exit_price: Decimal | None
    entry_date: date
    exit_date: date | None
    status: str
    pnl: Decimal
    notes: str | None
    account_id: int | None

    @field_validator("trade_type", "status", mode="before")
    @classmethod
    def enum_values(cls, v):
        return _enum_value(v)


class FnoStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    closed_trades: int
    open_trades: int
    win_trades: int
    loss_trades: int
    realized_pnl: Decimal
    win_rate: Decimal


class FnoListResponse(BaseModel):
    trades: list[FnoTradeResponse]
    stats: FnoStatsResponse


# =============================================================================
# CHARGES
# =============================================================================

class ChargeEstimateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    brokerage: Decimal
    stt: Decimal
    transaction_charges: Decimal
    sebi_charges: Decimal
    stamp_duty: Decimal
    gst: Decimal
    dp_charges: Decimal
    taxes: Decimal
    total: Decimal
