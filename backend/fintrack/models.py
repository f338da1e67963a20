# backend/fintrack/models.py
import enum
import datetime as dt
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Date, DateTime, ForeignKey, Enum, Numeric, Boolean, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# Money and quantity columns share one precision
Money = Numeric(18, 8)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class Currency(str, enum.Enum):
    INR = "INR"
    USD = "USD"


class LedgerEntryType(str, enum.Enum):
    """Income increases the account balance, Expense decreases it."""
    INCOME = "Income"
    EXPENSE = "Expense"


class StockTransactionType(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"


class MutualFundTransactionType(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    SIP = "SIP"


class BondTransactionType(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    MATURITY = "MATURITY"
    INTEREST = "INTEREST"


class FnoTradeType(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"


class FnoStatus(str, enum.Enum):
    """
    OPEN trades carry a provisional pnl; only CLOSED trades count as realized.
    """
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class BondStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    MATURED = "MATURED"
    SOLD = "SOLD"


class BrokerageType(str, enum.Enum):
    FLAT = "flat"
    PERCENTAGE = "percentage"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


# =============================================================================
# CASH AND LEDGER
# =============================================================================

class Account(Base):
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String)
    bank_name: Mapped[str | None] = mapped_column(String)
    type: Mapped[str] = mapped_column(String, default="Savings")  # e.g. "Savings", "Current", "Wallet"
    balance: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    currency: Mapped[Currency] = mapped_column(Enum(Currency, values_callable=_enum_values), default=Currency.INR)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class LedgerEntry(Base):
    """
    Append-only audit trail of balance-affecting events.

    For every account: opening balance + Σ(Income) − Σ(Expense) == balance.
    """
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    date: Mapped[dt.date] = mapped_column(Date, index=True)
    description: Mapped[str] = mapped_column(String)
    category: Mapped[str] = mapped_column(String)
    type: Mapped[LedgerEntryType] = mapped_column(Enum(LedgerEntryType, values_callable=_enum_values))
    amount: Mapped[Decimal] = mapped_column(Money)
    account_id: Mapped[int | None] = mapped_column(ForeignKey("accounts.id", ondelete="SET NULL"), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class Goal(Base):
    __tablename__ = "goals"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String)
    target_amount: Mapped[Decimal] = mapped_column(Money)
    current_amount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    deadline: Mapped[date | None] = mapped_column(Date)
    category: Mapped[str | None] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(String)


class FamilyTransfer(Base):
    __tablename__ = "family_transfers"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    date: Mapped[dt.date] = mapped_column(Date)
    recipient: Mapped[str] = mapped_column(String)
    relationship: Mapped[str | None] = mapped_column(String)
    amount: Mapped[Decimal] = mapped_column(Money)
    purpose: Mapped[str | None] = mapped_column(String)
    notes: Mapped[str | None] = mapped_column(String)
    account_id: Mapped[int | None] = mapped_column(ForeignKey("accounts.id", ondelete="SET NULL"), index=True)


# =============================================================================
# STOCKS
# =============================================================================

class Stock(Base):
    """
    One purchase lot. Lots sharing (symbol, exchange) are merged into a
    single position at read time; a lot with quantity 0 stays as a row.
    """
    __tablename__ = "stocks"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    symbol: Mapped[str] = mapped_column(String, index=True)
    company_name: Mapped[str | None] = mapped_column(String)
    exchange: Mapped[str] = mapped_column(String, default="NSE")
    sector: Mapped[str | None] = mapped_column(String)
    quantity: Mapped[Decimal] = mapped_column(Money)
    avg_price: Mapped[Decimal] = mapped_column(Money)
    current_price: Mapped[Decimal] = mapped_column(Money)
    previous_price: Mapped[Decimal | None] = mapped_column(Money)
    investment_amount: Mapped[Decimal] = mapped_column(Money)
    current_value: Mapped[Decimal] = mapped_column(Money)
    pnl: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    pnl_percentage: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))


class StockTransaction(Base):
    __tablename__ = "stock_transactions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    stock_id: Mapped[int | None] = mapped_column(ForeignKey("stocks.id", ondelete="SET NULL"), index=True)
    transaction_type: Mapped[StockTransactionType] = mapped_column(Enum(StockTransactionType))
    quantity: Mapped[Decimal] = mapped_column(Money)
    price: Mapped[Decimal] = mapped_column(Money)
    total_amount: Mapped[Decimal] = mapped_column(Money)
    brokerage: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    taxes: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    transaction_date: Mapped[date] = mapped_column(Date)
    notes: Mapped[str | None] = mapped_column(String)
    account_id: Mapped[int | None] = mapped_column(ForeignKey("accounts.id", ondelete="SET NULL"))


# =============================================================================
# MUTUAL FUNDS
# =============================================================================

class MutualFund(Base):
    __tablename__ = "mutual_funds"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String, index=True)
    scheme_code: Mapped[str | None] = mapped_column(String)
    isin: Mapped[str | None] = mapped_column(String)
    category: Mapped[str | None] = mapped_column(String)
    folio_number: Mapped[str | None] = mapped_column(String)
    units: Mapped[Decimal] = mapped_column(Money)
    avg_nav: Mapped[Decimal] = mapped_column(Money)
    current_nav: Mapped[Decimal] = mapped_column(Money)
    previous_nav: Mapped[Decimal | None] = mapped_column(Money)
    investment_amount: Mapped[Decimal] = mapped_column(Money)
    current_value: Mapped[Decimal] = mapped_column(Money)
    pnl: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    pnl_percentage: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))


class MutualFundTransaction(Base):
    __tablename__ = "mutual_fund_transactions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    mutual_fund_id: Mapped[int | None] = mapped_column(ForeignKey("mutual_funds.id", ondelete="SET NULL"), index=True)
    transaction_type: Mapped[MutualFundTransactionType] = mapped_column(Enum(MutualFundTransactionType))
    units: Mapped[Decimal] = mapped_column(Money)
    nav: Mapped[Decimal] = mapped_column(Money)
    total_amount: Mapped[Decimal] = mapped_column(Money)
    transaction_date: Mapped[date] = mapped_column(Date)
    notes: Mapped[str | None] = mapped_column(String)
    account_id: Mapped[int | None] = mapped_column(ForeignKey("accounts.id", ondelete="SET NULL"))


# =============================================================================
# BONDS
# =============================================================================

class Bond(Base):
    __tablename__ = "bonds"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String)
    isin: Mapped[str | None] = mapped_column(String, index=True)
    company_name: Mapped[str | None] = mapped_column(String)
    face_value: Mapped[Decimal] = mapped_column(Money)
    coupon_rate: Mapped[Decimal] = mapped_column(Money)
    maturity_date: Mapped[date | None] = mapped_column(Date)
    interest_frequency: Mapped[str | None] = mapped_column(String)
    next_interest_date: Mapped[date | None] = mapped_column(Date)
    yield_to_maturity: Mapped[Decimal | None] = mapped_column(Money)
    quantity: Mapped[Decimal] = mapped_column(Money)
    avg_price: Mapped[Decimal] = mapped_column(Money)
    current_price: Mapped[Decimal] = mapped_column(Money)
    previous_price: Mapped[Decimal | None] = mapped_column(Money)
    investment_amount: Mapped[Decimal] = mapped_column(Money)
    current_value: Mapped[Decimal] = mapped_column(Money)
    pnl: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    pnl_percentage: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    status: Mapped[BondStatus] = mapped_column(Enum(BondStatus), default=BondStatus.ACTIVE)


class BondTransaction(Base):
    __tablename__ = "bond_transactions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    bond_id: Mapped[int | None] = mapped_column(ForeignKey("bonds.id", ondelete="SET NULL"), index=True)
    transaction_type: Mapped[BondTransactionType] = mapped_column(Enum(BondTransactionType))
    quantity: Mapped[Decimal] = mapped_column(Money)
    price: Mapped[Decimal] = mapped_column(Money)
    total_amount: Mapped[Decimal] = mapped_column(Money)
    transaction_date: Mapped[date] = mapped_column(Date)
    notes: Mapped[str | None] = mapped_column(String)
    account_id: Mapped[int | None] = mapped_column(ForeignKey("accounts.id", ondelete="SET NULL"))


# =============================================================================
# F&O
# =============================================================================

class FnoTrade(Base):
    __tablename__ = "fno_trades"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    instrument: Mapped[str] = mapped_column(String)  # e.g. "NIFTY 22FEB 21500 CE"
    trade_type: Mapped[FnoTradeType] = mapped_column(Enum(FnoTradeType))
    product: Mapped[str] = mapped_column(String, default="NRML")
    quantity: Mapped[Decimal] = mapped_column(Money)
    avg_price: Mapped[Decimal] = mapped_column(Money)
    exit_price: Mapped[Decimal | None] = mapped_column(Money)
    entry_date: Mapped[date] = mapped_column(Date)
    exit_date: Mapped[date | None] = mapped_column(Date)
    status: Mapped[FnoStatus] = mapped_column(Enum(FnoStatus), default=FnoStatus.OPEN)
    pnl: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    notes: Mapped[str | None] = mapped_column(String)
    account_id: Mapped[int | None] = mapped_column(ForeignKey("accounts.id", ondelete="SET NULL"))


# =============================================================================
# SETTINGS
# =============================================================================

class AppSettings(Base):
    """
    Charge rates and feature flags. A single row is expected.

    Rates are percentages (0.1 means 0.1%), except dp_charges which is a
    flat amount per scrip on sell.
    """
    __tablename__ = "app_settings"

    id: Mapped[int] = mapped_column(primary_key=True)
    brokerage_type: Mapped[BrokerageType] = mapped_column(
        Enum(BrokerageType, values_callable=_enum_values), default=BrokerageType.PERCENTAGE
    )
    brokerage_value: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    stt_rate: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.1"))
    transaction_charge_rate: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.00345"))
    sebi_charge_rate: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.0001"))
    stamp_duty_rate: Mapped[Decimal] = mapped_column(Money, default=Decimal("0.015"))
    gst_rate: Mapped[Decimal] = mapped_column(Money, default=Decimal("18"))
    dp_charges: Mapped[Decimal] = mapped_column(Money, default=Decimal("15.93"))
    auto_calculate_charges: Mapped[bool] = mapped_column(Boolean, default=True)

    # Disabled classes contribute zero to net worth even when positions exist
    stocks_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    mutual_funds_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    bonds_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    fno_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    forex_enabled: Mapped[bool] = mapped_column(Boolean, default=True)

    default_stock_account_id: Mapped[int | None] = mapped_column(Integer)
    default_mf_account_id: Mapped[int | None] = mapped_column(Integer)
    default_bond_account_id: Mapped[int | None] = mapped_column(Integer)
