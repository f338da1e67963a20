# backend/fintrack/schemas/records.py
"""
Record DTOs for rows crossing the record-store boundary.

Every table has one frozen pydantic model. Rows returned by the store are
mapped field by field and coerced (numeric strings and floats to Decimal,
ISO strings to date, case-insensitive enum values). A row that cannot be
coerced is rejected with RecordValidationError; loaders skip it and keep
the rest of the table.

The same models describe rows going *into* the store: a record built
without an id is dumped with to_row() and inserted.

Usage:
    from fintrack.schemas.records import parse_rows, to_row, StockRecord

    records, rejected = parse_rows("stocks", result.data)
    store.insert("stocks", to_row(StockRecord(symbol="TCS", ...)))

IMPORTANT: All money and quantity fields are Decimal.
"""

import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator

from fintrack.models import (
    BondStatus,
    BondTransactionType,
    BrokerageType,
    Currency,
    FnoStatus,
    FnoTradeType,
    LedgerEntryType,
    MutualFundTransactionType,
    StockTransactionType,
)
from fintrack.services.exceptions import RecordValidationError

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


# =============================================================================
# BASE RECORD
# =============================================================================

class Record(BaseModel):
    """
    Base for all table records.

    id is None only for records that have not been inserted yet.
    Unknown keys (e.g. created_at) are ignored; missing required keys fail.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", use_enum_values=False)

    id: int | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _normalize_enum_case(cls, value: Any, info) -> Any:
        """Accept enum values in any case ("buy", "income", "inr")."""
        field = cls.model_fields.get(info.field_name)
        enum_type = _enum_type_of(field.annotation) if field else None
        if enum_type is not None and isinstance(value, str) and not isinstance(value, Enum):
            for member in enum_type:
                if member.value.lower() == value.strip().lower():
                    return member
        return value


def _enum_type_of(annotation: Any) -> type[Enum] | None:
    if isinstance(annotation, type) and issubclass(annotation, Enum):
        return annotation
    for arg in getattr(annotation, "__args__", ()):
        if isinstance(arg, type) and issubclass(arg, Enum):
            return arg
    return None


# =============================================================================
# CASH AND LEDGER
# =============================================================================

class AccountRecord(Record):
    name: str = Field(..., min_length=1)
    bank_name: str | None = None
    type: str = "Savings"
    balance: Decimal = ZERO
    currency: Currency = Currency.INR


class LedgerEntryRecord(Record):
    date: date
    description: str
    category: str
    type: LedgerEntryType
    amount: Decimal = Field(..., ge=0)
    account_id: int | None = None

    @property
    def signed_amount(self) -> Decimal:
        """Amount as a balance delta: positive for Income, negative for Expense."""
        return self.amount if self.type == LedgerEntryType.INCOME else -self.amount


class GoalRecord(Record):
    name: str = Field(..., min_length=1)
    target_amount: Decimal = Field(..., ge=0)
    current_amount: Decimal = Field(default=ZERO, ge=0)
    deadline: date | None = None
    category: str | None = None
    description: str | None = None


class FamilyTransferRecord(Record):
    date: date
    recipient: str = Field(..., min_length=1)
    relationship: str | None = None
    amount: Decimal = Field(..., gt=0)
    purpose: str | None = None
    notes: str | None = None
    account_id: int | None = None


# =============================================================================
# HOLDINGS
# =============================================================================

class StockRecord(Record):
    symbol: str = Field(..., min_length=1)
    company_name: str | None = None
    exchange: str = "NSE"
    sector: str | None = None
    quantity: Decimal
    avg_price: Decimal
    current_price: Decimal
    previous_price: Decimal | None = None
    investment_amount: Decimal
    current_value: Decimal
    pnl: Decimal = ZERO
    pnl_percentage: Decimal = ZERO


class StockTransactionRecord(Record):
    stock_id: int | None = None
    transaction_type: StockTransactionType
    quantity: Decimal = Field(..., gt=0)
    price: Decimal = Field(..., ge=0)
    total_amount: Decimal = Field(..., ge=0)
    brokerage: Decimal = ZERO
    taxes: Decimal = ZERO
    transaction_date: date
    notes: str | None = None
    account_id: int | None = None

    @field_validator("brokerage", "taxes", mode="before")
    @classmethod
    def _null_charges_are_zero(cls, v: Any) -> Any:
        return ZERO if v is None else v


class MutualFundRecord(Record):
    name: str = Field(..., min_length=1)
    scheme_code: str | None = None
    isin: str | None = None
    category: str | None = None
    folio_number: str | None = None
    units: Decimal
    avg_nav: Decimal
    current_nav: Decimal
    previous_nav: Decimal | None = None
    investment_amount: Decimal
    current_value: Decimal
    pnl: Decimal = ZERO
    pnl_percentage: Decimal = ZERO


class MutualFundTransactionRecord(Record):
    mutual_fund_id: int | None = None
    transaction_type: MutualFundTransactionType
    units: Decimal = Field(..., gt=0)
    nav: Decimal = Field(..., ge=0)
    total_amount: Decimal = Field(..., ge=0)
    transaction_date: date
    notes: str | None = None
    account_id: int | None = None


class BondRecord(Record):
    name: str = Field(..., min_length=1)
    isin: str | None = None
    company_name: str | None = None
    face_value: Decimal = ZERO
    coupon_rate: Decimal = ZERO
    maturity_date: date | None = None
    interest_frequency: str | None = None
    next_interest_date: date | None = None
    yield_to_maturity: Decimal | None = None
    quantity: Decimal
    avg_price: Decimal
    current_price: Decimal
    previous_price: Decimal | None = None
    investment_amount: Decimal
    current_value: Decimal
    pnl: Decimal = ZERO
    pnl_percentage: Decimal = ZERO
    status: BondStatus = BondStatus.ACTIVE


class BondTransactionRecord(Record):
    bond_id: int | None = None
    transaction_type: BondTransactionType
    quantity: Decimal = Field(..., ge=0)
    price: Decimal = Field(..., ge=0)
    total_amount: Decimal = Field(..., ge=0)
    transaction_date: date
    notes: str | None = None
    account_id: int | None = None


class FnoTradeRecord(Record):
    instrument: str = Field(..., min_length=1)
    trade_type: FnoTradeType
    product: str = "NRML"
    quantity: Decimal = Field(..., gt=0)
    avg_price: Decimal = Field(..., ge=0)
    exit_price: Decimal | None = None
    entry_date: date
    exit_date: date | None = None
    status: FnoStatus = FnoStatus.OPEN
    pnl: Decimal = ZERO
    notes: str | None = None
    account_id: int | None = None


class AppSettingsRecord(Record):
    """Charge rates are percentages; dp_charges is a flat amount per sell."""

    brokerage_type: BrokerageType = BrokerageType.PERCENTAGE
    brokerage_value: Decimal = ZERO
    stt_rate: Decimal = Decimal("0.1")
    transaction_charge_rate: Decimal = Decimal("0.00345")
    sebi_charge_rate: Decimal = Decimal("0.0001")
    stamp_duty_rate: Decimal = Decimal("0.015")
    gst_rate: Decimal = Decimal("18")
    dp_charges: Decimal = Decimal("15.93")
    auto_calculate_charges: bool = True
    stocks_enabled: bool = True
    mutual_funds_enabled: bool = True
    bonds_enabled: bool = True
    fno_enabled: bool = True
    forex_enabled: bool = True
    default_stock_account_id: int | None = None
    default_mf_account_id: int | None = None
    default_bond_account_id: int | None = None


# =============================================================================
# TABLE REGISTRY AND MAPPING
# =============================================================================

RECORD_TYPES: dict[str, type[Record]] = {
    "accounts": AccountRecord,
    "transactions": LedgerEntryRecord,
    "goals": GoalRecord,
    "family_transfers": FamilyTransferRecord,
    "stocks": StockRecord,
    "stock_transactions": StockTransactionRecord,
    "mutual_funds": MutualFundRecord,
    "mutual_fund_transactions": MutualFundTransactionRecord,
    "bonds": BondRecord,
    "bond_transactions": BondTransactionRecord,
    "fno_trades": FnoTradeRecord,
    "app_settings": AppSettingsRecord,
}


def parse_record(table: str, row: Mapping[str, Any]) -> Record:
    """
    Map one stored row onto its table's record type.

    Args:
        table: Table name (key of RECORD_TYPES)
        row: Raw row as returned by the store

    Returns:
        The coerced record

    Raises:
        RecordValidationError: If the row is missing an id, has a missing or
            uncoercible field, or the table is unknown
    """
    row_id = row.get("id") if isinstance(row, Mapping) else None
    record_type = RECORD_TYPES.get(table)
    if record_type is None:
        raise RecordValidationError(table, row_id, "unknown table")
    if row_id is None:
        raise RecordValidationError(table, row_id, "stored row has no id")

    try:
        return record_type.model_validate(dict(row))
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise RecordValidationError(table, row_id, problems) from e


def parse_rows(
        table: str,
        rows: Iterable[Mapping[str, Any]],
) -> tuple[list[Record], list[RecordValidationError]]:
    """
    Parse a whole table, keeping conforming rows and collecting rejections.

    Returns:
        (records in input order, rejection errors)
    """
    records: list[Record] = []
    rejected: list[RecordValidationError] = []
    for row in rows:
        try:
            records.append(parse_record(table, row))
        except RecordValidationError as e:
            logger.warning(f"Skipping row: {e}")
            rejected.append(e)
    return records, rejected


def to_row(record: Record) -> dict[str, Any]:
    """Dump a record for insert, dropping id so the store assigns one."""
    return record.model_dump(exclude={"id"})


def to_patch(record: Record, *fields: str) -> dict[str, Any]:
    """Dump selected fields of a record as an update patch."""
    return record.model_dump(include=set(fields))
