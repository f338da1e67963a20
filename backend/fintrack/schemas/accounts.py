# backend/fintrack/schemas/accounts.py
"""
Pydantic schemas for accounts and their ledger.

Balances are never set directly after creation: AccountUpdate.balance is
turned into an "Adjustment" ledger entry for the difference, and
FundsRequest records a deposit or withdrawal.
"""

import datetime
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fintrack.models import Currency


def _normalize_currency(v: str | None) -> str | None:
    if v is None:
        return None
    code = v.strip().upper()
    allowed = [c.value for c in Currency]
    if code not in allowed:
        raise ValueError(f"Currency must be one of {allowed}")
    return code


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class AccountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["HDFC Savings"])
    bank_name: str | None = Field(default=None, max_length=100)
    type: str = Field(default="Savings", max_length=50, examples=["Savings", "Current", "Wallet"])
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Opening balance, recorded as an 'Initial Deposit' ledger entry",
    )
    currency: str = Field(default="INR", min_length=3, max_length=3)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return _normalize_currency(v)


class AccountUpdate(BaseModel):
    """All fields optional; only the fields sent are changed."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    bank_name: str | None = Field(default=None, max_length=100)
    type: str | None = Field(default=None, max_length=50)
    balance: Decimal | None = Field(
        default=None,
        description="Target balance; the difference is logged as an adjustment",
    )
    currency: str | None = Field(default=None, min_length=3, max_length=3)

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str | None) -> str | None:
        return _normalize_currency(v)


class FundsRequest(BaseModel):
    amount: Decimal = Field(..., description="Positive to deposit, negative to withdraw")
    description: str | None = Field(default=None, max_length=200)
    category: str = Field(default="Deposit", max_length=50)
    date: datetime.date | None = None


class TransferRequest(BaseModel):
    target_id: int = Field(..., gt=0, description="Account receiving the money")
    amount: Decimal = Field(..., gt=0)
    date: datetime.date | None = None


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class AccountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    bank_name: str | None
    type: str
    balance: Decimal
    currency: Currency


class LedgerEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: date
    description: str
    category: str
    type: str
    amount: Decimal
    account_id: int | None

    @field_validator("type", mode="before")
    @classmethod
    def enum_value(cls, v):
        return getattr(v, "value", v)


class TransferResponse(BaseModel):
    debit: LedgerEntryResponse
    credit: LedgerEntryResponse


class ReconciliationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    account_id: int
    opening_balance: Decimal
    ledger_net: Decimal
    expected_balance: Decimal
    actual_balance: Decimal
    difference: Decimal
    balanced: bool
