# backend/fintrack/schemas/goals.py
"""Pydantic schemas for savings goals and family transfers."""

import datetime
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# GOALS
# =============================================================================

class GoalCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Emergency Fund"])
    target_amount: Decimal = Field(..., ge=0)
    current_amount: Decimal = Field(default=Decimal("0"), ge=0)
    deadline: date | None = None
    category: str | None = Field(default=None, max_length=50)
    description: str | None = None

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        return v.strip()


class GoalContribution(BaseModel):
    amount: Decimal = Field(..., gt=0)
    account_id: int | None = Field(default=None, description="Account to debit, if any")
    date: datetime.date | None = None


class GoalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    target_amount: Decimal
    current_amount: Decimal
    deadline: date | None
    category: str | None
    description: str | None
    progress: Decimal = Field(..., description="Percent reached, capped at 100")


# =============================================================================
# FAMILY TRANSFERS
# =============================================================================

class FamilyTransferCreate(BaseModel):
    date: date
    recipient: str = Field(..., min_length=1, max_length=100)
    relationship: str | None = Field(default=None, max_length=50)
    amount: Decimal = Field(..., gt=0)
    purpose: str | None = None
    notes: str | None = None
    account_id: int | None = None


class FamilyTransferResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: date
    recipient: str
    relationship: str | None
    amount: Decimal
    purpose: str | None
    notes: str | None
    account_id: int | None
