# backend/fintrack/schemas/dashboard.py
"""Pydantic schemas for the dashboard endpoint."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from fintrack.schemas.holdings import FnoStatsResponse, ValuationSummaryResponse


class AllocationSliceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    label: str
    value: Decimal
    percentage: Decimal


class DashboardResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    base_currency: str = Field(..., description="Currency every figure is reported in")
    liquidity: Decimal = Field(..., description="Σ balances of base-currency accounts")
    net_worth: Decimal = Field(..., description="liquidity + enabled asset-class values")
    class_values: dict[str, Decimal]
    valuation: ValuationSummaryResponse
    lifetime_by_class: dict[str, Decimal]
    total_lifetime: Decimal
    allocation: list[AllocationSliceResponse]
    fno: FnoStatsResponse | None = Field(default=None, description="None when F&O is disabled")
