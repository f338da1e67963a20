# backend/fintrack/schemas/catalog.py
"""Pydantic schemas for bond catalog search and mutual fund quotes."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class BondListingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    isin: str
    name: str
    company_name: str
    coupon_rate: Decimal
    face_value: Decimal
    maturity_date: date
    interest_frequency: str
    category: str
    rating: str


class BondSearchResponse(BaseModel):
    query: str
    count: int
    results: list[BondListingResponse]


class FundMatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    scheme_code: int
    scheme_name: str


class FundSearchResponse(BaseModel):
    query: str
    count: int
    results: list[FundMatchResponse]


class FundQuoteResponse(BaseModel):
    """Latest NAV of a mutual fund scheme."""

    model_config = ConfigDict(from_attributes=True)

    scheme_code: int
    scheme_name: str
    category: str | None
    current_nav: Decimal
    nav_date: date
