# backend/fintrack/schemas/errors.py
"""
Error response bodies shared by every endpoint.

main.py converts service exceptions into ErrorDetail; request body
validation failures use ValidationErrorDetail with one entry per field.
"""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Body of every non-2xx response except request validation (422)."""

    error: str = Field(
        ...,
        description="Exception class name, e.g. 'InsufficientFundsError'",
        examples=["InsufficientFundsError", "AccountNotFoundError"],
    )
    message: str = Field(..., description="Human-readable explanation")
    details: dict | None = Field(
        default=None,
        description="Structured context such as account_id or table",
    )


class ValidationErrorDetail(BaseModel):
    error: str = Field(default="ValidationError")
    message: str = Field(default="Request validation failed")
    details: list[dict] = Field(
        ...,
        description="One {field, message, type} entry per failing field",
    )
