# backend/fintrack/utils/__init__.py
"""Utility helpers: logging setup and request context."""

from fintrack.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
)
from fintrack.utils.logging import setup_logging

__all__ = [
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "setup_logging",
]
