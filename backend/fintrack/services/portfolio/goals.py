# backend/fintrack/services/portfolio/goals.py
"""Goal progress."""

from decimal import Decimal

from fintrack.services.portfolio.types import ZERO, HUNDRED


def goal_progress(current_amount: Decimal, target_amount: Decimal) -> Decimal:
    """
    Percentage of a goal reached, capped at 100.

    A zero (or negative) target yields 0 rather than dividing by zero.
    """
    if target_amount <= ZERO:
        return ZERO
    return min(current_amount / target_amount * HUNDRED, HUNDRED)
