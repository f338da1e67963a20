# backend/fintrack/services/portfolio/valuation.py
"""
Valuation of aggregated positions.

Only active positions (quantity > 0) contribute; a fully exited position
adds nothing even though its transactions remain on record.
"""

from collections.abc import Iterable
from decimal import Decimal

from fintrack.services.portfolio.types import Position, ValuationSummary, ZERO


def day_change(position: Position) -> Decimal:
    """
    Mark-to-market move since the previous price.

    (current − (previous or current)) × quantity; zero when no previous
    price is known.
    """
    previous = position.previous_price if position.previous_price is not None else position.current_price
    return (position.current_price - previous) * position.quantity


class ValuationEngine:
    """Builds ValuationSummary totals per asset class and across classes."""

    @staticmethod
    def summarize(positions: Iterable[Position], recompute_pnl: bool = False) -> ValuationSummary:
        """
        Sum value, cost, P&L and day change over active positions.

        Args:
            positions: Positions of one asset class
            recompute_pnl: When True, P&L is taken as total value − total
                investment instead of summing stored per-lot P&L (mutual
                funds store no reliable per-lot P&L)

        Returns:
            ValuationSummary for the class
        """
        investment = ZERO
        value = ZERO
        pnl = ZERO
        change = ZERO
        count = 0

        for position in positions:
            if not position.is_active:
                continue
            investment += position.cost_basis
            value += position.current_value
            pnl += position.unrealized_pnl
            change += day_change(position)
            count += 1

        if recompute_pnl:
            pnl = value - investment

        return ValuationSummary(
            total_investment=investment,
            total_current_value=value,
            total_unrealized_pnl=pnl,
            total_day_change=change,
            position_count=count,
        )

    @staticmethod
    def combine(*summaries: ValuationSummary) -> ValuationSummary:
        """Add per-class summaries into one cross-class summary."""
        return ValuationSummary(
            total_investment=sum((s.total_investment for s in summaries), ZERO),
            total_current_value=sum((s.total_current_value for s in summaries), ZERO),
            total_unrealized_pnl=sum((s.total_unrealized_pnl for s in summaries), ZERO),
            total_day_change=sum((s.total_day_change for s in summaries), ZERO),
            position_count=sum(s.position_count for s in summaries),
        )
