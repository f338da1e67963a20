# backend/fintrack/services/portfolio/aggregator.py
"""
Position aggregation: many stored lots → one position per instrument.

Lots are folded in input order, keyed by (SYMBOL, VENUE) uppercased. The
same symbol on two exchanges stays two positions. Asset classes without a
venue (mutual funds, bonds) share the NO_VENUE default.

Merge rules for a repeated key:
    quantity, cost_basis, current_value, unrealized_pnl  → summed
    avg_cost        → cost_basis / quantity (0 when quantity is 0)
    current_price   → incoming lot's price (last write wins)
    previous_price  → quantity-weighted mean of (previous or current)
    pnl_percentage  → unrealized_pnl / cost_basis × 100 (0 when cost is 0)

After the fold, positions with quantity <= 0 are dropped and the rest are
ordered by current value, highest first. Ties keep input order.

Usage:
    from fintrack.services.portfolio import group_positions, lots_from_stocks

    positions = group_positions(lots_from_stocks(state.stocks))
"""

import logging
from collections.abc import Iterable

from fintrack.schemas.records import BondRecord, MutualFundRecord, StockRecord
from fintrack.services.constants import NO_VENUE
from fintrack.services.portfolio.types import Lot, Position, ZERO, HUNDRED

logger = logging.getLogger(__name__)


class PositionAggregator:
    """
    Folds lots into positions.

    Args:
        venue_default: Venue used when a lot has none
    """

    def __init__(self, venue_default: str = NO_VENUE) -> None:
        self.venue_default = venue_default

    def key_for(self, lot: Lot) -> tuple[str, str]:
        venue = lot.venue or self.venue_default
        return lot.symbol.upper(), venue.upper()

    def group(self, lots: Iterable[Lot]) -> list[Position]:
        """
        Merge lots sharing a key, drop closed positions, order by value.

        Args:
            lots: Lots of a single asset class, in load order

        Returns:
            Active positions, highest current value first
        """
        merged: dict[tuple[str, str], Position] = {}

        for lot in lots:
            key = self.key_for(lot)
            existing = merged.get(key)
            if existing is None:
                merged[key] = Position.from_lot(lot, venue=lot.venue or self.venue_default)
            else:
                self.merge(existing, lot)

        active = [p for p in merged.values() if p.quantity > ZERO]
        logger.debug(f"Aggregated {len(merged)} keys, {len(active)} active")

        # sorted() is stable: equal values keep first-seen order
        return sorted(active, key=lambda p: p.current_value, reverse=True)

    @staticmethod
    def merge(existing: Position, incoming: Lot) -> None:
        """Fold one more lot into an accumulated position."""
        qty_before = existing.quantity
        total_qty = qty_before + incoming.quantity
        total_cost = existing.cost_basis + incoming.cost_basis

        # Weighted previous price uses the prices as they were before this merge
        existing_prev = (
            existing.previous_price if existing.previous_price is not None else existing.current_price
        )
        incoming_prev = (
            incoming.previous_price if incoming.previous_price is not None else incoming.current_price
        )
        total_prev_value = existing_prev * qty_before + incoming_prev * incoming.quantity

        existing.quantity = total_qty
        existing.cost_basis = total_cost
        existing.avg_cost = total_cost / total_qty if total_qty > ZERO else ZERO
        existing.current_price = incoming.current_price
        existing.previous_price = (
            total_prev_value / total_qty if total_qty > ZERO else existing.current_price
        )
        existing.current_value += incoming.current_value
        existing.unrealized_pnl += incoming.unrealized_pnl
        existing.pnl_percentage = (
            existing.unrealized_pnl / existing.cost_basis * HUNDRED
            if existing.cost_basis > ZERO
            else ZERO
        )
        if incoming.source_id is not None:
            existing.source_ids.append(incoming.source_id)


def group_positions(lots: Iterable[Lot], venue_default: str = NO_VENUE) -> list[Position]:
    """Module-level shortcut for PositionAggregator(venue_default).group(lots)."""
    return PositionAggregator(venue_default).group(lots)


# =============================================================================
# RECORD ADAPTERS
# =============================================================================

def lots_from_stocks(stocks: Iterable[StockRecord]) -> list[Lot]:
    return [
        Lot(
            symbol=s.symbol,
            venue=s.exchange,
            quantity=s.quantity,
            cost_basis=s.investment_amount,
            current_price=s.current_price,
            previous_price=s.previous_price,
            current_value=s.current_value,
            unrealized_pnl=s.pnl,
            avg_cost=s.avg_price,
            pnl_percentage=s.pnl_percentage,
            source_id=s.id,
            name=s.company_name,
        )
        for s in stocks
    ]


def lots_from_mutual_funds(funds: Iterable[MutualFundRecord]) -> list[Lot]:
    """Mutual funds have no venue; the scheme name is the symbol."""
    return [
        Lot(
            symbol=f.name,
            venue=None,
            quantity=f.units,
            cost_basis=f.investment_amount,
            current_price=f.current_nav,
            previous_price=f.previous_nav,
            current_value=f.current_value,
            unrealized_pnl=f.pnl,
            avg_cost=f.avg_nav,
            pnl_percentage=f.pnl_percentage,
            source_id=f.id,
            name=f.name,
        )
        for f in funds
    ]


def lots_from_bonds(bonds: Iterable[BondRecord]) -> list[Lot]:
    """
    Bonds are keyed by ISIN. A lot stored without one borrows the ISIN of
    a same-named lot, and falls back to its name when none has one.
    """
    bonds = list(bonds)
    isin_by_name = {b.name.lower(): b.isin for b in bonds if b.isin}
    return [
        Lot(
            symbol=b.isin or isin_by_name.get(b.name.lower(), b.name),
            venue=None,
            quantity=b.quantity,
            cost_basis=b.investment_amount,
            current_price=b.current_price,
            previous_price=b.previous_price,
            current_value=b.current_value,
            unrealized_pnl=b.pnl,
            avg_cost=b.avg_price,
            pnl_percentage=b.pnl_percentage,
            source_id=b.id,
            name=b.name,
        )
        for b in bonds
    ]
