# backend/tests/services/test_aggregator.py
"""
Unit tests for position aggregation and valuation.

Pure calculation logic, no store involved.

Test Coverage:
- PositionAggregator: keying, merge rules, closed-position filtering, order
- Record adapters: stocks keyed by exchange, bonds keyed by ISIN
- day_change and ValuationEngine totals
"""

from decimal import Decimal

import pytest

from fintrack.schemas.records import BondRecord, StockRecord
from fintrack.services.constants import NO_VENUE
from fintrack.services.portfolio import (
    PositionAggregator,
    ValuationEngine,
    ValuationSummary,
    day_change,
    group_positions,
    lots_from_bonds,
    lots_from_stocks,
)
from fintrack.services.portfolio.types import Lot, Position


def make_lot(
        symbol: str = "TCS",
        venue: str | None = "NSE",
        quantity: str = "10",
        cost: str = "1000",
        price: str = "120",
        previous: str | None = None,
        source_id: int | None = None,
) -> Lot:
    qty = Decimal(quantity)
    value = qty * Decimal(price)
    return Lot(
        symbol=symbol,
        venue=venue,
        quantity=qty,
        cost_basis=Decimal(cost),
        current_price=Decimal(price),
        previous_price=Decimal(previous) if previous is not None else None,
        current_value=value,
        unrealized_pnl=value - Decimal(cost),
        source_id=source_id,
    )


def make_position(quantity: str, cost: str, value: str, price: str = "100", previous: str | None = None) -> Position:
    return Position(
        symbol="X",
        venue=NO_VENUE,
        quantity=Decimal(quantity),
        cost_basis=Decimal(cost),
        avg_cost=Decimal("0"),
        current_price=Decimal(price),
        previous_price=Decimal(previous) if previous is not None else None,
        current_value=Decimal(value),
        unrealized_pnl=Decimal(value) - Decimal(cost),
        pnl_percentage=Decimal("0"),
    )


# =============================================================================
# AGGREGATION
# =============================================================================

class TestPositionAggregator:
    """Tests for merging lots into positions."""

    def test_empty_input_yields_empty_output(self):
        """No lots, no positions."""
        assert group_positions([]) == []

    def test_single_lot_passes_through(self):
        """A lone lot keeps its figures; avg cost is derived from cost / qty."""
        positions = group_positions([make_lot(source_id=7)])

        assert len(positions) == 1
        p = positions[0]
        assert p.symbol == "TCS"
        assert p.venue == "NSE"
        assert p.quantity == Decimal("10")
        assert p.cost_basis == Decimal("1000")
        assert p.avg_cost == Decimal("100")
        assert p.current_value == Decimal("1200")
        assert p.unrealized_pnl == Decimal("200")
        assert p.pnl_percentage == Decimal("20")
        assert p.source_ids == [7]

    def test_merges_lots_with_same_key(self):
        """Quantities, cost, value and P&L are summed; avg cost is recomputed."""
        positions = group_positions([
            make_lot(quantity="10", cost="1000", price="120", source_id=1),
            make_lot(quantity="5", cost="500", price="130", previous="125", source_id=2),
        ])

        assert len(positions) == 1
        p = positions[0]
        assert p.quantity == Decimal("15")
        assert p.cost_basis == Decimal("1500")
        assert p.avg_cost == Decimal("100")
        assert p.current_value == Decimal("1200") + Decimal("650")
        assert p.unrealized_pnl == Decimal("200") + Decimal("150")
        assert p.source_ids == [1, 2]

    def test_last_lot_price_wins(self):
        """current_price is taken from the lot folded in last."""
        positions = group_positions([
            make_lot(price="130"),
            make_lot(price="120"),
        ])

        assert positions[0].current_price == Decimal("120")

    def test_previous_price_is_quantity_weighted(self):
        """A lot with no previous price contributes its current price."""
        positions = group_positions([
            make_lot(quantity="10", price="120"),
            make_lot(quantity="5", cost="500", price="130", previous="125"),
        ])

        expected = (Decimal("120") * 10 + Decimal("125") * 5) / Decimal("15")
        assert positions[0].previous_price == expected

    def test_key_is_case_insensitive(self):
        """'tcs' on 'nse' merges with 'TCS' on 'NSE'."""
        positions = group_positions([
            make_lot(symbol="TCS", venue="NSE"),
            make_lot(symbol="tcs", venue="nse"),
        ])

        assert len(positions) == 1
        assert positions[0].quantity == Decimal("20")

    def test_same_symbol_on_two_venues_stays_separate(self):
        """The venue is part of the key."""
        positions = group_positions([
            make_lot(venue="NSE"),
            make_lot(venue="BSE"),
        ])

        assert {p.venue for p in positions} == {"NSE", "BSE"}

    def test_missing_venue_uses_default(self):
        """Lots without a venue are grouped under the default venue."""
        positions = PositionAggregator(venue_default="MF").group([
            make_lot(venue=None),
            make_lot(venue=None),
        ])

        assert len(positions) == 1
        assert positions[0].venue == "MF"

    def test_closed_positions_are_dropped(self):
        """A key whose total quantity is zero is not returned."""
        positions = group_positions([
            make_lot(symbol="INFY", quantity="0", cost="0", price="1500"),
            make_lot(symbol="TCS"),
        ])

        assert [p.symbol for p in positions] == ["TCS"]

    def test_ordered_by_current_value_descending(self):
        positions = group_positions([
            make_lot(symbol="A", quantity="1", price="100"),
            make_lot(symbol="B", quantity="1", price="300"),
            make_lot(symbol="C", quantity="1", price="200"),
        ])

        assert [p.symbol for p in positions] == ["B", "C", "A"]

    def test_equal_values_keep_input_order(self):
        positions = group_positions([
            make_lot(symbol="A", quantity="1", price="100"),
            make_lot(symbol="B", quantity="1", price="100"),
        ])

        assert [p.symbol for p in positions] == ["A", "B"]

    def test_zero_cost_gives_zero_percentage(self):
        """Bonus shares: no cost basis, no division by zero."""
        positions = group_positions([
            make_lot(cost="0"),
            make_lot(cost="0"),
        ])

        assert positions[0].pnl_percentage == Decimal("0")


class TestRecordAdapters:
    """Tests for turning stored records into lots."""

    def test_stock_lots_use_exchange_as_venue(self):
        stock = StockRecord(
            id=3, symbol="TCS", exchange="BSE", quantity=Decimal("2"), avg_price=Decimal("10"),
            current_price=Decimal("12"), investment_amount=Decimal("20"), current_value=Decimal("24"),
            pnl=Decimal("4"),
        )

        lot = lots_from_stocks([stock])[0]

        assert lot.venue == "BSE"
        assert lot.cost_basis == Decimal("20")
        assert lot.source_id == 3

    def test_bonds_keyed_by_isin_then_name(self):
        """Two bonds with the same ISIN but different names merge."""
        common = dict(
            quantity=Decimal("1"), avg_price=Decimal("1000"), current_price=Decimal("1000"),
            investment_amount=Decimal("1000"), current_value=Decimal("1000"),
        )
        bonds = [
            BondRecord(id=1, name="NHAI 2030", isin="INE906B07DT1", **common),
            BondRecord(id=2, name="NHAI Tax Free", isin="INE906B07DT1", **common),
            BondRecord(id=3, name="Unlisted Bond", isin=None, **common),
        ]

        positions = group_positions(lots_from_bonds(bonds))

        assert sorted(p.symbol for p in positions) == ["INE906B07DT1", "Unlisted Bond"]

    def test_bond_lot_without_isin_joins_its_named_position(self):
        common = dict(
            avg_price=Decimal("1000"), current_price=Decimal("1000"),
            investment_amount=Decimal("1000"), current_value=Decimal("1000"),
        )
        bonds = [
            BondRecord(id=1, name="NHAI 2031", isin=None, quantity=Decimal("1"), **common),
            BondRecord(id=2, name="nhai 2031", isin="INE906B07CB9", quantity=Decimal("1"), **common),
        ]

        positions = group_positions(lots_from_bonds(iter(bonds)))

        assert len(positions) == 1
        assert positions[0].symbol == "INE906B07CB9"
        assert positions[0].quantity == Decimal("2")


# =============================================================================
# VALUATION
# =============================================================================

class TestDayChange:
    """Tests for mark-to-market change since the previous price."""

    def test_no_previous_price_is_zero(self):
        """A position priced at 1200 with no previous price has no day change."""
        position = make_position("1", "1000", "1200", price="1200")

        assert day_change(position) == Decimal("0")

    def test_change_times_quantity(self):
        position = make_position("10", "1000", "1200", price="120", previous="100")

        assert day_change(position) == Decimal("200")

    def test_negative_change(self):
        position = make_position("10", "1000", "900", price="90", previous="100")

        assert day_change(position) == Decimal("-100")


class TestValuationEngine:
    """Tests for per-class and combined summaries."""

    def test_summarize_sums_active_positions(self):
        summary = ValuationEngine.summarize([
            make_position("10", "1000", "1200", price="120", previous="110"),
            make_position("5", "500", "450", price="90"),
        ])

        assert summary.total_investment == Decimal("1500")
        assert summary.total_current_value == Decimal("1650")
        assert summary.total_unrealized_pnl == Decimal("150")
        assert summary.total_day_change == Decimal("100")
        assert summary.position_count == 2

    def test_inactive_positions_are_ignored(self):
        """A fully exited position contributes nothing."""
        summary = ValuationEngine.summarize([
            make_position("0", "0", "0"),
            make_position("1", "100", "110"),
        ])

        assert summary.position_count == 1
        assert summary.total_current_value == Decimal("110")

    def test_recompute_pnl_uses_value_minus_investment(self):
        """Stored per-lot P&L is ignored when recompute_pnl is set."""
        position = make_position("10", "1000", "1300")
        position.unrealized_pnl = Decimal("0")

        assert ValuationEngine.summarize([position]).total_unrealized_pnl == Decimal("0")
        assert ValuationEngine.summarize([position], recompute_pnl=True).total_unrealized_pnl == Decimal("300")

    def test_empty_summary(self):
        summary = ValuationEngine.summarize([])

        assert summary == ValuationSummary()
        assert summary.pnl_percentage == Decimal("0")

    def test_pnl_percentage(self):
        summary = ValuationSummary(total_investment=Decimal("2000"), total_unrealized_pnl=Decimal("500"))

        assert summary.pnl_percentage == Decimal("25")

    def test_combine_adds_summaries(self):
        a = ValuationSummary(Decimal("100"), Decimal("150"), Decimal("50"), Decimal("5"), 1)
        b = ValuationSummary(Decimal("200"), Decimal("180"), Decimal("-20"), Decimal("-2"), 2)

        combined = ValuationEngine.combine(a, b)

        assert combined == ValuationSummary(Decimal("300"), Decimal("330"), Decimal("30"), Decimal("3"), 3)

    @pytest.mark.parametrize("recompute", [True, False])
    def test_day_change_independent_of_pnl_mode(self, recompute):
        summary = ValuationEngine.summarize(
            [make_position("2", "200", "220", price="110", previous="105")],
            recompute_pnl=recompute,
        )

        assert summary.total_day_change == Decimal("10")
