# backend/fintrack/services/portfolio/types.py
"""
Internal data types for the portfolio engine.

These dataclasses are used by the aggregator and calculators. They are NOT
Pydantic schemas; API serialization lives in fintrack/schemas/holdings.py
and fintrack/schemas/dashboard.py.

Design Principles:
- Use Decimal for ALL financial values (never float)
- Lots are immutable inputs; Position is the mutable fold accumulator
- A missing previous price is None, never 0

Type Hierarchy:
    Lot                 - One stored ownership record, before aggregation
    Position            - Merged holding for one (symbol, venue)
    ValuationSummary    - Aggregate value, cost, P&L and day change
    LifetimeBreakdown   - Cash-flow reconstruction for one asset class
    FnoStats            - Closed/open trade statistics
    AllocationSlice     - One labelled share of net worth
    DashboardMetrics    - Top-level composed figures
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

ZERO = Decimal("0")
HUNDRED = Decimal("100")


# =============================================================================
# LOTS AND POSITIONS
# =============================================================================

@dataclass(frozen=True)
class Lot:
    """
    One stored ownership record of an instrument.

    Attributes:
        symbol: Ticker, scheme name or ISIN depending on asset class
        venue: Exchange, or None for classes without a venue
        quantity: Units held by this lot
        cost_basis: Total amount paid for the lot
        current_price: Latest known price
        previous_price: Prior close, None when unknown
        current_value: Stored quantity × current price
        unrealized_pnl: Stored current value − cost basis
        avg_cost: Stored average cost, derived when None
        pnl_percentage: Stored P&L %, derived when None
        source_id: Row id the lot came from
        name: Display name (company or scheme name)
    """

    symbol: str
    venue: str | None
    quantity: Decimal
    cost_basis: Decimal
    current_price: Decimal
    previous_price: Decimal | None
    current_value: Decimal
    unrealized_pnl: Decimal
    avg_cost: Decimal | None = None
    pnl_percentage: Decimal | None = None
    source_id: int | None = None
    name: str | None = None


@dataclass
class Position:
    """
    The aggregated holding of one instrument at one venue.

    Mutated in place while lots are folded in; treat as read-only once
    returned by the aggregator.
    """

    symbol: str
    venue: str
    quantity: Decimal
    cost_basis: Decimal
    avg_cost: Decimal
    current_price: Decimal
    previous_price: Decimal | None
    current_value: Decimal
    unrealized_pnl: Decimal
    pnl_percentage: Decimal
    name: str | None = None
    source_ids: list[int] = field(default_factory=list)

    @classmethod
    def from_lot(cls, lot: Lot, venue: str) -> Position:
        """Copy a lot into a fresh accumulator, deriving any unset ratios."""
        avg_cost = lot.avg_cost
        if avg_cost is None:
            avg_cost = lot.cost_basis / lot.quantity if lot.quantity > ZERO else ZERO

        pnl_percentage = lot.pnl_percentage
        if pnl_percentage is None:
            pnl_percentage = (
                lot.unrealized_pnl / lot.cost_basis * HUNDRED if lot.cost_basis > ZERO else ZERO
            )

        return cls(
            symbol=lot.symbol,
            venue=venue,
            quantity=lot.quantity,
            cost_basis=lot.cost_basis,
            avg_cost=avg_cost,
            current_price=lot.current_price,
            previous_price=lot.previous_price,
            current_value=lot.current_value,
            unrealized_pnl=lot.unrealized_pnl,
            pnl_percentage=pnl_percentage,
            name=lot.name,
            source_ids=[lot.source_id] if lot.source_id is not None else [],
        )

    @property
    def is_active(self) -> bool:
        """Closed positions (quantity 0) are excluded from every active view."""
        return self.quantity > ZERO


# =============================================================================
# AGGREGATE RESULTS
# =============================================================================

@dataclass(frozen=True)
class ValuationSummary:
    """
    Totals over the active positions of one or more asset classes.

    Attributes:
        total_investment: Σ cost basis
        total_current_value: Σ current value
        total_unrealized_pnl: Σ unrealized P&L (or value − investment)
        total_day_change: Σ (current − previous) × quantity
        position_count: Number of active positions counted
    """

    total_investment: Decimal = ZERO
    total_current_value: Decimal = ZERO
    total_unrealized_pnl: Decimal = ZERO
    total_day_change: Decimal = ZERO
    position_count: int = 0

    @property
    def pnl_percentage(self) -> Decimal:
        if self.total_investment <= ZERO:
            return ZERO
        return self.total_unrealized_pnl / self.total_investment * HUNDRED


@dataclass(frozen=True)
class LifetimeBreakdown:
    """
    Cash-flow reconstruction of wealth created by one asset class.

    lifetime = sells + current_value − (buys + charges)
    """

    asset_class: str
    buys: Decimal = ZERO
    sells: Decimal = ZERO
    charges: Decimal = ZERO
    current_value: Decimal = ZERO

    @property
    def lifetime(self) -> Decimal:
        return self.sells + self.current_value - (self.buys + self.charges)

    @property
    def return_percentage(self) -> Decimal:
        """Lifetime earned relative to total money put in; 0 with no buys."""
        if self.buys <= ZERO:
            return ZERO
        return self.lifetime / self.buys * HUNDRED


@dataclass(frozen=True)
class FnoStats:
    closed_trades: int = 0
    open_trades: int = 0
    win_trades: int = 0
    loss_trades: int = 0
    realized_pnl: Decimal = ZERO

    @property
    def win_rate(self) -> Decimal:
        if self.closed_trades == 0:
            return ZERO
        return Decimal(self.win_trades) / Decimal(self.closed_trades) * HUNDRED


@dataclass(frozen=True)
class AllocationSlice:
    label: str
    value: Decimal
    percentage: Decimal


@dataclass(frozen=True)
class DashboardMetrics:
    """
    Top-level figures shown on the dashboard.

    Attributes:
        liquidity: Σ balances of base-currency accounts
        net_worth: liquidity + enabled asset-class values
        class_values: Current value per enabled asset class
        valuation: Combined summary across enabled classes
        lifetime_by_class: Lifetime earned per class (incl. "F&O")
        total_lifetime: Σ lifetime_by_class
        allocation: Non-zero slices of net worth
        base_currency: Currency the figures are reported in
    """

    liquidity: Decimal
    net_worth: Decimal
    class_values: dict[str, Decimal]
    valuation: ValuationSummary
    lifetime_by_class: dict[str, Decimal]
    total_lifetime: Decimal
    allocation: list[AllocationSlice]
    base_currency: str
