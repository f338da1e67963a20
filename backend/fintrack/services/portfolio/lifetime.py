# backend/fintrack/services/portfolio/lifetime.py
"""
Lifetime Earnings Calculator.

Reconstructs the wealth an asset class has created from its cash flows
alone, without splitting lots into realized and unrealized parts:

    lifetime = sells + current_value − (buys + charges)

Each asset class declares which transaction types are outflows (money in),
which are inflows (money out), and how charges are modelled:

    stocks        BUY          | SELL                     | Σ(brokerage + taxes) over all txns
    mutual funds  BUY, SIP     | SELL                     | flat 0.00005 × buys (stamp duty)
    bonds         BUY          | SELL, MATURITY, INTEREST | none recorded

F&O is different: only CLOSED trades count, and each contributes its
stored pnl. OPEN trades carry a provisional pnl that must not be counted.

Usage:
    from fintrack.services.portfolio.lifetime import calc_lifetime_earned, CashFlow

    calc_lifetime_earned([CashFlow("BUY", Decimal("10000"))], Decimal("8000"))
    # Decimal("-2000")
"""

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from fintrack.models import FnoStatus
from fintrack.schemas.records import (
    BondTransactionRecord,
    FnoTradeRecord,
    MutualFundTransactionRecord,
    StockTransactionRecord,
)
from fintrack.services.constants import MF_STAMP_DUTY_RATE
from fintrack.services.portfolio.types import FnoStats, LifetimeBreakdown, ZERO

logger = logging.getLogger(__name__)


# =============================================================================
# INPUT AND RULES
# =============================================================================

@dataclass(frozen=True)
class CashFlow:
    """One historical transaction reduced to what the calculator needs."""

    type: str
    amount: Decimal
    brokerage: Decimal = ZERO
    taxes: Decimal = ZERO


class ChargeModel(str, enum.Enum):
    PER_TRANSACTION = "per_transaction"
    FLAT_LEVY = "flat_levy"
    NONE = "none"


@dataclass(frozen=True)
class AssetClassRules:
    name: str
    outflow_types: frozenset[str]
    inflow_types: frozenset[str]
    charge_model: ChargeModel
    levy_rate: Decimal = ZERO


STOCK_RULES = AssetClassRules(
    name="Stocks",
    outflow_types=frozenset({"BUY"}),
    inflow_types=frozenset({"SELL"}),
    charge_model=ChargeModel.PER_TRANSACTION,
)

MUTUAL_FUND_RULES = AssetClassRules(
    name="Mutual Funds",
    outflow_types=frozenset({"BUY", "SIP"}),
    inflow_types=frozenset({"SELL"}),
    charge_model=ChargeModel.FLAT_LEVY,
    levy_rate=MF_STAMP_DUTY_RATE,
)

BOND_RULES = AssetClassRules(
    name="Bonds",
    outflow_types=frozenset({"BUY"}),
    inflow_types=frozenset({"SELL", "MATURITY", "INTEREST"}),
    charge_model=ChargeModel.NONE,
)

FNO_CLASS_NAME = "F&O"


# =============================================================================
# CALCULATOR
# =============================================================================

class LifetimeCalculator:
    """Applies AssetClassRules to a transaction history."""

    @staticmethod
    def breakdown(
            flows: Iterable[CashFlow],
            current_value: Decimal,
            rules: AssetClassRules = STOCK_RULES,
    ) -> LifetimeBreakdown:
        """
        Split a class's history into buys, sells and charges.

        Args:
            flows: Every transaction of the class, any order
            current_value: Current aggregate value of the class's positions
            rules: Classification and charge model for the class

        Returns:
            LifetimeBreakdown whose .lifetime is the class figure
        """
        buys = ZERO
        sells = ZERO
        recorded_charges = ZERO

        for flow in flows:
            kind = flow.type.upper()
            if kind in rules.outflow_types:
                buys += flow.amount
            elif kind in rules.inflow_types:
                sells += flow.amount
            # Charges are read from every transaction, buy and sell alike
            recorded_charges += flow.brokerage + flow.taxes

        if rules.charge_model is ChargeModel.PER_TRANSACTION:
            charges = recorded_charges
        elif rules.charge_model is ChargeModel.FLAT_LEVY:
            charges = buys * rules.levy_rate
        else:
            charges = ZERO

        return LifetimeBreakdown(
            asset_class=rules.name,
            buys=buys,
            sells=sells,
            charges=charges,
            current_value=current_value,
        )

    @staticmethod
    def fno_lifetime(trades: Iterable[FnoTradeRecord]) -> Decimal:
        """Σ pnl over CLOSED trades only."""
        return sum((t.pnl for t in trades if t.status == FnoStatus.CLOSED), ZERO)

    @staticmethod
    def fno_stats(trades: Iterable[FnoTradeRecord]) -> FnoStats:
        """
        Trade counts and realized P&L.

        A closed trade with pnl > 0 is a win; pnl <= 0 counts as a loss.
        """
        closed = open_ = wins = losses = 0
        realized = ZERO
        for trade in trades:
            if trade.status != FnoStatus.CLOSED:
                open_ += 1
                continue
            closed += 1
            realized += trade.pnl
            if trade.pnl > ZERO:
                wins += 1
            else:
                losses += 1
        return FnoStats(
            closed_trades=closed,
            open_trades=open_,
            win_trades=wins,
            loss_trades=losses,
            realized_pnl=realized,
        )


def calc_lifetime_earned(
        flows: Iterable[CashFlow],
        current_value: Decimal,
        rules: AssetClassRules = STOCK_RULES,
) -> Decimal:
    """Lifetime earned for one class; stock rules unless told otherwise."""
    return LifetimeCalculator.breakdown(flows, current_value, rules).lifetime


def lifetime_return_pct(lifetime: Decimal, buys: Decimal) -> Decimal:
    """lifetime / buys × 100, or 0 when nothing was ever bought."""
    if buys <= ZERO:
        return ZERO
    return lifetime / buys * Decimal("100")


# =============================================================================
# RECORD ADAPTERS
# =============================================================================

def flows_from_stock_transactions(txns: Iterable[StockTransactionRecord]) -> list[CashFlow]:
    return [
        CashFlow(t.transaction_type.value, t.total_amount, t.brokerage, t.taxes)
        for t in txns
    ]


def flows_from_mutual_fund_transactions(txns: Iterable[MutualFundTransactionRecord]) -> list[CashFlow]:
    return [CashFlow(t.transaction_type.value, t.total_amount) for t in txns]


def flows_from_bond_transactions(txns: Iterable[BondTransactionRecord]) -> list[CashFlow]:
    return [CashFlow(t.transaction_type.value, t.total_amount) for t in txns]
