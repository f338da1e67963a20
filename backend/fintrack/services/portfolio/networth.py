# backend/fintrack/services/portfolio/networth.py
"""
Net Worth Composer.

net_worth = liquidity + Σ enabled asset-class values

Liquidity counts only accounts held in the base currency; accounts in any
other currency are left out entirely (no FX conversion). A disabled asset
class contributes zero even if it holds positions.
"""

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal

from fintrack.schemas.records import AccountRecord
from fintrack.services.portfolio.types import AllocationSlice, ZERO, HUNDRED

logger = logging.getLogger(__name__)

CASH_LABEL = "Cash"

# Display order of allocation slices
ALLOCATION_ORDER = ("Cash", "Stocks", "Mutual Funds", "Bonds")


class NetWorthComposer:
    """
    Args:
        base_currency: ISO code of the reporting currency (e.g. "INR")
    """

    def __init__(self, base_currency: str = "INR") -> None:
        self.base_currency = base_currency.upper()

    def liquidity(self, accounts: Iterable[AccountRecord]) -> Decimal:
        total = ZERO
        skipped = 0
        for account in accounts:
            if account.currency.value.upper() == self.base_currency:
                total += account.balance
            else:
                skipped += 1
        if skipped:
            logger.debug(f"Excluded {skipped} non-{self.base_currency} accounts from liquidity")
        return total

    @staticmethod
    def class_values(
            values: Mapping[str, Decimal],
            enabled: Mapping[str, bool],
    ) -> dict[str, Decimal]:
        """Zero out classes whose feature flag is off; missing flags mean enabled."""
        return {
            name: (value if enabled.get(name, True) else ZERO)
            for name, value in values.items()
        }

    def net_worth(self, liquidity: Decimal, class_values: Mapping[str, Decimal]) -> Decimal:
        return liquidity + sum(class_values.values(), ZERO)

    @staticmethod
    def allocation(liquidity: Decimal, class_values: Mapping[str, Decimal]) -> list[AllocationSlice]:
        """
        Non-zero slices of net worth in display order.

        Percentages are shares of the sum of the positive slices.
        """
        values = {CASH_LABEL: liquidity, **class_values}
        ordered = [label for label in ALLOCATION_ORDER if label in values]
        ordered += [label for label in values if label not in ALLOCATION_ORDER]

        positive = [(label, values[label]) for label in ordered if values[label] > ZERO]
        total = sum((v for _, v in positive), ZERO)

        return [
            AllocationSlice(
                label=label,
                value=value,
                percentage=value / total * HUNDRED if total > ZERO else ZERO,
            )
            for label, value in positive
        ]
