# backend/fintrack/services/ledger.py
"""
Account Balance Ledger.

Every operation that moves money in or out of an account goes through
record_balance_change(), which writes the new balance AND appends exactly
one ledger entry:

    delta > 0  → Income  entry for |delta|
    delta < 0  → Expense entry for |delta|

so that for each account:

    opening balance + Σ Income − Σ Expense == balance

Multi-step writes (balance update, ledger insert, domain insert) run inside
a BalanceSaga. Each completed store step registers an undo; if a later
step fails, the undos run newest-first and the original error propagates.
In-memory collections are only touched once every step has succeeded.

Usage:
    ledger = AccountLedger(store, data)

    ledger.ensure_funds(account_id, total)          # before any write
    with BalanceSaga("stock BUY") as saga:
        ledger.record_balance_change(account_id, -total, "Buy TCS", "Investment", saga=saga)
        row = saga.run(
            "insert stock transaction",
            lambda: store.insert("stock_transactions", row).unwrap("stock_transactions", "insert"),
            compensate=lambda saved: store.delete("stock_transactions", saved["id"]),
        )
        saga.on_commit(lambda: data.prepend("stock_transactions", parse_record(...)))
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, TypeVar

from fintrack.models import LedgerEntryType
from fintrack.schemas.records import AccountRecord, LedgerEntryRecord, parse_record, to_row
from fintrack.services.exceptions import (
    CompensationError,
    InsufficientFundsError,
    ValidationError,
)
from fintrack.services.finance_data import FinanceData
from fintrack.services.protocols import RecordStore
from fintrack.services.store import StoreResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

ZERO = Decimal("0")


# =============================================================================
# SAGA
# =============================================================================

class BalanceSaga:
    """
    Ordered store steps with compensating undos.

    Used as a context manager: leaving the block normally runs the
    on_commit callbacks; leaving it with an exception runs the
    compensations of completed steps in reverse and re-raises.

    Args:
        name: Label used in log messages
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._undo: list[tuple[str, Callable[[], StoreResult | None]]] = []
        self._on_commit: list[Callable[[], None]] = []

    def __enter__(self) -> "BalanceSaga":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is None:
            self.commit()
            return False
        if isinstance(exc, Exception):
            self.rollback(exc)
        return False

    def run(
            self,
            step: str,
            action: Callable[[], T],
            compensate: Callable[[T], StoreResult | None] | None = None,
    ) -> T:
        """
        Execute one step and remember how to undo it.

        The action must raise (e.g. via StoreResult.unwrap) on failure; a
        failed step registers no compensation.
        """
        result = action()
        if compensate is not None:
            self._undo.append((step, lambda: compensate(result)))
        logger.debug(f"Saga '{self.name}': step '{step}' done")
        return result

    def on_commit(self, callback: Callable[[], None]) -> None:
        self._on_commit.append(callback)

    def commit(self) -> None:
        callbacks, self._on_commit = self._on_commit, []
        self._undo.clear()
        for callback in callbacks:
            callback()

    def rollback(self, cause: Exception) -> None:
        """
        Undo completed steps newest-first.

        Every compensation is attempted even if an earlier one fails.

        Raises:
            CompensationError: If any compensation failed (chained to cause)
        """
        undo, self._undo = self._undo, []
        self._on_commit.clear()
        if not undo:
            return

        logger.warning(f"Saga '{self.name}' failed ({cause}); compensating {len(undo)} step(s)")
        failed_step: str | None = None
        for step, compensate in reversed(undo):
            try:
                outcome = compensate()
            except Exception as e:
                logger.error(f"Saga '{self.name}': compensation for '{step}' raised: {e}")
                failed_step = failed_step or step
                continue
            if outcome is not None and outcome.error is not None:
                logger.error(
                    f"Saga '{self.name}': compensation for '{step}' failed: {outcome.error.message}"
                )
                failed_step = failed_step or step

        if failed_step is not None:
            raise CompensationError(failed_step, cause) from cause


# =============================================================================
# LEDGER
# =============================================================================

@dataclass(frozen=True)
class ReconciliationResult:
    account_id: int
    opening_balance: Decimal
    ledger_net: Decimal
    expected_balance: Decimal
    actual_balance: Decimal

    @property
    def difference(self) -> Decimal:
        return self.actual_balance - self.expected_balance

    @property
    def balanced(self) -> bool:
        return self.difference == ZERO


class AccountLedger:
    """
    Writes balance changes and their ledger entries.

    Args:
        store: Record store for accounts and transactions tables
        data: Collections to update once writes succeed
    """

    def __init__(self, store: RecordStore, data: FinanceData) -> None:
        self.store = store
        self.data = data

    def ensure_funds(self, account_id: int, amount: Decimal) -> None:
        """
        Block a debit that would take the balance below zero.

        Called before any store write so a rejection leaves no trace.

        Raises:
            AccountNotFoundError: If the account is unknown
            InsufficientFundsError: If balance < amount
        """
        account = self.data.get_account(account_id)
        if account.balance < amount:
            logger.warning(
                f"Insufficient funds on account {account_id}: "
                f"balance={account.balance}, required={amount}"
            )
            raise InsufficientFundsError(account_id, account.balance, amount)

    def record_balance_change(
            self,
            account_id: int,
            delta: Decimal,
            description: str,
            category: str,
            entry_date: date | None = None,
            saga: BalanceSaga | None = None,
            account: AccountRecord | None = None,
    ) -> LedgerEntryRecord:
        """
        Apply delta to an account and append the matching ledger entry.

        Args:
            account_id: Account to change
            delta: Signed change; positive is Income, negative is Expense
            description: Ledger entry description
            category: Ledger entry category
            entry_date: Entry date, today when None
            saga: Enclosing saga; a private one is used when None
            account: The account as it stands before the change, for an
                account inserted earlier in the same saga (not yet in memory)

        Returns:
            The stored ledger entry

        Raises:
            ValidationError: If delta is zero
            AccountNotFoundError: If the account is unknown
            StoreOperationError: If either write fails (after compensation)
        """
        if delta == ZERO:
            raise ValidationError("Balance change must be non-zero", field="amount")

        if saga is None:
            with BalanceSaga(f"balance change on account {account_id}") as own:
                return self._apply(account_id, delta, description, category, entry_date, own, account)
        return self._apply(account_id, delta, description, category, entry_date, saga, account)

    def _apply(
            self,
            account_id: int,
            delta: Decimal,
            description: str,
            category: str,
            entry_date: date | None,
            saga: BalanceSaga,
            account: AccountRecord | None = None,
    ) -> LedgerEntryRecord:
        if account is None:
            account = self.data.get_account(account_id)
        old_balance = account.balance
        new_balance = old_balance + delta

        entry = LedgerEntryRecord(
            date=entry_date or date.today(),
            description=description,
            category=category,
            type=LedgerEntryType.INCOME if delta > ZERO else LedgerEntryType.EXPENSE,
            amount=abs(delta),
            account_id=account_id,
        )

        saga.run(
            "update account balance",
            lambda: self.store.update("accounts", account_id, {"balance": new_balance}).unwrap(
                "accounts", "update"
            ),
            compensate=lambda _: self.store.update("accounts", account_id, {"balance": old_balance}),
        )
        row: dict[str, Any] = saga.run(
            "insert ledger entry",
            lambda: self.store.insert("transactions", to_row(entry)).unwrap("transactions", "insert"),
            compensate=lambda saved: self.store.delete("transactions", saved["id"]),
        )
        saved = parse_record("transactions", row)

        def apply_in_memory() -> None:
            current = self.data.get_account(account_id)
            self.data.replace("accounts", current.model_copy(update={"balance": new_balance}))
            self.data.prepend("transactions", saved)
            logger.info(
                f"Recorded {saved.type.value} of {saved.amount} on account {account_id}: {description}",
                extra={"account_id": account_id, "category": category},
            )

        saga.on_commit(apply_in_memory)
        return saved  # type: ignore[return-value]

    def reconcile(self, account_id: int, opening_balance: Decimal = ZERO) -> ReconciliationResult:
        """
        Compare an account's balance with what its ledger entries imply.

        Accounts are created with balance 0 and their initial deposit is
        itself a ledger entry, so the default opening balance is 0.
        """
        account = self.data.get_account(account_id)
        net = sum(
            (e.signed_amount for e in self.data.ledger if e.account_id == account_id),
            ZERO,
        )
        return ReconciliationResult(
            account_id=account_id,
            opening_balance=opening_balance,
            ledger_net=net,
            expected_balance=opening_balance + net,
            actual_balance=account.balance,
        )
