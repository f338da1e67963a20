# backend/tests/services/test_ledger.py
"""
Tests for the account ledger and the compensating saga.

Every balance change must leave exactly one ledger entry behind, and a
failed multi-step write must leave neither the store nor memory half
updated.
"""

from decimal import Decimal

import pytest

from fintrack.models import LedgerEntryType
from fintrack.schemas.records import AccountRecord
from fintrack.services.exceptions import (
    AccountNotFoundError,
    CompensationError,
    InsufficientFundsError,
    StoreOperationError,
    ValidationError,
)
from fintrack.services.ledger import BalanceSaga, ReconciliationResult
from fintrack.services.store import StoreError, StoreResult


# =============================================================================
# SAGA
# =============================================================================

class TestBalanceSaga:
    """Tests for ordered steps with compensations."""

    def test_commit_runs_callbacks_in_order(self):
        """on_commit callbacks run once the block exits cleanly."""
        events = []

        with BalanceSaga("ok") as saga:
            saga.run("a", lambda: events.append("a"))
            saga.on_commit(lambda: events.append("commit-1"))
            saga.on_commit(lambda: events.append("commit-2"))
            assert events == ["a"]

        assert events == ["a", "commit-1", "commit-2"]

    def test_failure_compensates_newest_first_and_reraises(self):
        events = []

        with pytest.raises(RuntimeError, match="step 3 broke"):
            with BalanceSaga("broken") as saga:
                saga.run("one", lambda: 1, compensate=lambda r: events.append(f"undo-one:{r}"))
                saga.run("two", lambda: 2, compensate=lambda r: events.append(f"undo-two:{r}"))
                saga.on_commit(lambda: events.append("commit"))
                raise RuntimeError("step 3 broke")

        assert events == ["undo-two:2", "undo-one:1"]

    def test_failed_step_registers_no_compensation(self):
        undone = []

        def explode():
            raise ValueError("nope")

        with pytest.raises(ValueError):
            with BalanceSaga("partial") as saga:
                saga.run("fine", lambda: "x", compensate=lambda r: undone.append("fine"))
                saga.run("bad", explode, compensate=lambda r: undone.append("bad"))

        assert undone == ["fine"]

    def test_failed_compensation_raises_compensation_error(self):
        """Every undo is attempted; the first failing step is reported."""
        undone = []

        with pytest.raises(CompensationError) as exc_info:
            with BalanceSaga("double fault") as saga:
                saga.run("first", lambda: None, compensate=lambda _: undone.append("first"))
                saga.run(
                    "second",
                    lambda: None,
                    compensate=lambda _: StoreResult(error=StoreError("still down")),
                )
                raise RuntimeError("original")

        assert exc_info.value.step == "second"
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert undone == ["first"]


# =============================================================================
# LEDGER
# =============================================================================

class TestRecordBalanceChange:
    """Tests for AccountLedger.record_balance_change()."""

    def test_opening_balance_is_logged(self, state, account):
        """Creating an account with a balance writes an Initial Deposit entry."""
        assert account.balance == Decimal("100000")
        entry = state.data.ledger[0]
        assert entry.account_id == account.id
        assert entry.type == LedgerEntryType.INCOME
        assert entry.amount == Decimal("100000")
        assert entry.category == "Initial Deposit"
        assert entry.description == "Initial Balance - HDFC Savings"

    def test_zero_opening_balance_writes_no_entry(self, state):
        created = state.add_account(AccountRecord(name="Empty"))

        assert created.balance == Decimal("0")
        assert state.data.ledger == []

    def test_debit_writes_expense_entry(self, state, store, account):
        entry = state.ledger.record_balance_change(account.id, Decimal("-2500"), "Rent", "Housing")

        assert entry.type == LedgerEntryType.EXPENSE
        assert entry.amount == Decimal("2500")
        assert state.data.get_account(account.id).balance == Decimal("97500")
        assert store.rows("accounts")[0]["balance"] == Decimal("97500")
        # Newest first
        assert state.data.ledger[0] == entry

    def test_zero_delta_is_rejected_before_any_write(self, state, store, account):
        updates = store.count("accounts", "update")

        with pytest.raises(ValidationError):
            state.ledger.record_balance_change(account.id, Decimal("0"), "Nothing", "Misc")

        assert store.count("accounts", "update") == updates

    def test_unknown_account(self, state):
        with pytest.raises(AccountNotFoundError):
            state.ledger.record_balance_change(99, Decimal("10"), "Ghost", "Misc")

    def test_ledger_insert_failure_restores_balance(self, state, store, account):
        """The balance update is undone when the ledger entry cannot be written."""
        store.fail("transactions", "insert")

        with pytest.raises(StoreOperationError):
            state.ledger.record_balance_change(account.id, Decimal("-500"), "Coffee", "Food")

        assert store.rows("accounts")[0]["balance"] == Decimal("100000")
        assert state.data.get_account(account.id).balance == Decimal("100000")
        assert len(state.data.ledger) == 1

    def test_balance_update_failure_writes_nothing(self, state, store, account):
        store.fail("accounts", "update")

        with pytest.raises(StoreOperationError) as exc_info:
            state.ledger.record_balance_change(account.id, Decimal("100"), "Gift", "Income")

        assert exc_info.value.table == "accounts"
        assert exc_info.value.operation == "update"
        assert store.count("transactions", "insert") == 1

    def test_failed_undo_raises_compensation_error(self, state, store, account):
        """Ledger insert fails, then restoring the balance fails too."""
        store.fail("transactions", "insert")
        store.fail("accounts", "update", after=1)

        with pytest.raises(CompensationError) as exc_info:
            state.ledger.record_balance_change(account.id, Decimal("-500"), "Coffee", "Food")

        assert exc_info.value.step == "update account balance"
        assert isinstance(exc_info.value.cause, StoreOperationError)


class TestEnsureFunds:

    def test_enough_funds(self, state, account):
        state.ledger.ensure_funds(account.id, Decimal("100000"))

    def test_insufficient_funds(self, state, account):
        with pytest.raises(InsufficientFundsError) as exc_info:
            state.ledger.ensure_funds(account.id, Decimal("100000.01"))

        assert exc_info.value.available == Decimal("100000")
        assert exc_info.value.required == Decimal("100000.01")


class TestReconcile:

    def test_balanced_after_mixed_activity(self, state, account):
        state.ledger.record_balance_change(account.id, Decimal("-1200"), "Groceries", "Food")
        state.ledger.record_balance_change(account.id, Decimal("5000"), "Salary", "Income")

        result = state.reconcile(account.id)

        assert result.ledger_net == Decimal("103800")
        assert result.actual_balance == Decimal("103800")
        assert result.balanced

    def test_reports_difference(self):
        result = ReconciliationResult(
            account_id=1,
            opening_balance=Decimal("1000"),
            ledger_net=Decimal("200"),
            expected_balance=Decimal("1200"),
            actual_balance=Decimal("1150"),
        )

        assert result.difference == Decimal("-50")
        assert not result.balanced

    def test_opening_balance_shifts_expectation(self, state, account):
        result = state.reconcile(account.id, opening_balance=Decimal("10"))

        assert result.expected_balance == Decimal("100010")
        assert result.difference == Decimal("-10")

    def test_entries_of_other_accounts_are_ignored(self, state, account):
        other = state.add_account(AccountRecord(name="ICICI", balance=Decimal("500")))

        assert state.reconcile(account.id).ledger_net == Decimal("100000")
        assert state.reconcile(other.id).ledger_net == Decimal("500")
