# backend/tests/services/test_concurrency.py
"""
Tests for FinanceState under concurrent use.

Route handlers share one FinanceState across threadpool workers and the
scheduler refreshes holdings from its own thread.

Test Coverage:
- Concurrent purchases cannot overdraw an account
- Holdings refreshes during a running command
- FinanceData.prepend is idempotent by id
"""

import threading
import time
from decimal import Decimal

from fintrack.schemas.records import AccountRecord, AppSettingsRecord, StockRecord
from fintrack.services.exceptions import InsufficientFundsError
from fintrack.services.finance_data import FinanceData
from fintrack.services.finance_state import FinanceState
from tests.conftest import InMemoryRecordStore


class SlowAccountStore(InMemoryRecordStore):
    """Account updates take a while, widening the window between check and write."""

    def update(self, table, row_id, patch):
        if table == "accounts":
            time.sleep(0.05)
        return super().update(table, row_id, patch)


class RefreshingStore(InMemoryRecordStore):
    """Runs a callback when a stock transaction is inserted, like a scheduler tick mid-saga."""

    def __init__(self) -> None:
        super().__init__()
        self.on_stock_transaction = None

    def insert(self, table, row):
        if table == "stock_transactions" and self.on_stock_transaction is not None:
            self.on_stock_transaction()
        return super().insert(table, row)


def make_state(store: InMemoryRecordStore) -> FinanceState:
    state = FinanceState(store, max_workers=2)
    state.data.settings = AppSettingsRecord(auto_calculate_charges=False)
    return state


class TestConcurrentCommands:

    def test_parallel_buys_cannot_overdraw(self):
        """Two buys of 800 against 1000: one settles, the other is refused."""
        state = make_state(SlowAccountStore())
        account = state.add_account(AccountRecord(name="Broker", balance=Decimal("1000")))
        outcomes = []
        outcomes_lock = threading.Lock()

        def buy():
            try:
                state.record_stock_trade("TCS", "BUY", Decimal("8"), Decimal("100"), account_id=account.id)
                result = "ok"
            except InsufficientFundsError:
                result = "refused"
            with outcomes_lock:
                outcomes.append(result)

        threads = [threading.Thread(target=buy) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(outcomes) == ["ok", "refused"]
        assert state.data.get_account(account.id).balance == Decimal("200")
        assert state.store.rows("accounts")[0]["balance"] == Decimal("200")
        assert len(state.data.stocks) == 1
        assert state.reconcile(account.id).balanced

    def test_many_small_deposits_all_land(self):
        state = make_state(InMemoryRecordStore())
        account = state.add_account(AccountRecord(name="Savings"))

        def deposit():
            for _ in range(20):
                state.add_funds(account.id, Decimal("10"))

        threads = [threading.Thread(target=deposit) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert state.data.get_account(account.id).balance == Decimal("1000")
        assert len(state.ledger_entries(account.id)) == 100
        assert state.reconcile(account.id).balanced


class TestRefreshDuringCommand:

    def test_refresh_inside_a_saga_is_skipped(self):
        """A refresh landing between the lot insert and the commit does not duplicate the lot."""
        store = RefreshingStore()
        state = make_state(store)
        account = state.add_account(AccountRecord(name="Broker", balance=Decimal("10000")))
        refreshed = []
        store.on_stock_transaction = lambda: refreshed.append(state.refresh_holdings())

        state.record_stock_trade("TCS", "BUY", Decimal("5"), Decimal("100"), account_id=account.id)

        assert refreshed == [False]
        assert len(state.data.stocks) == 1
        positions = state.stock_positions()
        assert positions[0].quantity == Decimal("5")
        assert positions[0].source_ids == [state.data.stocks[0].id]

    def test_refresh_from_another_thread_waits_for_the_command(self):
        state = make_state(SlowAccountStore())
        account = state.add_account(AccountRecord(name="Broker", balance=Decimal("10000")))

        buyer = threading.Thread(
            target=state.record_stock_trade,
            args=("TCS", "BUY", Decimal("5"), Decimal("100")),
            kwargs={"account_id": account.id},
        )
        buyer.start()
        time.sleep(0.01)
        refresher = threading.Thread(target=state.refresh_holdings)
        refresher.start()
        buyer.join()
        refresher.join()

        assert len(state.data.stocks) == 1
        assert state.stock_positions()[0].quantity == Decimal("5")
        assert state.data.get_account(account.id).balance == Decimal("9500")


def lot(lot_id: int, symbol: str, quantity: str) -> StockRecord:
    qty = Decimal(quantity)
    return StockRecord(
        id=lot_id,
        symbol=symbol,
        quantity=qty,
        avg_price=Decimal("100"),
        current_price=Decimal("100"),
        investment_amount=qty * 100,
        current_value=qty * 100,
    )


class TestPrepend:

    def test_prepend_replaces_a_record_with_the_same_id(self):
        data = FinanceData()
        first = lot(1, "TCS", "5")
        data.prepend("stocks", first)

        data.prepend("stocks", first.model_copy(update={"quantity": Decimal("6")}))

        assert len(data.stocks) == 1
        assert data.stocks[0].quantity == Decimal("6")

    def test_prepend_puts_new_records_first(self):
        data = FinanceData()
        data.prepend("stocks", lot(1, "TCS", "5"))
        data.prepend("stocks", lot(2, "INFY", "1"))

        assert [s.id for s in data.stocks] == [2, 1]
