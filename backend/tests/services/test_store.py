# backend/tests/services/test_store.py
"""
Tests for SqlAlchemyRecordStore against in-memory SQLite.

Test Coverage:
- CRUD by id, with results instead of exceptions
- Enum flattening and unknown-column filtering
- Error codes: unknown_table, not_found, database errors
- A FinanceState round trip through the database
"""

from datetime import date
from decimal import Decimal

import pytest

from fintrack.models import Currency, LedgerEntryType
from fintrack.schemas.records import AccountRecord
from fintrack.services.exceptions import StoreOperationError
from fintrack.services.finance_state import FinanceState
from fintrack.services.store import SqlAlchemyRecordStore, StoreError, StoreResult


@pytest.fixture
def sql_store(session_factory) -> SqlAlchemyRecordStore:
    return SqlAlchemyRecordStore(session_factory)


class TestStoreResult:

    def test_unwrap_returns_data(self):
        assert StoreResult(data=[1]).unwrap("t", "select") == [1]

    def test_unwrap_raises_with_context(self):
        result = StoreResult(error=StoreError("disk full", code="E1"))

        with pytest.raises(StoreOperationError) as exc_info:
            result.unwrap("accounts", "insert")

        assert not result.ok
        assert exc_info.value.table == "accounts"
        assert exc_info.value.operation == "insert"
        assert exc_info.value.code == "E1"
        assert "disk full" in str(exc_info.value)


class TestSqlAlchemyRecordStore:
    """Tests for the SQLAlchemy-backed record store."""

    def test_insert_assigns_id_and_flattens_enums(self, sql_store):
        result = sql_store.insert("accounts", {"name": "Cash", "balance": Decimal("10"), "currency": Currency.USD})

        assert result.ok
        assert result.data["id"] == 1
        assert result.data["currency"] == "USD"
        assert result.data["type"] == "Savings"

    def test_insert_ignores_unknown_keys_and_given_id(self, sql_store):
        result = sql_store.insert("goals", {"id": 99, "name": "Car", "target_amount": Decimal("1"), "extra": "x"})

        assert result.data["id"] == 1
        assert "extra" not in result.data

    def test_select_orders_by_id(self, sql_store):
        for name in ("B", "A", "C"):
            sql_store.insert("goals", {"name": name, "target_amount": Decimal("1")})

        rows = sql_store.select("goals").data

        assert [r["name"] for r in rows] == ["B", "A", "C"]

    def test_update(self, sql_store):
        sql_store.insert("accounts", {"name": "Cash", "balance": Decimal("10")})

        result = sql_store.update("accounts", 1, {"balance": Decimal("25.5"), "id": 7})

        assert result.ok
        row = sql_store.select("accounts").data[0]
        assert row["id"] == 1
        assert row["balance"] == Decimal("25.5")

    def test_update_missing_row(self, sql_store):
        result = sql_store.update("accounts", 5, {"balance": Decimal("1")})

        assert result.error.code == "not_found"

    def test_delete(self, sql_store):
        sql_store.insert("goals", {"name": "Car", "target_amount": Decimal("1")})

        assert sql_store.delete("goals", 1).ok
        assert sql_store.select("goals").data == []
        assert sql_store.delete("goals", 1).error.code == "not_found"

    def test_unknown_table(self, sql_store):
        result = sql_store.select("crypto")

        assert result.error.code == "unknown_table"

    def test_database_error_is_returned(self, sql_store):
        """A NOT NULL violation comes back as an error; the store stays usable."""
        result = sql_store.insert("accounts", {"balance": Decimal("1")})

        assert not result.ok
        assert result.error.code == "IntegrityError"
        assert sql_store.insert("accounts", {"name": "Cash"}).ok


class TestFinanceStateRoundTrip:
    """FinanceState writes survive a reload from the database."""

    def test_reload_reproduces_state(self, sql_store):
        state = FinanceState(sql_store, max_workers=1)
        state.load_all()
        state.data.settings = state.settings.model_copy(update={"auto_calculate_charges": False})
        account = state.add_account(AccountRecord(name="HDFC", balance=Decimal("50000")))
        state.record_stock_trade("TCS", "buy", Decimal("5"), Decimal("3500"), date(2026, 2, 1), account.id)

        reloaded = FinanceState(sql_store, max_workers=1)
        report = reloaded.load_all()

        assert report.ok
        assert report.rejected == {}
        assert reloaded.data.get_account(account.id).balance == Decimal("32500")
        assert [e.type for e in reloaded.data.ledger] == [LedgerEntryType.EXPENSE, LedgerEntryType.INCOME]
        assert reloaded.stock_positions()[0].quantity == Decimal("5")
        assert reloaded.reconcile(account.id).balanced
