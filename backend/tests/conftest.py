# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database engine fixtures (in-memory SQLite)
- InMemoryRecordStore, a dict-backed RecordStore with injectable failures
- FinanceState fixtures (empty and with a funded account)
- A TestClient wired to the test state
- Sample row factories
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("APP_NAME", "Test App")

import itertools
from datetime import date
from decimal import Decimal
from typing import Any, Iterator, Mapping

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from fintrack import main
from fintrack.dependencies import get_finance_state
from fintrack.middleware.rate_limit import limiter, search_gate_limiter
from fintrack.models import Base
from fintrack.schemas.records import AccountRecord, AppSettingsRecord
from fintrack.services.finance_state import FinanceState
from fintrack.services.store import StoreError, StoreResult


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory) -> Iterator[Session]:
    """Create a database session for testing."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# IN-MEMORY RECORD STORE
# =============================================================================

class InMemoryRecordStore:
    """
    Dict-backed RecordStore for testing.

    Ids are assigned per table starting at 1. Any (table, operation) pair
    can be made to fail with fail(), optionally after letting a few more
    calls through, to break a saga part-way through.
    """

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self._ids: dict[str, itertools.count] = {}
        self._failures: dict[tuple[str, str], tuple[str, int]] = {}
        self.calls: list[tuple[str, str]] = []

    def seed(self, table: str, *rows: Mapping[str, Any]) -> None:
        """Insert rows directly, bypassing failure injection."""
        for row in rows:
            stored = dict(row)
            if "id" not in stored:
                stored["id"] = next(self._counter(table))
            self.tables.setdefault(table, []).append(stored)

    def fail(self, table: str, operation: str, message: str = "store unavailable", after: int = 0) -> None:
        """Make `operation` on `table` fail from now on, letting the next `after` calls through."""
        self._failures[(table, operation)] = (message, self.count(table, operation) + after)

    def heal(self) -> None:
        self._failures.clear()

    def rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables.get(table, [])

    def count(self, table: str, operation: str) -> int:
        return self.calls.count((table, operation))

    # RecordStore protocol

    def select(self, table: str) -> StoreResult:
        error = self._check(table, "select")
        if error:
            return error
        return StoreResult(data=[dict(r) for r in self.rows(table)])

    def insert(self, table: str, row: Mapping[str, Any]) -> StoreResult:
        error = self._check(table, "insert")
        if error:
            return error
        stored = {**dict(row), "id": next(self._counter(table))}
        self.tables.setdefault(table, []).append(stored)
        return StoreResult(data=dict(stored))

    def update(self, table: str, row_id: int, patch: Mapping[str, Any]) -> StoreResult:
        error = self._check(table, "update")
        if error:
            return error
        for row in self.rows(table):
            if row["id"] == row_id:
                row.update(patch)
                return StoreResult(data=None)
        return StoreResult(error=StoreError(f"No row with id {row_id} in '{table}'", code="not_found"))

    def delete(self, table: str, row_id: int) -> StoreResult:
        error = self._check(table, "delete")
        if error:
            return error
        before = len(self.rows(table))
        self.tables[table] = [r for r in self.rows(table) if r["id"] != row_id]
        if len(self.tables[table]) == before:
            return StoreResult(error=StoreError(f"No row with id {row_id} in '{table}'", code="not_found"))
        return StoreResult(data=None)

    def _counter(self, table: str) -> itertools.count:
        if table not in self._ids:
            existing = [r["id"] for r in self.tables.get(table, [])]
            self._ids[table] = itertools.count(max(existing, default=0) + 1)
        return self._ids[table]

    def _check(self, table: str, operation: str) -> StoreResult | None:
        self.calls.append((table, operation))
        failure = self._failures.get((table, operation))
        if failure is None:
            return None
        message, threshold = failure
        if self.count(table, operation) <= threshold:
            return None
        return StoreResult(error=StoreError(message, code="test_failure"))


@pytest.fixture
def store() -> InMemoryRecordStore:
    """Create a fresh empty record store for each test."""
    return InMemoryRecordStore()


# =============================================================================
# FINANCE STATE FIXTURES
# =============================================================================

@pytest.fixture
def state(store: InMemoryRecordStore) -> FinanceState:
    """
    Empty FinanceState with charge auto-calculation off.

    Trades then move exactly quantity × price, which keeps expected
    balances easy to read. Tests that need charges turn it back on.
    """
    finance = FinanceState(store, base_currency="INR", max_workers=2)
    finance.data.settings = AppSettingsRecord(auto_calculate_charges=False)
    return finance


@pytest.fixture
def account(state: FinanceState) -> AccountRecord:
    """An INR account opened with 100,000."""
    return state.add_account(AccountRecord(name="HDFC Savings", bank_name="HDFC", balance=Decimal("100000")))


# =============================================================================
# HTTP CLIENT
# =============================================================================

@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Route limits and the search gate count across tests otherwise."""
    limiter.reset()
    search_gate_limiter.reset()
    yield
    limiter.reset()
    search_gate_limiter.reset()


@pytest.fixture
def client(state: FinanceState, monkeypatch) -> Iterator[TestClient]:
    """TestClient whose routes, lifespan and health check all see the test state."""
    monkeypatch.setattr(main, "get_finance_state", lambda: state)
    main.app.dependency_overrides[get_finance_state] = lambda: state

    with TestClient(main.app) as c:
        yield c

    main.app.dependency_overrides.clear()


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

def stock_row(
        symbol: str = "TCS",
        exchange: str = "NSE",
        quantity: str = "10",
        avg_price: str = "100",
        current_price: str = "120",
        previous_price: str | None = None,
        **extra: Any,
) -> dict[str, Any]:
    """Factory for a stored stock lot row with consistent derived figures."""
    qty, avg, price = Decimal(quantity), Decimal(avg_price), Decimal(current_price)
    row = {
        "symbol": symbol,
        "company_name": f"{symbol} Ltd",
        "exchange": exchange,
        "quantity": qty,
        "avg_price": avg,
        "current_price": price,
        "previous_price": Decimal(previous_price) if previous_price is not None else None,
        "investment_amount": qty * avg,
        "current_value": qty * price,
        "pnl": qty * (price - avg),
        "pnl_percentage": (price - avg) / avg * 100 if avg else Decimal("0"),
    }
    row.update(extra)
    return row


def mutual_fund_row(
        name: str = "Parag Parikh Flexi Cap",
        units: str = "100",
        avg_nav: str = "50",
        current_nav: str = "60",
        **extra: Any,
) -> dict[str, Any]:
    units_d, avg, nav = Decimal(units), Decimal(avg_nav), Decimal(current_nav)
    row = {
        "name": name,
        "units": units_d,
        "avg_nav": avg,
        "current_nav": nav,
        "investment_amount": units_d * avg,
        "current_value": units_d * nav,
        "pnl": Decimal("0"),
    }
    row.update(extra)
    return row


def bond_row(
        name: str = "NHAI 2031",
        isin: str | None = "INE906B07CB9",
        quantity: str = "5",
        avg_price: str = "1000",
        current_price: str = "1010",
        **extra: Any,
) -> dict[str, Any]:
    qty, avg, price = Decimal(quantity), Decimal(avg_price), Decimal(current_price)
    row = {
        "name": name,
        "isin": isin,
        "face_value": Decimal("1000"),
        "coupon_rate": Decimal("7.5"),
        "quantity": qty,
        "avg_price": avg,
        "current_price": price,
        "investment_amount": qty * avg,
        "current_value": qty * price,
        "pnl": qty * (price - avg),
        "status": "ACTIVE",
    }
    row.update(extra)
    return row


def fno_row(
        instrument: str = "NIFTY 26JAN 24000 CE",
        status: str = "CLOSED",
        pnl: str = "0",
        **extra: Any,
) -> dict[str, Any]:
    row = {
        "instrument": instrument,
        "trade_type": "BUY",
        "quantity": Decimal("50"),
        "avg_price": Decimal("100"),
        "entry_date": date(2026, 1, 5),
        "status": status,
        "pnl": Decimal(pnl),
    }
    row.update(extra)
    return row
