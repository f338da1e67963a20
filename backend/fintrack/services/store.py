# backend/fintrack/services/store.py
"""
Record store backed by SQLAlchemy.

The engine treats persistence as a generic table store: select, insert,
update and delete keyed by id. Each call runs in its own session and is
atomic on its own; nothing spans calls. Failures are returned as a
StoreError on the result rather than raised, so callers decide whether
a failure is fatal (writes) or tolerable (reads).

Usage:
    from fintrack.database import SessionLocal
    from fintrack.services.store import SqlAlchemyRecordStore

    store = SqlAlchemyRecordStore(SessionLocal)

    result = store.select("accounts")
    if result.error:
        logger.error(result.error.message)
    else:
        rows = result.data
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Mapping, TypeVar

from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from fintrack.models import (
    Base,
    Account,
    LedgerEntry,
    Goal,
    FamilyTransfer,
    Stock,
    StockTransaction,
    MutualFund,
    MutualFundTransaction,
    Bond,
    BondTransaction,
    FnoTrade,
    AppSettings,
)
from fintrack.services.exceptions import StoreOperationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Table name -> model. Keys are the names callers use in store calls.
TABLE_MODELS: dict[str, type[Base]] = {
    model.__tablename__: model
    for model in (
        Account,
        LedgerEntry,
        Goal,
        FamilyTransfer,
        Stock,
        StockTransaction,
        MutualFund,
        MutualFundTransaction,
        Bond,
        BondTransaction,
        FnoTrade,
        AppSettings,
    )
}


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class StoreError:
    """Failure reported by the record store."""

    message: str
    code: str | None = None


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    """
    Outcome of a single store call.

    Exactly one of data/error is meaningful: when error is set, data must
    not be trusted.
    """

    data: T | None = None
    error: StoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self, table: str, operation: str) -> T:
        """
        Return data or raise the error as a StoreOperationError.

        Args:
            table: Table name, for the error message
            operation: Operation name, for the error message

        Raises:
            StoreOperationError: If the call failed
        """
        if self.error is not None:
            raise StoreOperationError(
                f"{operation} on '{table}' failed: {self.error.message}",
                table=table,
                operation=operation,
                code=self.error.code,
            )
        return self.data  # type: ignore[return-value]


# =============================================================================
# SQLALCHEMY STORE
# =============================================================================

class SqlAlchemyRecordStore:
    """
    RecordStore implementation over a SQLAlchemy session factory.

    Rows cross the boundary as plain dicts; enum members are flattened to
    their values on the way out. Shape validation happens in the record
    DTO layer, not here.
    """

    def __init__(
            self,
            session_factory: Callable[[], Session],
            models: Mapping[str, type[Base]] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._models = dict(models or TABLE_MODELS)

    def select(self, table: str) -> StoreResult[list[dict[str, Any]]]:
        def op(session: Session, model: type[Base]) -> list[dict[str, Any]]:
            rows = session.scalars(select(model).order_by(model.id)).all()
            return [_row_to_dict(row) for row in rows]

        return self._run(table, "select", op)

    def insert(self, table: str, row: Mapping[str, Any]) -> StoreResult[dict[str, Any]]:
        def op(session: Session, model: type[Base]) -> dict[str, Any]:
            values = _known_columns(model, row)
            values.pop("id", None)
            obj = model(**values)
            session.add(obj)
            session.commit()
            session.refresh(obj)
            return _row_to_dict(obj)

        return self._run(table, "insert", op)

    def update(self, table: str, row_id: int, patch: Mapping[str, Any]) -> StoreResult[None]:
        def op(session: Session, model: type[Base]) -> None:
            obj = session.get(model, row_id)
            if obj is None:
                raise _MissingRow(table, row_id)
            for key, value in _known_columns(model, patch).items():
                if key != "id":
                    setattr(obj, key, value)
            session.commit()

        return self._run(table, "update", op)

    def delete(self, table: str, row_id: int) -> StoreResult[None]:
        def op(session: Session, model: type[Base]) -> None:
            obj = session.get(model, row_id)
            if obj is None:
                raise _MissingRow(table, row_id)
            session.delete(obj)
            session.commit()

        return self._run(table, "delete", op)

    # =========================================================================
    # PRIVATE
    # =========================================================================

    def _run(
            self,
            table: str,
            operation: str,
            op: Callable[[Session, type[Base]], T],
    ) -> StoreResult[T]:
        model = self._models.get(table)
        if model is None:
            return StoreResult(error=StoreError(f"Unknown table '{table}'", code="unknown_table"))

        session = self._session_factory()
        try:
            return StoreResult(data=op(session, model))
        except _MissingRow as e:
            session.rollback()
            return StoreResult(error=StoreError(str(e), code="not_found"))
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Store {operation} on '{table}' failed: {e}")
            return StoreResult(error=StoreError(str(e), code=type(e).__name__))
        finally:
            session.close()


class _MissingRow(Exception):
    def __init__(self, table: str, row_id: int) -> None:
        super().__init__(f"No row with id {row_id} in '{table}'")


def _known_columns(model: type[Base], row: Mapping[str, Any]) -> dict[str, Any]:
    columns = {attr.key for attr in inspect(model).column_attrs}
    return {key: value for key, value in row.items() if key in columns}


def _row_to_dict(obj: Base) -> dict[str, Any]:
    result = {}
    for attr in inspect(type(obj)).column_attrs:
        value = getattr(obj, attr.key)
        if isinstance(value, enum.Enum):
            value = value.value
        result[attr.key] = value
    return result
