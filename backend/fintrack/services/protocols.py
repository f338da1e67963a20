# backend/fintrack/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- SqlAlchemyRecordStore satisfies RecordStore without inheriting from it
- Test doubles such as the in-memory store in tests/conftest.py work the same way
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from fintrack.services.store import StoreResult


class RecordStore(Protocol):
    """
    Generic per-table record store.

    Every operation reports failure through StoreResult.error instead of
    raising; callers must check it before trusting StoreResult.data.
    """

    def select(self, table: str) -> StoreResult[list[dict[str, Any]]]:
        ...

    def insert(self, table: str, row: Mapping[str, Any]) -> StoreResult[dict[str, Any]]:
        ...

    def update(self, table: str, row_id: int, patch: Mapping[str, Any]) -> StoreResult[None]:
        ...

    def delete(self, table: str, row_id: int) -> StoreResult[None]:
        ...
