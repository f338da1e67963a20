# backend/fintrack/services/finance_data.py
"""
In-memory collections owned by FinanceState.

One list per store table, newest-first for appended records (matching the
order the dashboard shows them), plus the single settings record. Only
FinanceState and AccountLedger mutate these lists, and only after the
store has accepted the corresponding write.
"""

from dataclasses import dataclass, field
from typing import Any

from fintrack.schemas.records import (
    AccountRecord,
    AppSettingsRecord,
    BondRecord,
    BondTransactionRecord,
    FamilyTransferRecord,
    FnoTradeRecord,
    GoalRecord,
    LedgerEntryRecord,
    MutualFundRecord,
    MutualFundTransactionRecord,
    Record,
    StockRecord,
    StockTransactionRecord,
)
from fintrack.services.exceptions import AccountNotFoundError, EntityNotFoundError, ValidationError

# Store table name -> FinanceData attribute
TABLE_ATTRS: dict[str, str] = {
    "accounts": "accounts",
    "transactions": "ledger",
    "goals": "goals",
    "family_transfers": "family_transfers",
    "stocks": "stocks",
    "stock_transactions": "stock_transactions",
    "mutual_funds": "mutual_funds",
    "mutual_fund_transactions": "mutual_fund_transactions",
    "bonds": "bonds",
    "bond_transactions": "bond_transactions",
    "fno_trades": "fno_trades",
}


@dataclass
class FinanceData:
    accounts: list[AccountRecord] = field(default_factory=list)
    ledger: list[LedgerEntryRecord] = field(default_factory=list)
    goals: list[GoalRecord] = field(default_factory=list)
    family_transfers: list[FamilyTransferRecord] = field(default_factory=list)
    stocks: list[StockRecord] = field(default_factory=list)
    stock_transactions: list[StockTransactionRecord] = field(default_factory=list)
    mutual_funds: list[MutualFundRecord] = field(default_factory=list)
    mutual_fund_transactions: list[MutualFundTransactionRecord] = field(default_factory=list)
    bonds: list[BondRecord] = field(default_factory=list)
    bond_transactions: list[BondTransactionRecord] = field(default_factory=list)
    fno_trades: list[FnoTradeRecord] = field(default_factory=list)
    settings: AppSettingsRecord = field(default_factory=AppSettingsRecord)

    def collection(self, table: str) -> list[Any]:
        try:
            return getattr(self, TABLE_ATTRS[table])
        except KeyError:
            raise ValidationError(f"Unknown table '{table}'", field="table") from None

    def find(self, table: str, record_id: int) -> Record:
        """
        Raises:
            AccountNotFoundError: For a missing account
            EntityNotFoundError: For a missing row of any other table
        """
        for record in self.collection(table):
            if record.id == record_id:
                return record
        if table == "accounts":
            raise AccountNotFoundError(record_id)
        raise EntityNotFoundError(table, record_id)

    def get_account(self, account_id: int) -> AccountRecord:
        return self.find("accounts", account_id)  # type: ignore[return-value]

    def prepend(self, table: str, record: Record) -> None:
        """Add a new record at the front; a record already present by id is replaced in place."""
        items = self.collection(table)
        for index, existing in enumerate(items):
            if record.id is not None and existing.id == record.id:
                items[index] = record
                return
        items.insert(0, record)

    def replace(self, table: str, record: Record) -> None:
        items = self.collection(table)
        for index, existing in enumerate(items):
            if existing.id == record.id:
                items[index] = record
                return
        raise EntityNotFoundError(table, record.id or 0)

    def remove(self, table: str, record_id: int) -> None:
        items = self.collection(table)
        items[:] = [item for item in items if item.id != record_id]

    def set_collection(self, table: str, records: list[Record]) -> None:
        setattr(self, TABLE_ATTRS[table], records)
