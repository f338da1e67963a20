# backend/fintrack/services/finance_state.py
"""
Finance State.

The composition root of the service layer. One FinanceState owns every
in-memory collection loaded from the record store and exposes typed
queries (positions, summaries, lifetime earnings, dashboard) and commands
(accounts, trades, goals, family transfers, F&O, deletion).

Every command that moves money goes through AccountLedger inside a
BalanceSaga, so a failed store write leaves neither the store nor memory
half-updated:

    validate input            → ValidationError, nothing written
    ensure_funds()            → InsufficientFundsError, nothing written
    saga: balance → ledger → domain rows
    commit                    → in-memory collections updated

Usage:
    state = FinanceState(SqlAlchemyRecordStore(SessionLocal))
    state.load_all()

    state.record_stock_trade("TCS", "BUY", Decimal("10"), Decimal("3500"), account_id=1)
    metrics = state.dashboard()
"""

import contextvars
import functools
import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar

from fintrack.models import (
    BondStatus,
    BondTransactionType,
    FnoStatus,
    FnoTradeType,
    MutualFundTransactionType,
    StockTransactionType,
)
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
    parse_record,
    parse_rows,
    to_patch,
    to_row,
)
from fintrack.services.constants import (
    CATEGORY_ADJUSTMENT,
    CATEGORY_DEPOSIT,
    CATEGORY_FAMILY,
    CATEGORY_GOAL,
    CATEGORY_INITIAL_DEPOSIT,
    CATEGORY_INVESTMENT,
    CATEGORY_TRANSFER,
    HUNDRED,
    ZERO,
)
from fintrack.services.exceptions import StoreOperationError, ValidationError
from fintrack.services.export import array_to_csv
from fintrack.services.finance_data import TABLE_ATTRS, FinanceData
from fintrack.services.ledger import AccountLedger, BalanceSaga, ReconciliationResult
from fintrack.services.portfolio import (
    BOND_RULES,
    MUTUAL_FUND_RULES,
    STOCK_RULES,
    DashboardMetrics,
    FnoStats,
    LifetimeBreakdown,
    LifetimeCalculator,
    NetWorthComposer,
    Position,
    ValuationEngine,
    ValuationSummary,
    flows_from_bond_transactions,
    flows_from_mutual_fund_transactions,
    flows_from_stock_transactions,
    goal_progress,
    group_positions,
    lots_from_bonds,
    lots_from_mutual_funds,
    lots_from_stocks,
)
from fintrack.services.portfolio.charges import (
    ChargeBreakdown,
    bond_charges,
    fno_charges,
    mutual_fund_charges,
    stock_charges,
)
from fintrack.services.portfolio.lifetime import FNO_CLASS_NAME
from fintrack.services.protocols import RecordStore

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)
E = TypeVar("E", bound=Enum)

SETTINGS_TABLE = "app_settings"
HOLDING_TABLES = ("stocks", "mutual_funds", "bonds")

STOCKS = STOCK_RULES.name
MUTUAL_FUNDS = MUTUAL_FUND_RULES.name
BONDS = BOND_RULES.name

LEDGER_CSV_HEADERS = ["date", "description", "category", "type", "amount"]

ACCOUNT_META_FIELDS = ("name", "bank_name", "type", "currency")

# Fields rewritten when a holding lot is reduced or repriced
STOCK_LOT_FIELDS = ("quantity", "investment_amount", "current_value", "pnl", "pnl_percentage")
MF_LOT_FIELDS = ("units", "investment_amount", "current_value", "pnl", "pnl_percentage")
BOND_LOT_FIELDS = (*STOCK_LOT_FIELDS, "status")
PRICE_FIELDS = ("current_price", "previous_price", "current_value", "pnl", "pnl_percentage")


@dataclass
class LoadReport:
    """Outcome of load_all(): which tables loaded, failed, or lost rows."""

    loaded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    rejected: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


@dataclass(frozen=True)
class GoalProgress:
    goal: GoalRecord
    progress: Decimal


# =============================================================================
# HELPERS
# =============================================================================

def _parse_enum(enum_type: type[E], value: Any, field_name: str = "transaction_type") -> E:
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_type)
        raise ValidationError(f"Invalid {field_name} '{value}' (expected one of: {allowed})", field=field_name) from None


def _require_positive(value: Decimal | None, field_name: str) -> Decimal:
    if value is None or value <= ZERO:
        raise ValidationError(f"{field_name} must be greater than 0", field=field_name)
    return value


def _revalue(quantity: Decimal, avg_cost: Decimal, price: Decimal) -> dict[str, Decimal]:
    """Derived lot figures for a quantity held at avg_cost and marked at price."""
    investment = quantity * avg_cost
    value = quantity * price
    pnl = value - investment
    return {
        "investment_amount": investment,
        "current_value": value,
        "pnl": pnl,
        "pnl_percentage": pnl / investment * HUNDRED if investment > ZERO else ZERO,
    }


def _matches_bond(bond: BondRecord, isin: str | None, name: str) -> bool:
    """Same ISIN when both sides carry one, otherwise same name ignoring case."""
    if isin and bond.isin:
        return bond.isin.upper() == isin.upper()
    return bond.name.lower() == name.lower()


def _synchronized(method):
    """Run a FinanceState method while holding the state lock."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


def _command(method):
    """Like _synchronized, and marks the state busy so refreshes wait their turn."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            self._active_commands += 1
            try:
                return method(self, *args, **kwargs)
            finally:
                self._active_commands -= 1

    return wrapper


def _fifo(lots: list[R], quantity_of: Callable[[R], Decimal], wanted: Decimal) -> list[tuple[R, Decimal]]:
    """
    Pick (lot, amount to take) pairs, oldest lot first.

    Raises:
        ValidationError: If the lots hold less than wanted
    """
    held = sum((quantity_of(lot) for lot in lots), ZERO)
    if wanted > held:
        raise ValidationError(f"Cannot sell {wanted}: only {held} held", field="quantity")

    picks: list[tuple[R, Decimal]] = []
    remaining = wanted
    for lot in sorted(lots, key=lambda r: r.id or 0):
        if remaining <= ZERO:
            break
        take = min(quantity_of(lot), remaining)
        picks.append((lot, take))
        remaining -= take
    return picks


# =============================================================================
# FINANCE STATE
# =============================================================================

class FinanceState:
    """
    In-memory finance state backed by a record store.

    Collections are newest-first. Memory is only changed after the store
    accepted the corresponding write.

    Thread Safety:
        Route handlers run in a threadpool and the scheduler refreshes from
        its own thread. A re-entrant lock is held for the whole of each
        command (validation, funds check, saga and commit), for loads and
        refreshes, and for derived queries. A refresh requested while a
        command is running on the same thread is skipped.

    Args:
        store: Record store implementation
        base_currency: Currency liquidity and net worth are reported in
        max_workers: Thread pool size for load_all()
    """

    def __init__(
            self,
            store: RecordStore,
            base_currency: str = "INR",
            max_workers: int = 8,
    ) -> None:
        self.store = store
        self.max_workers = max_workers
        self.data = FinanceData()
        self.ledger = AccountLedger(store, self.data)
        self.networth = NetWorthComposer(base_currency)
        self.loading = False
        self.last_load: LoadReport | None = None
        self._lock = threading.RLock()
        self._active_commands = 0

    @property
    def settings(self) -> AppSettingsRecord:
        return self.data.settings

    # =========================================================================
    # LOADING
    # =========================================================================

    @_synchronized
    def load_all(self) -> LoadReport:
        """
        Load every table concurrently.

        A table whose select fails is logged and left empty; the others
        still load. Rows failing validation are skipped. `loading` is True
        until every load has settled.
        """
        tables = [*TABLE_ATTRS, SETTINGS_TABLE]
        report = LoadReport()
        self.loading = True
        logger.info(f"Loading {len(tables)} tables")

        try:
            with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="fintrack-load") as pool:
                futures = {
                    pool.submit(contextvars.copy_context().run, self._fetch, table): table
                    for table in tables
                }
                for future in as_completed(futures):
                    table = futures[future]
                    try:
                        records, rejected = future.result()
                    except StoreOperationError as e:
                        logger.error(f"Failed to load {table}: {e.message}")
                        report.failed[table] = e.message
                        continue
                    except Exception as e:
                        logger.exception(f"Unexpected error loading {table}")
                        report.failed[table] = str(e)
                        continue

                    self._install(table, records)
                    report.loaded.append(table)
                    if rejected:
                        report.rejected[table] = len(rejected)
        finally:
            self.loading = False

        logger.info(
            f"Load finished: {len(report.loaded)} loaded, {len(report.failed)} failed, "
            f"{sum(report.rejected.values())} rows rejected"
        )
        self.last_load = report
        return report

    @_synchronized
    def refresh_holdings(self) -> bool:
        """
        Re-read the holding tables so externally written prices show up.

        A table that fails to reload keeps its current contents.

        Returns:
            False when skipped because a command is mid-saga
        """
        if self._active_commands:
            logger.debug("Skipping holdings refresh while a command is running")
            return False
        for table in HOLDING_TABLES:
            try:
                records, _ = self._fetch(table)
            except StoreOperationError as e:
                logger.warning(f"Refresh of {table} failed, keeping cached rows: {e.message}")
                continue
            self._install(table, records)
        logger.debug("Holdings refreshed")
        return True

    def _fetch(self, table: str) -> tuple[list[Record], list[Any]]:
        rows = self.store.select(table).unwrap(table, "select")
        return parse_rows(table, rows or [])

    def _install(self, table: str, records: list[Record]) -> None:
        if table == SETTINGS_TABLE:
            self.data.settings = records[0] if records else AppSettingsRecord()  # type: ignore[assignment]
            return
        # Store order is oldest-first
        self.data.set_collection(table, list(reversed(records)))

    # =========================================================================
    # QUERIES
    # =========================================================================

    @_synchronized
    def stock_positions(self) -> list[Position]:
        return group_positions(lots_from_stocks(self.data.stocks))

    @_synchronized
    def mutual_fund_positions(self) -> list[Position]:
        return group_positions(lots_from_mutual_funds(self.data.mutual_funds))

    @_synchronized
    def bond_positions(self) -> list[Position]:
        return group_positions(lots_from_bonds(self.data.bonds))

    @_synchronized
    def stock_summary(self) -> ValuationSummary:
        return ValuationEngine.summarize(self.stock_positions())

    @_synchronized
    def mutual_fund_summary(self) -> ValuationSummary:
        # Per-lot P&L is not maintained for funds
        return ValuationEngine.summarize(self.mutual_fund_positions(), recompute_pnl=True)

    @_synchronized
    def bond_summary(self) -> ValuationSummary:
        return ValuationEngine.summarize(self.bond_positions())

    def enabled_classes(self) -> dict[str, bool]:
        return {
            STOCKS: self.settings.stocks_enabled,
            MUTUAL_FUNDS: self.settings.mutual_funds_enabled,
            BONDS: self.settings.bonds_enabled,
        }

    @_synchronized
    def lifetime_breakdowns(self) -> dict[str, LifetimeBreakdown]:
        """Lifetime breakdown for each enabled holding class."""
        enabled = self.enabled_classes()
        breakdowns: dict[str, LifetimeBreakdown] = {}
        if enabled[STOCKS]:
            breakdowns[STOCKS] = LifetimeCalculator.breakdown(
                flows_from_stock_transactions(self.data.stock_transactions),
                self.stock_summary().total_current_value,
                STOCK_RULES,
            )
        if enabled[MUTUAL_FUNDS]:
            breakdowns[MUTUAL_FUNDS] = LifetimeCalculator.breakdown(
                flows_from_mutual_fund_transactions(self.data.mutual_fund_transactions),
                self.mutual_fund_summary().total_current_value,
                MUTUAL_FUND_RULES,
            )
        if enabled[BONDS]:
            breakdowns[BONDS] = LifetimeCalculator.breakdown(
                flows_from_bond_transactions(self.data.bond_transactions),
                self.bond_summary().total_current_value,
                BOND_RULES,
            )
        return breakdowns

    @_synchronized
    def fno_stats(self) -> FnoStats:
        return LifetimeCalculator.fno_stats(self.data.fno_trades)

    @_synchronized
    def dashboard(self) -> DashboardMetrics:
        """Compose liquidity, net worth, valuation, lifetime and allocation."""
        summaries = {
            STOCKS: self.stock_summary(),
            MUTUAL_FUNDS: self.mutual_fund_summary(),
            BONDS: self.bond_summary(),
        }
        enabled = self.enabled_classes()

        liquidity = self.networth.liquidity(self.data.accounts)
        class_values = NetWorthComposer.class_values(
            {name: s.total_current_value for name, s in summaries.items()},
            enabled,
        )
        valuation = ValuationEngine.combine(
            *(s for name, s in summaries.items() if enabled[name])
        )

        lifetime = {name: b.lifetime for name, b in self.lifetime_breakdowns().items()}
        if self.settings.fno_enabled:
            lifetime[FNO_CLASS_NAME] = LifetimeCalculator.fno_lifetime(self.data.fno_trades)

        return DashboardMetrics(
            liquidity=liquidity,
            net_worth=self.networth.net_worth(liquidity, class_values),
            class_values=class_values,
            valuation=valuation,
            lifetime_by_class=lifetime,
            total_lifetime=sum(lifetime.values(), ZERO),
            allocation=NetWorthComposer.allocation(liquidity, class_values),
            base_currency=self.networth.base_currency,
        )

    @_synchronized
    def goals_with_progress(self) -> list[GoalProgress]:
        return [
            GoalProgress(goal=g, progress=goal_progress(g.current_amount, g.target_amount))
            for g in self.data.goals
        ]

    @_synchronized
    def ledger_entries(self, account_id: int) -> list[LedgerEntryRecord]:
        """Ledger entries of one account, newest first."""
        self.data.get_account(account_id)
        return [e for e in self.data.ledger if e.account_id == account_id]

    @_synchronized
    def ledger_csv(self, account_id: int) -> str:
        rows = [e.model_dump(mode="json") for e in self.ledger_entries(account_id)]
        return array_to_csv(rows, headers=LEDGER_CSV_HEADERS)

    @_synchronized
    def reconcile(self, account_id: int, opening_balance: Decimal = ZERO) -> ReconciliationResult:
        return self.ledger.reconcile(account_id, opening_balance)

    def estimate_charges(
            self,
            asset_class: str,
            trade_type: str,
            quantity: Decimal,
            price: Decimal,
            instrument: str | None = None,
            exit_price: Decimal | None = None,
    ) -> ChargeBreakdown:
        """
        Charge estimate for a prospective trade.

        asset_class is one of "stock", "mutual_fund", "bond", "fno". For
        mutual funds price × quantity is the amount invested; for F&O
        price is the entry price and exit_price defaults to it.
        """
        kind = asset_class.lower()
        if kind == "stock":
            return stock_charges(trade_type, quantity, price, self.settings)
        if kind == "mutual_fund":
            return mutual_fund_charges(trade_type, quantity * price)
        if kind == "bond":
            return bond_charges(trade_type, quantity, price, self.settings)
        if kind == "fno":
            return fno_charges(quantity, price, exit_price if exit_price is not None else price, instrument or "")
        raise ValidationError(f"Unknown asset class '{asset_class}'", field="asset_class")

    # =========================================================================
    # STORE STEPS
    # =========================================================================

    def _insert(self, saga: BalanceSaga, table: str, record: R) -> R:
        """Insert inside a saga; the new record is prepended on commit."""
        row = saga.run(
            f"insert {table}",
            lambda: self.store.insert(table, to_row(record)).unwrap(table, "insert"),
            compensate=lambda saved: self.store.delete(table, saved["id"]),
        )
        saved = parse_record(table, row)
        saga.on_commit(lambda: self.data.prepend(table, saved))
        return saved  # type: ignore[return-value]

    def _update(self, saga: BalanceSaga, table: str, old: R, new: R, fields: tuple[str, ...]) -> R:
        """Patch fields inside a saga; the old values are restored on rollback."""
        saga.run(
            f"update {table} {old.id}",
            lambda: self.store.update(table, old.id, to_patch(new, *fields)).unwrap(table, "update"),
            compensate=lambda _: self.store.update(table, old.id, to_patch(old, *fields)),
        )
        saga.on_commit(lambda: self.data.replace(table, new))
        return new

    def _resolve_account(self, account_id: int | None, default_id: int | None) -> int | None:
        resolved = account_id if account_id is not None else default_id
        if resolved is not None:
            self.data.get_account(resolved)
        return resolved

    def _resolve_charges(
            self,
            brokerage: Decimal | None,
            taxes: Decimal | None,
            estimate: Callable[[], ChargeBreakdown],
    ) -> tuple[Decimal, Decimal]:
        if brokerage is None and taxes is None and self.settings.auto_calculate_charges:
            charges = estimate()
            return charges.brokerage, charges.taxes
        return brokerage or ZERO, taxes or ZERO

    # =========================================================================
    # ACCOUNTS
    # =========================================================================

    @_command
    def add_account(self, account: AccountRecord) -> AccountRecord:
        """
        Create an account.

        The row is inserted with balance 0 and any opening balance is then
        recorded as an "Initial Deposit" ledger entry, so the ledger alone
        explains the balance.
        """
        opening = account.balance
        with BalanceSaga(f"add account {account.name}") as saga:
            saved = self._insert(saga, "accounts", account.model_copy(update={"balance": ZERO}))
            if opening != ZERO:
                self.ledger.record_balance_change(
                    saved.id,
                    opening,
                    f"Initial Balance - {saved.name}",
                    CATEGORY_INITIAL_DEPOSIT,
                    saga=saga,
                    account=saved,
                )
        logger.info(f"Created account {saved.id} ({saved.name}) with balance {opening}")
        return self.data.get_account(saved.id)

    @_command
    def update_account(self, account_id: int, changes: dict[str, Any]) -> AccountRecord:
        """
        Update account metadata and/or balance.

        A balance change is never written directly: the difference is
        recorded as a "Balance Update" adjustment through the ledger.
        """
        current = self.data.get_account(account_id)
        meta = {k: v for k, v in changes.items() if k in ACCOUNT_META_FIELDS and v is not None}
        new_balance = changes.get("balance")

        with BalanceSaga(f"update account {account_id}") as saga:
            if meta:
                updated = AccountRecord.model_validate({**current.model_dump(), **meta})
                self._update(saga, "accounts", current, updated, tuple(meta))
            if new_balance is not None and Decimal(new_balance) != current.balance:
                self.ledger.record_balance_change(
                    account_id,
                    Decimal(new_balance) - current.balance,
                    f"Balance Update - {meta.get('name', current.name)}",
                    CATEGORY_ADJUSTMENT,
                    saga=saga,
                )
        return self.data.get_account(account_id)

    @_command
    def add_funds(
            self,
            account_id: int,
            amount: Decimal,
            description: str | None = None,
            category: str = CATEGORY_DEPOSIT,
            entry_date: date | None = None,
    ) -> LedgerEntryRecord:
        """Deposit (amount > 0) or withdraw (amount < 0) through the ledger."""
        account = self.data.get_account(account_id)
        if amount == ZERO:
            raise ValidationError("Amount must be non-zero", field="amount")
        if amount < ZERO:
            self.ledger.ensure_funds(account_id, -amount)
        default = f"Funds Added - {account.name}" if amount > ZERO else f"Withdrawal - {account.name}"
        return self.ledger.record_balance_change(
            account_id, amount, description or default, category, entry_date
        )

    @_command
    def transfer_funds(
            self,
            source_id: int,
            target_id: int,
            amount: Decimal,
            entry_date: date | None = None,
    ) -> tuple[LedgerEntryRecord, LedgerEntryRecord]:
        """Move money between two accounts of the same currency."""
        _require_positive(amount, "amount")
        if source_id == target_id:
            raise ValidationError("Source and target accounts must differ", field="target_id")
        source = self.data.get_account(source_id)
        target = self.data.get_account(target_id)
        if source.currency != target.currency:
            raise ValidationError(
                f"Cannot transfer {source.currency.value} to {target.currency.value}",
                field="target_id",
            )
        self.ledger.ensure_funds(source_id, amount)

        with BalanceSaga(f"transfer {source_id}->{target_id}") as saga:
            debit = self.ledger.record_balance_change(
                source_id, -amount, f"Transfer to {target.name}", CATEGORY_TRANSFER, entry_date, saga
            )
            credit = self.ledger.record_balance_change(
                target_id, amount, f"Transfer from {source.name}", CATEGORY_TRANSFER, entry_date, saga
            )
        return debit, credit

    # =========================================================================
    # STOCKS
    # =========================================================================

    @_command
    def record_stock_trade(
            self,
            symbol: str,
            transaction_type: str | StockTransactionType,
            quantity: Decimal,
            price: Decimal,
            transaction_date: date | None = None,
            account_id: int | None = None,
            exchange: str = "NSE",
            company_name: str | None = None,
            sector: str | None = None,
            brokerage: Decimal | None = None,
            taxes: Decimal | None = None,
            notes: str | None = None,
    ) -> StockTransactionRecord:
        """
        Settle a stock trade.

        BUY adds a new lot and debits total + charges. SELL reduces the
        oldest lots first (keeping their average cost) and credits
        total − charges. Reduced lots stay stored even at quantity 0.

        Raises:
            ValidationError: Bad input, or selling more than is held
            AccountNotFoundError: Unknown account
            InsufficientFundsError: BUY larger than the account balance
            StoreOperationError: A write failed (after compensation)
        """
        kind = _parse_enum(StockTransactionType, transaction_type)
        _require_positive(quantity, "quantity")
        _require_positive(price, "price")
        if not symbol or not symbol.strip():
            raise ValidationError("Symbol is required", field="symbol")
        symbol = symbol.strip().upper()
        exchange = (exchange or "NSE").strip().upper()
        account_id = self._resolve_account(account_id, self.settings.default_stock_account_id)
        trade_date = transaction_date or date.today()

        total = quantity * price
        brokerage, taxes = self._resolve_charges(
            brokerage, taxes, lambda: stock_charges(kind.value, quantity, price, self.settings)
        )
        charges = brokerage + taxes

        if kind is StockTransactionType.BUY:
            if account_id is not None:
                self.ledger.ensure_funds(account_id, total + charges)
            with BalanceSaga(f"stock BUY {symbol}") as saga:
                if account_id is not None:
                    self.ledger.record_balance_change(
                        account_id, -(total + charges), f"Buy {quantity} {symbol}",
                        CATEGORY_INVESTMENT, trade_date, saga,
                    )
                lot = self._insert(saga, "stocks", StockRecord(
                    symbol=symbol,
                    company_name=company_name,
                    exchange=exchange,
                    sector=sector,
                    quantity=quantity,
                    avg_price=price,
                    current_price=price,
                    investment_amount=total,
                    current_value=total,
                ))
                txn = self._insert(saga, "stock_transactions", StockTransactionRecord(
                    stock_id=lot.id,
                    transaction_type=kind,
                    quantity=quantity,
                    price=price,
                    total_amount=total,
                    brokerage=brokerage,
                    taxes=taxes,
                    transaction_date=trade_date,
                    notes=notes,
                    account_id=account_id,
                ))
        else:
            lots = [
                s for s in self.data.stocks
                if s.symbol.upper() == symbol and s.exchange.upper() == exchange and s.quantity > ZERO
            ]
            picks = _fifo(lots, lambda s: s.quantity, quantity)
            proceeds = total - charges
            if account_id is not None and proceeds < ZERO:
                # Charges above the sale value are a net debit
                self.ledger.ensure_funds(account_id, -proceeds)
            with BalanceSaga(f"stock SELL {symbol}") as saga:
                if account_id is not None and proceeds != ZERO:
                    self.ledger.record_balance_change(
                        account_id, proceeds, f"Sell {quantity} {symbol}",
                        CATEGORY_INVESTMENT, trade_date, saga,
                    )
                for lot, take in picks:
                    remaining = lot.quantity - take
                    reduced = lot.model_copy(update={
                        "quantity": remaining,
                        **_revalue(remaining, lot.avg_price, lot.current_price),
                    })
                    self._update(saga, "stocks", lot, reduced, STOCK_LOT_FIELDS)
                txn = self._insert(saga, "stock_transactions", StockTransactionRecord(
                    stock_id=picks[0][0].id,
                    transaction_type=kind,
                    quantity=quantity,
                    price=price,
                    total_amount=total,
                    brokerage=brokerage,
                    taxes=taxes,
                    transaction_date=trade_date,
                    notes=notes,
                    account_id=account_id,
                ))

        logger.info(f"Recorded stock {kind.value} {quantity} {symbol}@{price} on {exchange}")
        return txn

    @_command
    def set_stock_price(self, symbol: str, price: Decimal, exchange: str | None = None) -> int:
        """
        Mark every lot of a symbol to a new price.

        The old current price becomes the previous price, which is what day
        change is measured against.

        Returns:
            Number of lots repriced
        """
        _require_positive(price, "price")
        symbol = symbol.strip().upper()
        lots = [
            s for s in self.data.stocks
            if s.symbol.upper() == symbol and (exchange is None or s.exchange.upper() == exchange.upper())
        ]
        if not lots:
            raise ValidationError(f"No holding for {symbol}", field="symbol")

        with BalanceSaga(f"reprice {symbol}") as saga:
            for lot in lots:
                repriced = lot.model_copy(update={
                    "previous_price": lot.current_price,
                    "current_price": price,
                    **_revalue(lot.quantity, lot.avg_price, price),
                })
                self._update(saga, "stocks", lot, repriced, PRICE_FIELDS)
        logger.info(f"Repriced {len(lots)} lot(s) of {symbol} to {price}")
        return len(lots)

    # =========================================================================
    # MUTUAL FUNDS
    # =========================================================================

    @_command
    def record_mutual_fund_trade(
            self,
            name: str,
            transaction_type: str | MutualFundTransactionType,
            amount: Decimal,
            nav: Decimal,
            transaction_date: date | None = None,
            account_id: int | None = None,
            units: Decimal | None = None,
            scheme_code: str | None = None,
            isin: str | None = None,
            category: str | None = None,
            folio_number: str | None = None,
            notes: str | None = None,
    ) -> MutualFundTransactionRecord:
        """
        Settle a mutual fund purchase, SIP instalment or redemption.

        Units default to amount / nav. BUY and SIP add a lot and debit the
        amount; SELL redeems from the oldest lots first and credits it.
        """
        kind = _parse_enum(MutualFundTransactionType, transaction_type)
        _require_positive(amount, "amount")
        _require_positive(nav, "nav")
        if not name or not name.strip():
            raise ValidationError("Fund name is required", field="name")
        name = name.strip()
        units = units if units is not None else amount / nav
        _require_positive(units, "units")
        account_id = self._resolve_account(account_id, self.settings.default_mf_account_id)
        trade_date = transaction_date or date.today()

        if kind is not MutualFundTransactionType.SELL:
            if account_id is not None:
                self.ledger.ensure_funds(account_id, amount)
            with BalanceSaga(f"fund {kind.value} {name}") as saga:
                if account_id is not None:
                    self.ledger.record_balance_change(
                        account_id, -amount, f"{kind.value} - {name}",
                        CATEGORY_INVESTMENT, trade_date, saga,
                    )
                lot = self._insert(saga, "mutual_funds", MutualFundRecord(
                    name=name,
                    scheme_code=scheme_code,
                    isin=isin,
                    category=category,
                    folio_number=folio_number,
                    units=units,
                    avg_nav=nav,
                    current_nav=nav,
                    investment_amount=amount,
                    current_value=units * nav,
                ))
                txn = self._insert(saga, "mutual_fund_transactions", MutualFundTransactionRecord(
                    mutual_fund_id=lot.id,
                    transaction_type=kind,
                    units=units,
                    nav=nav,
                    total_amount=amount,
                    transaction_date=trade_date,
                    notes=notes,
                    account_id=account_id,
                ))
        else:
            lots = [f for f in self.data.mutual_funds if f.name.lower() == name.lower() and f.units > ZERO]
            picks = _fifo(lots, lambda f: f.units, units)
            with BalanceSaga(f"fund SELL {name}") as saga:
                if account_id is not None:
                    self.ledger.record_balance_change(
                        account_id, amount, f"SELL - {name}", CATEGORY_INVESTMENT, trade_date, saga
                    )
                for lot, take in picks:
                    remaining = lot.units - take
                    reduced = lot.model_copy(update={
                        "units": remaining,
                        **_revalue(remaining, lot.avg_nav, lot.current_nav),
                    })
                    self._update(saga, "mutual_funds", lot, reduced, MF_LOT_FIELDS)
                txn = self._insert(saga, "mutual_fund_transactions", MutualFundTransactionRecord(
                    mutual_fund_id=picks[0][0].id,
                    transaction_type=kind,
                    units=units,
                    nav=nav,
                    total_amount=amount,
                    transaction_date=trade_date,
                    notes=notes,
                    account_id=account_id,
                ))

        logger.info(f"Recorded fund {kind.value} of {amount} in {name}")
        return txn

    # =========================================================================
    # BONDS
    # =========================================================================

    @_command
    def record_bond_trade(
            self,
            name: str,
            transaction_type: str | BondTransactionType,
            quantity: Decimal,
            price: Decimal,
            transaction_date: date | None = None,
            account_id: int | None = None,
            isin: str | None = None,
            company_name: str | None = None,
            face_value: Decimal | None = None,
            coupon_rate: Decimal | None = None,
            maturity_date: date | None = None,
            interest_frequency: str | None = None,
            notes: str | None = None,
    ) -> BondTransactionRecord:
        """
        Settle a bond event.

        BUY adds a lot and debits quantity × price. SELL and MATURITY reduce
        the oldest lots and credit the proceeds; a lot that reaches zero is
        marked SOLD or MATURED. INTEREST only credits quantity × price
        (units held × coupon per unit) and leaves the lots alone.
        """
        kind = _parse_enum(BondTransactionType, transaction_type)
        _require_positive(quantity, "quantity")
        _require_positive(price, "price")
        if not name or not name.strip():
            raise ValidationError("Bond name is required", field="name")
        name = name.strip()
        key = (isin or name).upper()
        account_id = self._resolve_account(account_id, self.settings.default_bond_account_id)
        trade_date = transaction_date or date.today()
        total = quantity * price
        held = [
            b for b in self.data.bonds
            if _matches_bond(b, isin, name) and b.quantity > ZERO
        ]

        if kind is BondTransactionType.BUY:
            if account_id is not None:
                self.ledger.ensure_funds(account_id, total)
            with BalanceSaga(f"bond BUY {key}") as saga:
                if account_id is not None:
                    self.ledger.record_balance_change(
                        account_id, -total, f"Buy {quantity} {name}", CATEGORY_INVESTMENT, trade_date, saga
                    )
                lot = self._insert(saga, "bonds", BondRecord(
                    name=name,
                    isin=isin,
                    company_name=company_name,
                    face_value=face_value if face_value is not None else price,
                    coupon_rate=coupon_rate if coupon_rate is not None else ZERO,
                    maturity_date=maturity_date,
                    interest_frequency=interest_frequency,
                    quantity=quantity,
                    avg_price=price,
                    current_price=price,
                    investment_amount=total,
                    current_value=total,
                ))
                bond_id = lot.id
                txn = self._insert(saga, "bond_transactions", self._bond_txn(
                    bond_id, kind, quantity, price, trade_date, notes, account_id
                ))
        elif kind is BondTransactionType.INTEREST:
            if not held:
                raise ValidationError(f"No active holding of {name}", field="name")
            with BalanceSaga(f"bond INTEREST {key}") as saga:
                if account_id is not None:
                    self.ledger.record_balance_change(
                        account_id, total, f"Interest - {name}", CATEGORY_INVESTMENT, trade_date, saga
                    )
                txn = self._insert(saga, "bond_transactions", self._bond_txn(
                    held[0].id, kind, quantity, price, trade_date, notes, account_id
                ))
        else:
            picks = _fifo(held, lambda b: b.quantity, quantity)
            closed_status = BondStatus.MATURED if kind is BondTransactionType.MATURITY else BondStatus.SOLD
            with BalanceSaga(f"bond {kind.value} {key}") as saga:
                if account_id is not None:
                    self.ledger.record_balance_change(
                        account_id, total, f"{kind.value.title()} - {name}", CATEGORY_INVESTMENT, trade_date, saga
                    )
                for lot, take in picks:
                    remaining = lot.quantity - take
                    reduced = lot.model_copy(update={
                        "quantity": remaining,
                        "status": closed_status if remaining == ZERO else lot.status,
                        **_revalue(remaining, lot.avg_price, lot.current_price),
                    })
                    self._update(saga, "bonds", lot, reduced, BOND_LOT_FIELDS)
                txn = self._insert(saga, "bond_transactions", self._bond_txn(
                    picks[0][0].id, kind, quantity, price, trade_date, notes, account_id
                ))

        logger.info(f"Recorded bond {kind.value} {quantity} {key}@{price}")
        return txn

    @staticmethod
    def _bond_txn(
            bond_id: int | None,
            kind: BondTransactionType,
            quantity: Decimal,
            price: Decimal,
            trade_date: date,
            notes: str | None,
            account_id: int | None,
    ) -> BondTransactionRecord:
        return BondTransactionRecord(
            bond_id=bond_id,
            transaction_type=kind,
            quantity=quantity,
            price=price,
            total_amount=quantity * price,
            transaction_date=trade_date,
            notes=notes,
            account_id=account_id,
        )

    # =========================================================================
    # F&O
    # =========================================================================

    @_command
    def add_fno_trade(self, trade: FnoTradeRecord) -> FnoTradeRecord:
        """Open an F&O position. Opening a trade does not move cash."""
        opened = trade.model_copy(update={
            "status": FnoStatus.OPEN,
            "pnl": ZERO,
            "exit_price": None,
            "exit_date": None,
        })
        with BalanceSaga(f"open {trade.instrument}") as saga:
            saved = self._insert(saga, "fno_trades", opened)
        logger.info(f"Opened F&O {saved.trade_type.value} {saved.quantity} {saved.instrument}")
        return saved

    @_command
    def close_fno_trade(
            self,
            trade_id: int,
            exit_price: Decimal,
            exit_date: date | None = None,
    ) -> FnoTradeRecord:
        """
        Close an open trade and realize its P&L.

        pnl = (exit − entry) × qty for BUY, (entry − exit) × qty for SELL,
        less round-trip charges when auto-calculation is on.
        """
        trade: FnoTradeRecord = self.data.find("fno_trades", trade_id)  # type: ignore[assignment]
        if trade.status == FnoStatus.CLOSED:
            raise ValidationError(f"Trade {trade_id} is already closed", field="status")
        if exit_price is None or exit_price < ZERO:
            raise ValidationError("Exit price must be 0 or greater", field="exit_price")

        if trade.trade_type == FnoTradeType.BUY:
            gross = (exit_price - trade.avg_price) * trade.quantity
        else:
            gross = (trade.avg_price - exit_price) * trade.quantity
        charges = ZERO
        if self.settings.auto_calculate_charges:
            charges = fno_charges(trade.quantity, trade.avg_price, exit_price, trade.instrument).total

        closed = trade.model_copy(update={
            "status": FnoStatus.CLOSED,
            "exit_price": exit_price,
            "exit_date": exit_date or date.today(),
            "pnl": gross - charges,
        })
        with BalanceSaga(f"close {trade.instrument}") as saga:
            self._update(saga, "fno_trades", trade, closed, ("status", "exit_price", "exit_date", "pnl"))
        logger.info(f"Closed F&O trade {trade_id} with pnl {closed.pnl}")
        return closed

    # =========================================================================
    # GOALS AND FAMILY TRANSFERS
    # =========================================================================

    @_command
    def add_goal(self, goal: GoalRecord) -> GoalRecord:
        with BalanceSaga(f"add goal {goal.name}") as saga:
            saved = self._insert(saga, "goals", goal)
        return saved

    @_command
    def contribute_to_goal(
            self,
            goal_id: int,
            amount: Decimal,
            account_id: int | None = None,
            entry_date: date | None = None,
    ) -> GoalRecord:
        """Add to a goal, debiting the funding account when one is given."""
        _require_positive(amount, "amount")
        goal: GoalRecord = self.data.find("goals", goal_id)  # type: ignore[assignment]
        if account_id is not None:
            self.ledger.ensure_funds(account_id, amount)

        updated = goal.model_copy(update={"current_amount": goal.current_amount + amount})
        with BalanceSaga(f"contribute to goal {goal_id}") as saga:
            if account_id is not None:
                self.ledger.record_balance_change(
                    account_id, -amount, f"Goal Contribution - {goal.name}", CATEGORY_GOAL, entry_date, saga
                )
            self._update(saga, "goals", goal, updated, ("current_amount",))
        return updated

    @_command
    def add_family_transfer(self, transfer: FamilyTransferRecord) -> FamilyTransferRecord:
        """Record money sent to family, debiting the account when one is given."""
        if transfer.account_id is not None:
            self.ledger.ensure_funds(transfer.account_id, transfer.amount)

        with BalanceSaga(f"family transfer to {transfer.recipient}") as saga:
            if transfer.account_id is not None:
                self.ledger.record_balance_change(
                    transfer.account_id,
                    -transfer.amount,
                    f"Family Transfer - {transfer.recipient}",
                    CATEGORY_FAMILY,
                    transfer.date,
                    saga,
                )
            saved = self._insert(saga, "family_transfers", transfer)
        return saved

    # =========================================================================
    # DELETION
    # =========================================================================

    @_command
    def delete_entity(self, table: str, entity_id: int) -> None:
        """
        Delete one row and drop it from its collection.

        Raises:
            ValidationError: Unknown table
            NotFoundError: No such row in memory
            StoreOperationError: The store refused; memory is unchanged
        """
        self.data.find(table, entity_id)
        self.store.delete(table, entity_id).unwrap(table, "delete")
        self.data.remove(table, entity_id)
        logger.info(f"Deleted {table} {entity_id}")
