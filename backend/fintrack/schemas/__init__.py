# backend/fintrack/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.

This package contains all Pydantic schemas organized by domain:
- records: Validated store rows (one frozen record type per table)
- accounts: Account CRUD, funds, transfers, ledger and reconciliation
- holdings: Positions, trades, F&O and charge estimates
- dashboard: Net worth and allocation
- goals: Goals and family transfers
- catalog: Bond search results and mutual fund quotes
- errors: Error response formats

Usage:
    from fintrack.schemas import AccountCreate, AccountResponse
    from fintrack.schemas import StockTradeCreate, HoldingsResponse
    from fintrack.schemas import ErrorDetail
"""

from fintrack.schemas.accounts import (
    AccountCreate,
    AccountUpdate,
    AccountResponse,
    FundsRequest,
    TransferRequest,
    TransferResponse,
    LedgerEntryResponse,
    ReconciliationResponse,
)
from fintrack.schemas.catalog import (
    BondListingResponse,
    BondSearchResponse,
    FundMatchResponse,
    FundQuoteResponse,
    FundSearchResponse,
)
from fintrack.schemas.dashboard import (
    AllocationSliceResponse,
    DashboardResponse,
)
from fintrack.schemas.errors import (
    ErrorDetail,
    ValidationErrorDetail,
)
from fintrack.schemas.goals import (
    GoalCreate,
    GoalContribution,
    GoalResponse,
    FamilyTransferCreate,
    FamilyTransferResponse,
)
from fintrack.schemas.holdings import (
    # Positions
    PositionResponse,
    ValuationSummaryResponse,
    LifetimeBreakdownResponse,
    HoldingsResponse,
    # Trades
    StockTradeCreate,
    MutualFundTradeCreate,
    BondTradeCreate,
    PriceUpdate,
    PriceUpdateResponse,
    StockTransactionResponse,
    MutualFundTransactionResponse,
    BondTransactionResponse,
    # F&O
    FnoTradeCreate,
    FnoCloseRequest,
    FnoTradeResponse,
    FnoStatsResponse,
    FnoListResponse,
    ChargeEstimateResponse,
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

__all__ = [
    # Accounts
    "AccountCreate",
    "AccountUpdate",
    "AccountResponse",
    "FundsRequest",
    "TransferRequest",
    "TransferResponse",
    "LedgerEntryResponse",
    "ReconciliationResponse",
    # Catalog
    "BondListingResponse",
    "BondSearchResponse",
    "FundMatchResponse",
    "FundQuoteResponse",
    "FundSearchResponse",
    # Dashboard
    "AllocationSliceResponse",
    "DashboardResponse",
    # Errors
    "ErrorDetail",
    "ValidationErrorDetail",
    # Goals
    "GoalCreate",
    "GoalContribution",
    "GoalResponse",
    "FamilyTransferCreate",
    "FamilyTransferResponse",
    # Holdings
    "PositionResponse",
    "ValuationSummaryResponse",
    "LifetimeBreakdownResponse",
    "HoldingsResponse",
    "StockTradeCreate",
    "MutualFundTradeCreate",
    "BondTradeCreate",
    "PriceUpdate",
    "PriceUpdateResponse",
    "StockTransactionResponse",
    "MutualFundTransactionResponse",
    "BondTransactionResponse",
    "FnoTradeCreate",
    "FnoCloseRequest",
    "FnoTradeResponse",
    "FnoStatsResponse",
    "FnoListResponse",
    "ChargeEstimateResponse",
    # Records
    "Record",
    "AccountRecord",
    "AppSettingsRecord",
    "BondRecord",
    "BondTransactionRecord",
    "FamilyTransferRecord",
    "FnoTradeRecord",
    "GoalRecord",
    "LedgerEntryRecord",
    "MutualFundRecord",
    "MutualFundTransactionRecord",
    "StockRecord",
    "StockTransactionRecord",
    "parse_record",
    "parse_rows",
    "to_patch",
    "to_row",
]
