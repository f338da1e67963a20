# backend/fintrack/services/constants.py
"""
Centralized constants for the Fintrack services.

Single source of truth for business constants used across the engine,
the charge estimators and the HTTP layer.

Usage:
    from fintrack.services.constants import (
        NO_VENUE,
        MF_STAMP_DUTY_RATE,
        RATE_LIMIT_SEARCH,
    )
"""

from decimal import Decimal


# =============================================================================
# AGGREGATION
# =============================================================================

# Venue used for asset classes without an exchange (mutual funds, bonds)
NO_VENUE: str = "NO_VENUE"

# Precision for displayed money values (2 dp) and percentages
MONEY_QUANT: Decimal = Decimal("0.01")
PERCENT_QUANT: Decimal = Decimal("0.01")

HUNDRED: Decimal = Decimal("100")
ZERO: Decimal = Decimal("0")


# =============================================================================
# LIFETIME EARNINGS
# =============================================================================

# Mutual fund purchases carry a stamp duty of 0.005% (as a fraction)
# Applied as a flat levy on total buys rather than read per transaction
MF_STAMP_DUTY_RATE: Decimal = Decimal("0.00005")


# =============================================================================
# F&O CHARGE RATES (percentages of turnover unless noted)
# =============================================================================

FNO_BROKERAGE_FLAT: Decimal = Decimal("20")           # per executed order
FNO_BROKERAGE_PERCENT: Decimal = Decimal("0.03")      # or 0.03%, whichever is lower
FNO_FUTURES_STT_RATE: Decimal = Decimal("0.0125")     # sell side
FNO_OPTIONS_STT_RATE: Decimal = Decimal("0.0625")     # sell side premium
FNO_FUTURES_TRANS_CHARGE: Decimal = Decimal("0.00173")
FNO_OPTIONS_TRANS_CHARGE: Decimal = Decimal("0.03503")
FNO_SEBI_CHARGE: Decimal = Decimal("0.0001")          # Rs 10 per crore
FNO_FUTURES_STAMP_DUTY: Decimal = Decimal("0.002")    # buy side
FNO_OPTIONS_STAMP_DUTY: Decimal = Decimal("0.003")    # buy side
FNO_GST_RATE: Decimal = Decimal("18")

# Bond stamp duty (0.0001%) as a fraction of buy turnover
BOND_STAMP_DUTY_RATE: Decimal = Decimal("0.000001")


# =============================================================================
# LEDGER CATEGORIES
# =============================================================================

CATEGORY_INITIAL_DEPOSIT: str = "Initial Deposit"
CATEGORY_ADJUSTMENT: str = "Adjustment"
CATEGORY_INVESTMENT: str = "Investment"
CATEGORY_GOAL: str = "Goals"
CATEGORY_FAMILY: str = "Family"
CATEGORY_TRANSFER: str = "Transfer"
CATEGORY_DEPOSIT: str = "Deposit"


# =============================================================================
# CATALOG SEARCH
# =============================================================================

SEARCH_QUERY_MAX_LENGTH: int = 50
SEARCH_MAX_RESULTS: int = 50


# =============================================================================
# RATE LIMITING
# =============================================================================
# Format: "X/period" where period is second, minute, hour, day

# Default limit for all endpoints
RATE_LIMIT_DEFAULT: str = "100/minute"

# Write operations (create, update, delete)
RATE_LIMIT_WRITE: str = "30/minute"

# Catalog search endpoints, matching the fixed 30-per-minute route gate
RATE_LIMIT_SEARCH: str = "30/minute"

# Health checks (load balancers poll frequently)
RATE_LIMIT_HEALTH: str = "300/minute"

# Seconds a client is told to wait after a 429
RATE_LIMIT_RETRY_AFTER: int = 60
