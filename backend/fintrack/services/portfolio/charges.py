# backend/fintrack/services/portfolio/charges.py
"""
Approximate trading charges (Zerodha-style rate card).

These are estimates used to pre-fill brokerage/taxes on new trades when
AppSettings.auto_calculate_charges is on. They are not tax-law accurate.

Stock delivery (rates from AppSettings, all percentages of turnover):
    brokerage      flat amount, or brokerage_value % of turnover
    STT            stt_rate %, rounded to the rupee, both sides
    exchange       transaction_charge_rate %
    SEBI           sebi_charge_rate %
    stamp duty     stamp_duty_rate %, buy side only
    GST            gst_rate % of (brokerage + exchange + SEBI)
    DP charges     flat dp_charges, sell side only

Mutual funds: stamp duty 0.005% on BUY/SIP, nothing else.
F&O: fixed rate card in services/constants.py; options vs futures by name.
Bonds: brokerage + 0.0001% stamp duty on buy + GST on brokerage.

All amounts are rounded to 2 decimal places on output.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from fintrack.models import BrokerageType
from fintrack.schemas.records import AppSettingsRecord
from fintrack.services.constants import (
    BOND_STAMP_DUTY_RATE,
    FNO_BROKERAGE_FLAT,
    FNO_BROKERAGE_PERCENT,
    FNO_FUTURES_STAMP_DUTY,
    FNO_FUTURES_STT_RATE,
    FNO_FUTURES_TRANS_CHARGE,
    FNO_GST_RATE,
    FNO_OPTIONS_STAMP_DUTY,
    FNO_OPTIONS_STT_RATE,
    FNO_OPTIONS_TRANS_CHARGE,
    FNO_SEBI_CHARGE,
    MF_STAMP_DUTY_RATE,
    MONEY_QUANT,
)
from fintrack.services.portfolio.types import ZERO, HUNDRED


@dataclass(frozen=True)
class ChargeBreakdown:
    """
    Itemised charges for one trade.

    taxes is everything except brokerage, matching the brokerage/taxes
    split stored on stock transactions.
    """

    brokerage: Decimal = ZERO
    stt: Decimal = ZERO
    transaction_charges: Decimal = ZERO
    sebi_charges: Decimal = ZERO
    stamp_duty: Decimal = ZERO
    gst: Decimal = ZERO
    dp_charges: Decimal = ZERO
    taxes: Decimal = ZERO
    total: Decimal = ZERO


def _money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def _pct(amount: Decimal, rate_percent: Decimal) -> Decimal:
    return amount * rate_percent / HUNDRED


def _brokerage(turnover: Decimal, settings: AppSettingsRecord) -> Decimal:
    if settings.brokerage_type == BrokerageType.FLAT:
        return settings.brokerage_value
    return _pct(turnover, settings.brokerage_value)


def _breakdown(
        *,
        brokerage: Decimal,
        stt: Decimal = ZERO,
        transaction_charges: Decimal = ZERO,
        sebi_charges: Decimal = ZERO,
        stamp_duty: Decimal = ZERO,
        gst: Decimal = ZERO,
        dp_charges: Decimal = ZERO,
) -> ChargeBreakdown:
    total = brokerage + stt + transaction_charges + sebi_charges + stamp_duty + gst + dp_charges
    return ChargeBreakdown(
        brokerage=_money(brokerage),
        stt=_money(stt),
        transaction_charges=_money(transaction_charges),
        sebi_charges=_money(sebi_charges),
        stamp_duty=_money(stamp_duty),
        gst=_money(gst),
        dp_charges=_money(dp_charges),
        taxes=_money(total - brokerage),
        total=_money(total),
    )


# =============================================================================
# STOCKS
# =============================================================================

def stock_charges(
        trade_type: str,
        quantity: Decimal,
        price: Decimal,
        settings: AppSettingsRecord,
) -> ChargeBreakdown:
    """
    Delivery (CNC) charges for a stock trade.

    Args:
        trade_type: "BUY" or "SELL"
        quantity: Shares traded
        price: Price per share
        settings: Rate card
    """
    is_buy = trade_type.upper() == "BUY"
    turnover = quantity * price

    brokerage = _brokerage(turnover, settings)
    stt = _pct(turnover, settings.stt_rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    trans = _pct(turnover, settings.transaction_charge_rate)
    sebi = _pct(turnover, settings.sebi_charge_rate)
    stamp = _pct(turnover, settings.stamp_duty_rate) if is_buy else ZERO
    gst = _pct(brokerage + trans + sebi, settings.gst_rate)
    dp = ZERO if is_buy else settings.dp_charges

    return _breakdown(
        brokerage=brokerage,
        stt=stt,
        transaction_charges=trans,
        sebi_charges=sebi,
        stamp_duty=stamp,
        gst=gst,
        dp_charges=dp,
    )


# =============================================================================
# MUTUAL FUNDS
# =============================================================================

def mutual_fund_charges(trade_type: str, amount: Decimal) -> ChargeBreakdown:
    """Direct plans: no brokerage, stamp duty on purchases and SIPs."""
    kind = trade_type.upper()
    stamp = amount * MF_STAMP_DUTY_RATE if kind in ("BUY", "SIP") else ZERO
    return _breakdown(brokerage=ZERO, stamp_duty=stamp)


# =============================================================================
# F&O
# =============================================================================

def is_option(instrument: str) -> bool:
    """
    Options are recognised by name: "NIFTY 22FEB 21500 CE" is an option,
    "BANKNIFTY 22FEB FUT" is a future.
    """
    upper = instrument.upper()
    return (
        " CE" in upper
        or " PE" in upper
        or upper.endswith("CE")
        or upper.endswith("PE")
        or "CALL" in upper
        or "PUT" in upper
    )


def fno_charges(
        quantity: Decimal,
        entry_price: Decimal,
        exit_price: Decimal,
        instrument: str,
) -> ChargeBreakdown:
    """
    Round-trip charges for an F&O trade (entry leg + exit leg).

    Brokerage is min(flat, % of turnover) on each leg; STT is charged on
    the exit leg and stamp duty on the entry leg.
    """
    option = is_option(instrument)
    entry_turnover = quantity * entry_price
    exit_turnover = quantity * exit_price
    total_turnover = entry_turnover + exit_turnover

    brokerage = (
        min(FNO_BROKERAGE_FLAT, _pct(entry_turnover, FNO_BROKERAGE_PERCENT))
        + min(FNO_BROKERAGE_FLAT, _pct(exit_turnover, FNO_BROKERAGE_PERCENT))
    )
    stt_rate = FNO_OPTIONS_STT_RATE if option else FNO_FUTURES_STT_RATE
    stt = _pct(exit_turnover, stt_rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    trans_rate = FNO_OPTIONS_TRANS_CHARGE if option else FNO_FUTURES_TRANS_CHARGE
    trans = _pct(total_turnover, trans_rate)
    sebi = _pct(total_turnover, FNO_SEBI_CHARGE)
    stamp_rate = FNO_OPTIONS_STAMP_DUTY if option else FNO_FUTURES_STAMP_DUTY
    stamp = _pct(entry_turnover, stamp_rate)
    gst = _pct(brokerage + trans + sebi, FNO_GST_RATE)

    return _breakdown(
        brokerage=brokerage,
        stt=stt,
        transaction_charges=trans,
        sebi_charges=sebi,
        stamp_duty=stamp,
        gst=gst,
    )


# =============================================================================
# BONDS
# =============================================================================

def bond_charges(
        trade_type: str,
        quantity: Decimal,
        price: Decimal,
        settings: AppSettingsRecord,
) -> ChargeBreakdown:
    turnover = quantity * price
    brokerage = _brokerage(turnover, settings)
    stamp = turnover * BOND_STAMP_DUTY_RATE if trade_type.upper() == "BUY" else ZERO
    gst = _pct(brokerage, settings.gst_rate)
    return _breakdown(brokerage=brokerage, stamp_duty=stamp, gst=gst)
