# backend/fintrack/services/catalog.py
"""
Bond catalog search.

A fixed catalog of Indian bonds (Sovereign Gold Bonds, PSU tax-free bonds,
NBFC NCDs and State Development Loans) used to pre-fill new bond holdings.
There is no live market feed behind it.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from fintrack.services.constants import SEARCH_MAX_RESULTS, SEARCH_QUERY_MAX_LENGTH
from fintrack.services.exceptions import ValidationError

logger = logging.getLogger(__name__)

QUERY_PATTERN = re.compile(r"^[A-Za-z0-9\s\-&.]+$")


@dataclass(frozen=True)
class BondListing:
    isin: str
    name: str
    company_name: str
    coupon_rate: Decimal
    face_value: Decimal
    maturity_date: date
    interest_frequency: str
    category: str
    rating: str


def _listing(isin, name, company, coupon, face, maturity, frequency, category, rating) -> BondListing:
    return BondListing(
        isin=isin,
        name=name,
        company_name=company,
        coupon_rate=Decimal(coupon),
        face_value=Decimal(face),
        maturity_date=date.fromisoformat(maturity),
        interest_frequency=frequency,
        category=category,
        rating=rating,
    )


BOND_CATALOG: tuple[BondListing, ...] = (
    # Sovereign Gold Bonds
    _listing("IN0020230085", "SGB 2023-24 Series I", "Government of India",
             "2.50", "5926", "2031-06-27", "Half-Yearly", "SGB", "SOV"),
    _listing("IN0020230093", "SGB 2023-24 Series II", "Government of India",
             "2.50", "5923", "2031-09-20", "Half-Yearly", "SGB", "SOV"),
    _listing("IN0020220045", "SGB 2022-23 Series I", "Government of India",
             "2.50", "5091", "2030-06-28", "Half-Yearly", "SGB", "SOV"),
    _listing("IN0020220078", "SGB 2022-23 Series II", "Government of India",
             "2.50", "5197", "2030-08-30", "Half-Yearly", "SGB", "SOV"),
    # Banking, PSU and tax-free
    _listing("INE018E07BU2", "SBI Tier 1 Bond", "State Bank of India",
             "8.1", "1000000", "2030-12-31", "Yearly", "Banking/PSU", "AAA"),
    _listing("INE062A08216", "SBI Perp 7.72 Bond", "State Bank of India",
             "7.72", "1000000", "2099-12-31", "Yearly", "Banking/PSU", "AAA"),
    _listing("INE906B07DT1", "NHAI Tax Free Bond 2030", "National Highways Authority of India",
             "8.3", "1000", "2030-01-25", "Yearly", "Infrastructure", "AAA"),
    _listing("INE752E07NT7", "REC Tax Free Bond 2029", "REC Limited",
             "8.12", "1000", "2029-03-15", "Yearly", "Infrastructure", "AAA"),
    _listing("INE134E07439", "PFC Tax Free Bond 2031", "Power Finance Corporation",
             "8.5", "1000", "2031-10-15", "Yearly", "Infrastructure", "AAA"),
    _listing("INE261F07066", "NABARD Tax Free Bond", "NABARD",
             "7.64", "1000", "2031-03-23", "Yearly", "PSU", "AAA"),
    # Corporate NCDs
    _listing("INE516A07QQ1", "Piramal Capital NCD 2026", "Piramal Capital & Housing Finance",
             "9.5", "1000", "2026-08-15", "Monthly", "NBFC", "AA"),
    _listing("INE121A07PW3", "Cholamandalam Inv NCD 2027", "Cholamandalam Investment and Finance",
             "8.4", "1000", "2027-03-20", "Yearly", "NBFC", "AA+"),
    _listing("INE296A07RQ1", "Bajaj Finance NCD 2029", "Bajaj Finance Limited",
             "7.9", "1000", "2029-05-25", "Yearly", "NBFC", "AAA"),
    _listing("INE721L07BJ5", "Shriram Finance NCD 2026", "Shriram Finance Limited",
             "9.2", "1000", "2026-12-20", "Monthly", "NBFC", "AA+"),
    _listing("INE414G07HS9", "Muthoot Finance NCD 2027", "Muthoot Finance Limited",
             "9.0", "1000", "2027-01-15", "Monthly", "NBFC", "AA+"),
    _listing("INE245A07FY9", "Tata Capital NCD 2028", "Tata Capital Financial Services",
             "8.1", "1000", "2028-09-12", "Yearly", "NBFC", "AAA"),
    _listing("INE539K07230", "CreditAccess Grameen NCD", "CreditAccess Grameen Limited",
             "9.48", "1000", "2026-11-20", "Monthly", "NBFC", "AA-"),
    _listing("INE020G07156", "Manappuram Finance NCD", "Manappuram Finance Limited",
             "9.25", "1000", "2027-04-15", "Yearly", "NBFC", "AA"),
    _listing("INE756I08041", "HDB Financial Bond 2025", "HDB Financial Services Limited",
             "8.35", "1000", "2025-10-10", "Yearly", "NBFC", "AAA"),
    # State Development Loans
    _listing("IN2220230058", "Maharashtra SDL 2033", "State Government of Maharashtra",
             "7.64", "10000", "2033-06-14", "Half-Yearly", "SDL", "SOV"),
    _listing("IN2920230040", "Rajasthan SDL 2033", "State Government of Rajasthan",
             "7.68", "10000", "2033-06-21", "Half-Yearly", "SDL", "SOV"),
)


def validate_search_query(query: str) -> str:
    """
    Check a non-empty search query and return it normalized.

    Raises:
        ValidationError: Too long, or contains characters other than
            letters, digits, whitespace, '-', '&' and '.'
    """
    if len(query) > SEARCH_QUERY_MAX_LENGTH:
        raise ValidationError(
            f"Search query must be at most {SEARCH_QUERY_MAX_LENGTH} characters",
            field="q",
        )
    if not QUERY_PATTERN.match(query):
        raise ValidationError("Search query contains invalid characters", field="q")
    return query.strip().lower()


def search_bonds(query: str | None = None) -> list[BondListing]:
    """
    Case-insensitive substring search over name, company name and ISIN.

    An empty query returns the whole catalog. At most SEARCH_MAX_RESULTS
    listings are returned, in catalog order.
    """
    needle = validate_search_query(query) if query else ""
    matches = [
        bond for bond in BOND_CATALOG
        if needle in bond.name.lower()
        or needle in bond.company_name.lower()
        or needle in bond.isin.lower()
    ]
    logger.debug(f"Bond search '{needle}' matched {len(matches)}")
    return matches[:SEARCH_MAX_RESULTS]
