# backend/fintrack/services/fund_quotes.py
"""
Mutual fund search and latest-NAV quotes.

Providers implement FundQuoteProvider. The bundled MfApiProvider talks to
an mfapi.in compatible service:

    GET /mf/search?q=<text>  → [{"schemeCode": 122639, "schemeName": "..."}]
    GET /mf/<code>           → {"meta": {...}, "data": [{"date": "dd-mm-yyyy", "nav": "..."}]}

The newest NAV is the first entry of "data". Transient failures (network
errors, 429, 5xx) are retried with exponential backoff; anything else
fails at once.

Usage:
    provider = MfApiProvider("https://api.mfapi.in")
    matches = provider.search("flexi cap")
    quote = provider.quote(matches[0].scheme_code)
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, TypeVar

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from fintrack.services.constants import SEARCH_QUERY_MAX_LENGTH
from fintrack.services.exceptions import (
    FundNotFoundError,
    MarketDataError,
    ProviderUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

NAV_DATE_FORMAT = "%d-%m-%Y"


@dataclass(frozen=True)
class FundMatch:
    scheme_code: int
    scheme_name: str


@dataclass(frozen=True)
class FundQuote:
    """Latest published NAV of one scheme."""

    scheme_code: int
    scheme_name: str
    category: str | None
    current_nav: Decimal
    nav_date: date


def normalize_query(query: str | None) -> str:
    """
    Raises:
        ValidationError: Empty or over-long query
    """
    cleaned = (query or "").strip()
    if not cleaned:
        raise ValidationError("Query is required", field="q")
    if len(cleaned) > SEARCH_QUERY_MAX_LENGTH:
        raise ValidationError(
            f"Query must be at most {SEARCH_QUERY_MAX_LENGTH} characters", field="q"
        )
    return cleaned


# =============================================================================
# ABSTRACT BASE CLASS
# =============================================================================

class FundQuoteProvider(ABC):
    """
    Source of mutual fund search results and NAV quotes.

    Retry settings can be overridden per subclass or per instance.
    """

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: float = 1
    RETRY_MAX_WAIT: float = 10
    RETRY_MULTIPLIER: float = 1

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def search(self, query: str) -> list[FundMatch]:
        """
        Raises:
            ValidationError: Empty or over-long query
            ProviderUnavailableError: Provider unreachable after retries
            MarketDataError: Response could not be understood
        """
        pass

    @abstractmethod
    def quote(self, scheme_code: int) -> FundQuote:
        """
        Raises:
            FundNotFoundError: Unknown scheme code
            ProviderUnavailableError: Provider unreachable after retries
            MarketDataError: Response could not be understood
        """
        pass

    def close(self) -> None:
        pass

    def _execute_with_retry(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call func, retrying ProviderUnavailableError with exponential backoff."""

        @retry(
            stop=stop_after_attempt(self.MAX_RETRY_ATTEMPTS),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self.RETRY_MIN_WAIT,
                max=self.RETRY_MAX_WAIT,
            ),
            retry=retry_if_exception_type(ProviderUnavailableError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        def _inner() -> T:
            return func(*args, **kwargs)

        return _inner()


# =============================================================================
# MFAPI PROVIDER
# =============================================================================

class MfApiProvider(FundQuoteProvider):
    """
    Quote provider backed by an mfapi.in compatible HTTP service.

    Args:
        base_url: Service root, e.g. "https://api.mfapi.in"
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests pass a MockTransport)
    """

    def __init__(
            self,
            base_url: str,
            timeout: float = 10.0,
            transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    @property
    def name(self) -> str:
        return "mfapi"

    def search(self, query: str) -> list[FundMatch]:
        cleaned = normalize_query(query)
        payload = self._execute_with_retry(self._get_json, "/mf/search", {"q": cleaned})
        if not isinstance(payload, list):
            raise MarketDataError("Search response is not a list", provider=self.name)
        try:
            matches = [
                FundMatch(scheme_code=int(item["schemeCode"]), scheme_name=str(item["schemeName"]))
                for item in payload
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise MarketDataError(f"Malformed search result: {e}", provider=self.name) from e
        logger.debug(f"Fund search '{cleaned}' returned {len(matches)} schemes")
        return matches

    def quote(self, scheme_code: int) -> FundQuote:
        if scheme_code <= 0:
            raise ValidationError("Scheme code must be positive", field="code")
        payload = self._execute_with_retry(self._get_json, f"/mf/{scheme_code}")
        if not isinstance(payload, dict) or not payload.get("meta") or not payload.get("data"):
            raise FundNotFoundError(scheme_code)

        meta = payload["meta"]
        latest = payload["data"][0]
        try:
            return FundQuote(
                scheme_code=int(meta["scheme_code"]),
                scheme_name=str(meta["scheme_name"]),
                category=meta.get("scheme_category"),
                current_nav=Decimal(str(latest["nav"])),
                nav_date=datetime.strptime(latest["date"], NAV_DATE_FORMAT).date(),
            )
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise MarketDataError(f"Malformed quote for scheme {scheme_code}: {e}", provider=self.name) from e

    def close(self) -> None:
        self._client.close()

    def _get_json(self, path: str, params: dict[str, str] | None = None) -> Any:
        """
        GET path and decode JSON. A 404 yields None.

        Raises:
            ProviderUnavailableError: Network error, 429 or 5xx
            MarketDataError: Any other non-200 status, or a body that is not JSON
        """
        try:
            response = self._client.get(path, params=params)
        except httpx.RequestError as e:
            raise ProviderUnavailableError(self.name, f"network error: {e}") from e

        status = response.status_code
        if status == 404:
            return None
        if status == 429 or status >= 500:
            raise ProviderUnavailableError(self.name, f"HTTP {status}")
        if status != 200:
            raise MarketDataError(f"Unexpected HTTP {status} from {self.name}", provider=self.name)

        try:
            return response.json()
        except ValueError as e:
            raise MarketDataError(f"Response from {self.name} is not JSON", provider=self.name) from e
