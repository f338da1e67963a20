# backend/fintrack/routers/mutual_funds.py
"""Mutual fund scheme search and latest NAV quotes."""

from fastapi import APIRouter, Depends, Query, Request

from fintrack.dependencies import get_fund_quote_provider
from fintrack.middleware.rate_limit import RATE_LIMIT_SEARCH, limiter, search_gate
from fintrack.schemas.catalog import FundMatchResponse, FundQuoteResponse, FundSearchResponse
from fintrack.services.fund_quotes import FundQuoteProvider

router = APIRouter(
    prefix="/mutual-funds",
    tags=["Mutual Funds"],
    dependencies=[Depends(search_gate)],
)


@router.get(
    "/search",
    response_model=FundSearchResponse,
    summary="Search mutual fund schemes",
)
@limiter.limit(RATE_LIMIT_SEARCH)
def search(
        request: Request,
        q: str = Query(default="", description="Scheme name fragment"),
        provider: FundQuoteProvider = Depends(get_fund_quote_provider),
):
    """
    Scheme codes and names matching **q**.

    An empty query is rejected with 400. 503 when the provider cannot be
    reached.
    """
    results = provider.search(q)
    return FundSearchResponse(
        query=q.strip(),
        count=len(results),
        results=[FundMatchResponse.model_validate(m) for m in results],
    )


@router.get(
    "/quote",
    response_model=FundQuoteResponse,
    summary="Latest NAV of a scheme",
)
@limiter.limit(RATE_LIMIT_SEARCH)
def quote(
        request: Request,
        code: int = Query(..., gt=0, description="Scheme code"),
        provider: FundQuoteProvider = Depends(get_fund_quote_provider),
):
    """Latest NAV and its date for scheme **code** (404 if unknown)."""
    return FundQuoteResponse.model_validate(provider.quote(code))
