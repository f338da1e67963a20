# backend/fintrack/routers/bonds.py
"""Bond catalog search."""

from fastapi import APIRouter, Depends, Query, Request

from fintrack.middleware.rate_limit import RATE_LIMIT_SEARCH, limiter, search_gate
from fintrack.schemas.catalog import BondListingResponse, BondSearchResponse
from fintrack.services.catalog import search_bonds

router = APIRouter(
    prefix="/bonds",
    tags=["Bonds"],
)


@router.get(
    "/search",
    response_model=BondSearchResponse,
    summary="Search the bond catalog",
    dependencies=[Depends(search_gate)],
)
@limiter.limit(RATE_LIMIT_SEARCH)
def search(
        request: Request,
        q: str = Query(default="", description="Name, issuer or ISIN fragment"),
):
    """
    Case-insensitive search over bond name, issuer and ISIN.

    An empty **q** lists the catalog. Only letters, digits, spaces and
    `- & .` are accepted (400 otherwise).
    """
    results = search_bonds(q)
    return BondSearchResponse(
        query=q,
        count=len(results),
        results=[BondListingResponse.model_validate(b) for b in results],
    )
