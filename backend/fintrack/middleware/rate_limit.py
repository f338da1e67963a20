# backend/fintrack/middleware/rate_limit.py
"""
Rate limiting for the HTTP API.

Two layers:
- slowapi route limits (RATE_LIMIT_* in services/constants.py), keyed by
  client IP, applied with @limiter.limit(...) on each endpoint
- the fixed-window RateLimiterGate, applied as a dependency on catalog
  search with the RATE_LIMIT_MAX_REQUESTS / RATE_LIMIT_WINDOW_MS settings

Both answer 429 with a Retry-After header.

Usage:
    from fintrack.middleware.rate_limit import limiter, RATE_LIMIT_SEARCH

    @router.get("/search", dependencies=[Depends(search_gate)])
    @limiter.limit(RATE_LIMIT_SEARCH)
    def search(request: Request, q: str = ""):
        ...
"""

import logging

from fastapi import HTTPException, Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from fintrack.config import settings
from fintrack.services.constants import (
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_HEALTH,
    RATE_LIMIT_RETRY_AFTER,
    RATE_LIMIT_SEARCH,
    RATE_LIMIT_WRITE,
)
from fintrack.services.rate_limiter import RateLimiterGate

logger = logging.getLogger(__name__)


def _is_trusted_proxy(request: Request) -> bool:
    if settings.trust_proxy_headers:
        return True
    return get_remote_address(request) in settings.trusted_proxy_ips


def get_client_ip(request: Request) -> str:
    """
    Client IP for rate limiting.

    X-Forwarded-For / X-Real-IP are only honoured when the immediate peer
    is a trusted proxy, otherwise clients could pick their own key.
    """
    if _is_trusted_proxy(request):
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip
    return get_remote_address(request)


# =============================================================================
# LIMITERS
# =============================================================================

limiter = Limiter(
    key_func=get_client_ip,
    default_limits=[RATE_LIMIT_DEFAULT],
)

search_gate_limiter = RateLimiterGate()


def search_gate(request: Request) -> None:
    """
    Dependency enforcing the fixed-window gate for catalog search.

    Raises:
        HTTPException: 429 once the window's allowance is used up
    """
    result = search_gate_limiter.check(
        get_client_ip(request),
        max_requests=settings.rate_limit_max_requests,
        window_ms=settings.rate_limit_window_ms,
    )
    if not result.success:
        raise HTTPException(
            status_code=429,
            detail="Too many requests. Please try again later.",
            headers={"Retry-After": str(RATE_LIMIT_RETRY_AFTER), "X-RateLimit-Remaining": "0"},
        )


# =============================================================================
# RATE LIMIT EXCEEDED HANDLER
# =============================================================================

async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 in the standard error format, with Retry-After."""
    limit_info = str(exc.detail) if exc.detail else "Rate limit exceeded"
    logger.warning(f"Rate limit exceeded for {get_client_ip(request)}: {limit_info}")

    return JSONResponse(
        status_code=429,
        content={
            "error": "RateLimitError",
            "message": f"Too many requests. {limit_info}",
            "details": {"retry_after": RATE_LIMIT_RETRY_AFTER},
        },
        headers={"Retry-After": str(RATE_LIMIT_RETRY_AFTER)},
    )


__all__ = [
    "limiter",
    "search_gate",
    "search_gate_limiter",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_WRITE",
    "RATE_LIMIT_SEARCH",
    "RATE_LIMIT_HEALTH",
]
