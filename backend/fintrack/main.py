# backend/fintrack/main.py
"""
FastAPI application entry point.

This file:
- Configures application-wide logging
- Creates the FastAPI application
- Starts and stops the background price refresh
- Registers global exception handlers
- Registers all routers
- Defines global endpoints (health checks)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from fintrack.config import settings
from fintrack.database import check_database_health
from fintrack.dependencies import get_finance_state, get_fund_quote_provider, get_refresh_scheduler
from fintrack.middleware import (
    RATE_LIMIT_HEALTH,
    CorrelationIdMiddleware,
    SlowAPIMiddleware,
    limiter,
    rate_limit_exceeded_handler,
)
from fintrack.routers import (
    accounts_router,
    bonds_router,
    dashboard_router,
    family_transfers_router,
    goals_router,
    holdings_router,
    mutual_funds_router,
)
from fintrack.schemas.errors import ErrorDetail, ValidationErrorDetail
from fintrack.services.exceptions import (
    CompensationError,
    InsufficientFundsError,
    MarketDataError,
    NotFoundError,
    ProviderUnavailableError,
    RecordValidationError,
    ServiceError,
    StoreOperationError,
    ValidationError,
)
from fintrack.utils import setup_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LOGGING SETUP (must be before app creation)
# =============================================================================

setup_logging(settings.log_level, settings.log_format)


# =============================================================================
# LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load state once, then refresh holdings in the background until shutdown."""
    state = get_finance_state()
    scheduler = get_refresh_scheduler()
    scheduler.set_handler(state.refresh_holdings)
    scheduler.start()
    logger.info(f"{settings.app_name} started ({settings.environment})")
    try:
        yield
    finally:
        scheduler.stop()
        get_fund_quote_provider().close()
        get_fund_quote_provider.cache_clear()
        logger.info(f"{settings.app_name} stopped")


# =============================================================================
# APPLICATION SETUP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Personal portfolio aggregation, valuation and account ledger API",
    version="0.1.0",
    lifespan=lifespan,
)


# =============================================================================
# CORS MIDDLEWARE
# =============================================================================
# Origins are configured via CORS_ORIGINS environment variable

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


# =============================================================================
# MIDDLEWARE (order matters: last added = first executed)
# =============================================================================

# Attach limiter to app state (required by slowapi)
app.state.limiter = limiter

app.add_middleware(SlowAPIMiddleware)

# Extracts/generates correlation IDs and echoes them in response headers
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# Service-layer exceptions carry no HTTP knowledge; they are mapped to
# status codes here. Starlette resolves handlers by walking the MRO, so
# subclasses get their own handler before falling back to ServiceError.
# =============================================================================

app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle command validation errors (400)."""
    logger.warning(f"Validation error: {exc}")
    return JSONResponse(
        status_code=400,
        content=ErrorDetail(
            error="ValidationError",
            message=str(exc),
            details={"field": exc.field} if exc.field else None,
        ).model_dump(),
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Handle missing accounts and rows (404)."""
    logger.warning(f"Not found: {exc}")
    return JSONResponse(
        status_code=404,
        content=ErrorDetail(
            error=type(exc).__name__,
            message=str(exc),
            details={
                "resource_type": exc.resource_type,
                "resource_id": exc.resource_id,
            },
        ).model_dump(),
    )


@app.exception_handler(InsufficientFundsError)
async def insufficient_funds_handler(request: Request, exc: InsufficientFundsError) -> JSONResponse:
    """Handle debits larger than the balance (409)."""
    logger.warning(f"Insufficient funds: {exc}")
    return JSONResponse(
        status_code=409,
        content=ErrorDetail(
            error="InsufficientFundsError",
            message=str(exc),
            details={
                "account_id": exc.account_id,
                "available": str(exc.available),
                "required": str(exc.required),
            },
        ).model_dump(),
    )


@app.exception_handler(StoreOperationError)
async def store_error_handler(request: Request, exc: StoreOperationError) -> JSONResponse:
    """Handle record store failures (502)."""
    logger.error(f"Store error on {exc.table}.{exc.operation}: {exc}")
    return JSONResponse(
        status_code=502,
        content=ErrorDetail(
            error="StoreOperationError",
            message=str(exc),
            details={"table": exc.table, "operation": exc.operation, "code": exc.code},
        ).model_dump(),
    )


@app.exception_handler(RecordValidationError)
async def record_validation_handler(request: Request, exc: RecordValidationError) -> JSONResponse:
    """Handle store rows that do not match their schema (502)."""
    logger.error(f"Malformed record: {exc}")
    return JSONResponse(
        status_code=502,
        content=ErrorDetail(
            error="RecordValidationError",
            message=str(exc),
            details={"table": exc.table},
        ).model_dump(),
    )


@app.exception_handler(CompensationError)
async def compensation_error_handler(request: Request, exc: CompensationError) -> JSONResponse:
    """Handle failed rollbacks (500). Balance and ledger may disagree."""
    logger.critical(f"Compensation failed: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="CompensationError",
            message=str(exc),
            details={"step": exc.step},
        ).model_dump(),
    )


@app.exception_handler(ProviderUnavailableError)
async def provider_unavailable_handler(request: Request, exc: ProviderUnavailableError) -> JSONResponse:
    """Handle an unreachable quote provider (503)."""
    logger.error(f"Provider unavailable: {exc}")
    return JSONResponse(
        status_code=503,
        content=ErrorDetail(
            error="ProviderUnavailableError",
            message=str(exc),
            details={"provider": exc.provider},
        ).model_dump(),
    )


@app.exception_handler(MarketDataError)
async def market_data_error_handler(request: Request, exc: MarketDataError) -> JSONResponse:
    """Handle malformed quote provider responses (502)."""
    logger.error(f"Market data error: {exc}")
    return JSONResponse(
        status_code=502,
        content=ErrorDetail(
            error="MarketDataError",
            message=str(exc),
            details={"provider": exc.provider},
        ).model_dump(),
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Handle generic service errors (500)."""
    logger.error(f"Service error: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorDetail(
            error="ServiceError",
            message=str(exc),
            details=None,
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle all HTTPExceptions with consistent error format.

    Converts FastAPI's default {"detail": "..."} format to our standard
    ErrorDetail format for API consistency.
    """
    error_types = {
        400: "BadRequestError",
        404: "NotFoundError",
        405: "MethodNotAllowedError",
        409: "ConflictError",
        422: "ValidationError",
        429: "RateLimitError",
        500: "InternalServerError",
        503: "ServiceUnavailableError",
    }
    error_type = error_types.get(exc.status_code, "HTTPError")

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorDetail(
            error=error_type,
            message=str(exc.detail) if exc.detail else "An error occurred",
            details=None,
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
        request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert the default 422 validation error to our ValidationErrorDetail format."""
    errors = []
    for error in exc.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        })

    return JSONResponse(
        status_code=422,
        content=ValidationErrorDetail(
            error="ValidationError",
            message="Request validation failed",
            details=errors,
        ).model_dump(),
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(accounts_router)  # /accounts/*
app.include_router(holdings_router)  # /holdings/*
app.include_router(dashboard_router)  # /dashboard/
app.include_router(goals_router)  # /goals/*
app.include_router(family_transfers_router)  # /family-transfers/*
app.include_router(bonds_router)  # /bonds/search
app.include_router(mutual_funds_router)  # /mutual-funds/search, /mutual-funds/quote


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

@app.get("/", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def root(request: Request):
    """API root - returns basic application info."""
    return {
        "message": f"Welcome to {settings.app_name}!",
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def health_check(request: Request):
    """
    Health check endpoint.

    **Response Status Codes:**
    - 200: Database reachable; the state report is informational
    - 503: Database unreachable

    The state check reports which tables failed to load at startup and
    whether a load is in progress. Failed tables degrade the status but
    never cause a 503 on their own.
    """
    checks = {"database": check_database_health()}
    overall_status = "healthy"

    state = get_finance_state()
    failed = sorted(state.last_load.failed) if state.last_load else []
    checks["state"] = {
        "status": "degraded" if failed else "healthy",
        "loading": state.loading,
        "failed_tables": failed,
    }
    if failed:
        overall_status = "degraded"

    if checks["database"]["status"] != "healthy":
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "checks": checks},
        )

    return {"status": overall_status, "checks": checks}


@app.get("/health/live", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def liveness_check(request: Request):
    """Liveness probe: always 200 while the process is alive."""
    return {"status": "alive"}
