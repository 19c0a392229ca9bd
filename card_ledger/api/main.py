"""FastAPI application factory"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from card_ledger.api.middleware import RequestContextMiddleware
from card_ledger.api.v1 import bank_accounts, credit_cards, expenses, invoices, linked_users, transfers
from card_ledger.domain.exceptions import (
    AuthServiceError,
    ConflictError,
    DomainException,
    ForbiddenError,
    InvalidInputError,
    NotAuthenticatedError,
    NotFoundError,
    StoreFailureError,
)
from card_ledger.infrastructure.observability.logging import setup_logging
from card_ledger.config import settings

# Setup structured logging
setup_logging(settings.log_level)

# Most specific first
ERROR_STATUS_CODES = (
    (NotAuthenticatedError, 401),
    (ForbiddenError, 403),
    (NotFoundError, 404),
    (InvalidInputError, 400),
    (ConflictError, 409),
    (AuthServiceError, 503),
    (StoreFailureError, 503),
)


def status_code_for(exc: DomainException) -> int:
    for exc_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 500


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Map domain errors to HTTP responses"""
    status_code = status_code_for(exc)
    request_id = getattr(request.state, "request_id", "unknown")

    if status_code >= 500:
        logging.error(f"{type(exc).__name__}: {exc}", extra={"request_id": request_id})
        detail = "Service temporarily unavailable" if status_code == 503 else "Internal server error"
    else:
        logging.warning(f"{type(exc).__name__}: {exc}", extra={"request_id": request_id})
        detail = str(exc)

    return JSONResponse(status_code=status_code, content={"detail": detail})


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Card Ledger",
        description="Credit card invoices, installment purchases and invoice payments",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(DomainException, domain_exception_handler)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers; invoice/expense paths before the /credit-cards/{card_id} routes
    app.include_router(invoices.router, prefix="/v1", tags=["invoices"])
    app.include_router(expenses.router, prefix="/v1", tags=["expenses"])
    app.include_router(credit_cards.router, prefix="/v1", tags=["credit-cards"])
    app.include_router(bank_accounts.router, prefix="/v1", tags=["bank-accounts"])
    app.include_router(transfers.router, prefix="/v1", tags=["transfers"])
    app.include_router(linked_users.router, prefix="/v1", tags=["linked-users"])

    return app


app = create_app()
