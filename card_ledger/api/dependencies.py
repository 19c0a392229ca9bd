"""Dependency injection for FastAPI endpoints"""

from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from card_ledger.domain.exceptions import AuthServiceError, NotAuthenticatedError
from card_ledger.domain.models import Principal
from card_ledger.infrastructure.clients.auth import AuthClient
from card_ledger.infrastructure.database.session import get_db
from card_ledger.infrastructure.observability.metrics import auth_failures_counter
from card_ledger.services.directory import Directory
from card_ledger.services.invoices import InvoiceService
from card_ledger.services.linked_users import LinkedUserService
from card_ledger.services.transfers import TransferService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_auth_client() -> AuthClient:
    """Provide auth service client instance"""
    return AuthClient()


async def get_principal(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
    auth_client: AuthClient = Depends(get_auth_client),
) -> Principal:
    """Authenticate the bearer token and resolve the effective owner"""
    if not authorization or not authorization.startswith("Bearer "):
        raise NotAuthenticatedError("Authentication token required")

    try:
        user = await auth_client.get_user(authorization[len("Bearer "):])
    except AuthServiceError:
        auth_failures_counter.inc()
        raise

    return Directory(db).resolve_principal(user.id)


def get_invoice_service(request: Request, db: Session = Depends(get_db)) -> InvoiceService:
    """Provide the invoice engine bound to this request's session"""
    return InvoiceService(db, request_id=get_request_id(request))


def get_linked_user_service(
    request: Request,
    db: Session = Depends(get_db),
    auth_client: AuthClient = Depends(get_auth_client),
) -> LinkedUserService:
    return LinkedUserService(db, auth_client, request_id=get_request_id(request))


def get_transfer_service(request: Request, db: Session = Depends(get_db)) -> TransferService:
    return TransferService(db, request_id=get_request_id(request))
