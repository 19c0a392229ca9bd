"""/v1/bank-accounts - accounts invoices are paid from"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from card_ledger.api.dependencies import get_principal
from card_ledger.api.v1.schemas import (
    BankAccountCreateRequest,
    BankAccountResponse,
    BankAccountUpdateRequest,
)
from card_ledger.domain.exceptions import BankAccountNotFoundError
from card_ledger.domain.models import Principal
from card_ledger.infrastructure.database.repositories import BankAccountRepository
from card_ledger.infrastructure.database.session import get_db
from card_ledger.services.directory import require_write

router = APIRouter()


@router.get("/bank-accounts", response_model=List[BankAccountResponse])
def list_bank_accounts(principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    accounts = BankAccountRepository(db).list_active(principal.owner_id)
    return [BankAccountResponse.model_validate(account) for account in accounts]


@router.get("/bank-accounts/default", response_model=Optional[BankAccountResponse])
def get_default_bank_account(principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    """Default active account, or null when none is marked"""
    account = BankAccountRepository(db).get_default(principal.owner_id)
    return BankAccountResponse.model_validate(account) if account else None


@router.post("/bank-accounts", response_model=BankAccountResponse, status_code=201)
def create_bank_account(
    request_body: BankAccountCreateRequest,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Create an account; marking it default unmarks the previous default"""
    require_write(principal, "create bank accounts")
    account_repo = BankAccountRepository(db)
    if request_body.is_default:
        account_repo.clear_default(principal.owner_id)

    account = account_repo.create(principal.owner_id, name=request_body.name, is_default=request_body.is_default)
    return BankAccountResponse.model_validate(account)


@router.put("/bank-accounts/{account_id}", response_model=BankAccountResponse)
def update_bank_account(
    account_id: uuid.UUID,
    request_body: BankAccountUpdateRequest,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    require_write(principal, "edit bank accounts")
    account_repo = BankAccountRepository(db)
    account = account_repo.get_owned(account_id, principal.owner_id)
    if account is None:
        raise BankAccountNotFoundError("Bank account not found")

    changes = request_body.changes()
    if changes.get("is_default"):
        account_repo.clear_default(principal.owner_id)

    return BankAccountResponse.model_validate(account_repo.update(account, changes))


@router.delete("/bank-accounts/{account_id}")
def delete_bank_account(
    account_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Deactivate an account; its payment history stays intact"""
    require_write(principal, "delete bank accounts")
    account_repo = BankAccountRepository(db)
    account = account_repo.get_owned(account_id, principal.owner_id)
    if account is None:
        raise BankAccountNotFoundError("Bank account not found")

    account_repo.deactivate(account)
    return {"message": "Bank account deleted"}
