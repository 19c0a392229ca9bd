"""/v1/credit-cards - card management and limit statistics"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from card_ledger.api.dependencies import get_principal
from card_ledger.api.v1.schemas import (
    CreditCardCreateRequest,
    CreditCardResponse,
    CreditCardStatsResponse,
    CreditCardUpdateRequest,
)
from card_ledger.domain.exceptions import CardNotFoundError
from card_ledger.domain.models import Principal
from card_ledger.infrastructure.database.repositories import CardRepository
from card_ledger.infrastructure.database.session import get_db
from card_ledger.services.directory import require_write

router = APIRouter()


@router.get("/credit-cards", response_model=List[CreditCardResponse])
def list_credit_cards(principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    """List the owner's cards, default card first"""
    cards = CardRepository(db).list_by_owner(principal.owner_id)
    return [CreditCardResponse.model_validate(card) for card in cards]


@router.get("/credit-cards/stats", response_model=CreditCardStatsResponse)
def get_credit_card_stats(principal: Principal = Depends(get_principal), db: Session = Depends(get_db)):
    cards = CardRepository(db).list_by_owner(principal.owner_id)
    default_card = next((card for card in cards if card.is_default), None)

    return CreditCardStatsResponse(
        total_cards=len(cards),
        total_limit_cents=sum(card.card_limit_cents for card in cards),
        has_default_card=default_card is not None,
        default_card_limit_cents=default_card.card_limit_cents if default_card else 0,
    )


@router.post("/credit-cards", response_model=CreditCardResponse, status_code=status.HTTP_201_CREATED)
def create_credit_card(
    request_body: CreditCardCreateRequest,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    require_write(principal, "create credit cards")
    card_repo = CardRepository(db)
    if request_body.is_default:
        card_repo.clear_default(principal.owner_id)

    card = card_repo.create(
        principal.owner_id,
        name=request_body.name.strip(),
        brand=request_body.brand.strip() if request_body.brand else None,
        card_limit_cents=request_body.card_limit_cents,
        closing_day=request_body.closing_day,
        due_day=request_body.due_day,
        is_default=request_body.is_default,
    )
    return CreditCardResponse.model_validate(card)


@router.put("/credit-cards/{card_id}", response_model=CreditCardResponse)
def update_credit_card(
    card_id: uuid.UUID,
    request_body: CreditCardUpdateRequest,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    """Update card fields; existing invoices keep their cycles and due dates"""
    require_write(principal, "edit credit cards")
    card_repo = CardRepository(db)
    card = card_repo.get_owned(card_id, principal.owner_id)
    if card is None:
        raise CardNotFoundError("Credit card not found")

    changes = request_body.changes()
    if "name" in changes:
        changes["name"] = changes["name"].strip()
    if "brand" in changes:
        changes["brand"] = changes["brand"].strip() if changes["brand"] else None
    if changes.get("is_default"):
        card_repo.clear_default(principal.owner_id)

    return CreditCardResponse.model_validate(card_repo.update(card, changes))


@router.delete("/credit-cards/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_credit_card(
    card_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    require_write(principal, "delete credit cards")
    card_repo = CardRepository(db)
    card = card_repo.get_owned(card_id, principal.owner_id)
    if card is None:
        raise CardNotFoundError("Credit card not found")

    card_repo.delete(card)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
