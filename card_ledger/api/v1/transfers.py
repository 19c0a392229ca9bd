"""/v1/transfers - moves between the owner's bank accounts"""

import uuid
from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Response, status

from card_ledger.api.dependencies import get_principal, get_transfer_service
from card_ledger.api.v1.schemas import (
    MostActiveAccount,
    TransferCreateRequest,
    TransferResponse,
    TransferStatsResponse,
    TransferUpdateRequest,
)
from card_ledger.domain.models import Principal
from card_ledger.services.transfers import TransferService

router = APIRouter()


@router.get("/transfers", response_model=List[TransferResponse])
def list_transfers(
    principal: Principal = Depends(get_principal),
    service: TransferService = Depends(get_transfer_service),
):
    """List transfers with both accounts, most recent first"""
    return [TransferResponse.model_validate(transfer) for transfer in service.list_transfers(principal)]


@router.get("/transfers/stats", response_model=TransferStatsResponse)
def get_transfer_stats(
    principal: Principal = Depends(get_principal),
    service: TransferService = Depends(get_transfer_service),
):
    stats = service.transfer_stats(principal, today=date.today())
    most_active = stats.most_active_account
    return TransferStatsResponse(
        total_transfers=stats.total_transfers,
        total_amount_cents=stats.total_amount_cents,
        monthly_transfers=stats.monthly_transfers,
        monthly_amount_cents=stats.monthly_amount_cents,
        most_active_account=(
            MostActiveAccount(id=most_active.id, name=most_active.name, count=most_active.count)
            if most_active
            else None
        ),
    )


@router.post("/transfers", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
def create_transfer(
    request_body: TransferCreateRequest,
    principal: Principal = Depends(get_principal),
    service: TransferService = Depends(get_transfer_service),
):
    transfer = service.create_transfer(
        principal,
        from_account_id=request_body.from_account_id,
        to_account_id=request_body.to_account_id,
        amount_cents=request_body.amount_cents,
        transfer_date=request_body.transfer_date,
        description=request_body.description,
    )
    return TransferResponse.model_validate(transfer)


@router.put("/transfers/{transfer_id}", response_model=TransferResponse)
def update_transfer(
    transfer_id: uuid.UUID,
    request_body: TransferUpdateRequest,
    principal: Principal = Depends(get_principal),
    service: TransferService = Depends(get_transfer_service),
):
    transfer = service.update_transfer(principal, transfer_id, request_body.changes())
    return TransferResponse.model_validate(transfer)


@router.delete("/transfers/{transfer_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transfer(
    transfer_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: TransferService = Depends(get_transfer_service),
):
    service.delete_transfer(principal, transfer_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
