"""/v1/credit-cards/expenses - record, edit and remove card purchases"""

import uuid
from typing import Union

from fastapi import APIRouter, Depends, Response, status

from card_ledger.api.dependencies import get_invoice_service, get_principal
from card_ledger.api.v1.schemas import (
    ExpenseResponse,
    ExpenseUpdateRequest,
    InstallmentPurchaseResponse,
    PurchaseRequest,
)
from card_ledger.domain.models import InstallmentResult, Principal
from card_ledger.services.invoices import InvoiceService

router = APIRouter()


@router.post(
    "/credit-cards/expenses",
    response_model=Union[InstallmentPurchaseResponse, ExpenseResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_expense(
    request_body: PurchaseRequest,
    principal: Principal = Depends(get_principal),
    service: InvoiceService = Depends(get_invoice_service),
):
    """
    Record a card purchase.

    type=single:      one expense on the invoice of its billing cycle, or on
                      invoice_id when given
    type=installment: installment_count expenses, one per monthly cycle,
                      the last absorbing the rounding remainder
    """
    result = service.create_expense(principal, request_body.to_purchase())

    if isinstance(result, InstallmentResult):
        return InstallmentPurchaseResponse(
            installments=[ExpenseResponse.model_validate(expense) for expense in result.expenses],
            installment_count=result.split.count,
            total_cents=result.split.total_cents,
            base_cents=result.split.base_cents,
            remainder_cents=result.split.remainder_cents,
        )
    return ExpenseResponse.model_validate(result)


@router.put("/credit-cards/expenses/{expense_id}", response_model=ExpenseResponse)
def update_expense(
    expense_id: uuid.UUID,
    request_body: ExpenseUpdateRequest,
    principal: Principal = Depends(get_principal),
    service: InvoiceService = Depends(get_invoice_service),
):
    expense = service.update_expense(principal, expense_id, request_body.changes())
    return ExpenseResponse.model_validate(expense)


@router.delete("/credit-cards/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(
    expense_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: InvoiceService = Depends(get_invoice_service),
):
    service.delete_expense(principal, expense_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
