"""/v1/credit-cards/invoices - invoice listing, manual creation, status and payment"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from card_ledger.api.dependencies import get_invoice_service, get_principal
from card_ledger.api.v1.schemas import (
    InvoiceCreateRequest,
    InvoicePaymentRequest,
    InvoicePaymentResponse,
    InvoiceResponse,
    InvoiceStatusRequest,
    TransactionResponse,
)
from card_ledger.domain.models import Principal
from card_ledger.services.invoices import InvoiceService

router = APIRouter()


@router.get("/credit-cards/invoices", response_model=List[InvoiceResponse])
def list_invoices(
    credit_card_id: Optional[uuid.UUID] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=1),
    principal: Principal = Depends(get_principal),
    service: InvoiceService = Depends(get_invoice_service),
):
    """List invoices with their expenses, newest cycle first"""
    invoices = service.list_invoices(
        principal, card_id=credit_card_id, status=status_filter, month=month, year=year
    )
    return [InvoiceResponse.model_validate(invoice) for invoice in invoices]


@router.post("/credit-cards/invoices", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
def create_invoice(
    request_body: InvoiceCreateRequest,
    principal: Principal = Depends(get_principal),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Manually open an invoice for a card cycle (409 if it already exists)"""
    invoice = service.create_invoice(
        principal,
        card_id=request_body.credit_card_id,
        month=request_body.month,
        year=request_body.year,
        due_date=request_body.due_date,
        note=request_body.note,
    )
    return InvoiceResponse.model_validate(invoice)


@router.post("/credit-cards/invoices/pay", response_model=InvoicePaymentResponse)
def pay_invoice(
    request_body: InvoicePaymentRequest,
    principal: Principal = Depends(get_principal),
    service: InvoiceService = Depends(get_invoice_service),
):
    """
    Pay an invoice from a bank account.

    Creates the payment transaction and marks the invoice paid; if the
    invoice update fails the transaction is deleted again.
    """
    result = service.pay_invoice(
        principal,
        invoice_id=request_body.invoice_id,
        bank_account_id=request_body.bank_account_id,
        category_id=request_body.category_id,
        payment_date=request_body.payment_date,
    )
    return InvoicePaymentResponse(
        transaction=TransactionResponse.model_validate(result.transaction),
        invoice=InvoiceResponse.model_validate(result.invoice),
    )


@router.get("/credit-cards/invoices/{invoice_id}", response_model=InvoiceResponse)
def get_invoice(
    invoice_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: InvoiceService = Depends(get_invoice_service),
):
    return InvoiceResponse.model_validate(service.get_invoice(principal, invoice_id))


@router.put("/credit-cards/invoices/{invoice_id}/status", response_model=InvoiceResponse)
def set_invoice_status(
    invoice_id: uuid.UUID,
    request_body: InvoiceStatusRequest,
    principal: Principal = Depends(get_principal),
    service: InvoiceService = Depends(get_invoice_service),
):
    invoice = service.set_invoice_status(principal, invoice_id, request_body.status)
    return InvoiceResponse.model_validate(invoice)


@router.delete("/credit-cards/invoices/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invoice(
    invoice_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: InvoiceService = Depends(get_invoice_service),
):
    """Delete an invoice and every expense billed on it"""
    service.delete_invoice(principal, invoice_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
