"""Pydantic schemas for API request/response validation"""

import uuid
from datetime import date, datetime
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from card_ledger.domain.models import AccessLevel, InstallmentPurchase, SinglePurchase


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PartialUpdateRequest(BaseModel):
    """Update body: omitted fields stay untouched, null only clears nullable columns"""

    nullable_fields: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_null_for_required_fields(self):
        cleared = sorted(
            name for name in self.model_fields_set if getattr(self, name) is None and name not in self.nullable_fields
        )
        if cleared:
            raise ValueError(f"Fields cannot be null: {', '.join(cleared)}")
        return self

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


# Credit cards


class CreditCardCreateRequest(BaseModel):
    """Request body for POST /v1/credit-cards"""

    name: str = Field(..., min_length=1)
    card_limit_cents: int = Field(..., gt=0, description="Credit limit in cents")
    closing_day: int = Field(..., ge=1, le=31, description="Day of month the cycle closes")
    due_day: int = Field(..., ge=1, le=31, description="Day of month the invoice is due")
    brand: Optional[str] = None
    is_default: bool = False


class CreditCardUpdateRequest(PartialUpdateRequest):
    """Request body for PUT /v1/credit-cards/{card_id}"""

    nullable_fields: ClassVar[Tuple[str, ...]] = ("brand",)

    name: Optional[str] = Field(None, min_length=1)
    card_limit_cents: Optional[int] = Field(None, gt=0)
    closing_day: Optional[int] = Field(None, ge=1, le=31)
    due_day: Optional[int] = Field(None, ge=1, le=31)
    brand: Optional[str] = None
    is_default: Optional[bool] = None


class CreditCardResponse(ORMModel):
    id: uuid.UUID
    name: str
    brand: Optional[str] = None
    card_limit_cents: int
    closing_day: int
    due_day: int
    is_default: bool


class CreditCardStatsResponse(BaseModel):
    """Response for GET /v1/credit-cards/stats"""

    total_cards: int
    total_limit_cents: int
    has_default_card: bool
    default_card_limit_cents: int


# Expenses


class ExpenseResponse(ORMModel):
    id: uuid.UUID
    invoice_id: uuid.UUID
    category_id: Optional[uuid.UUID] = None
    name: str
    amount_cents: int
    purchase_date: date
    note: Optional[str] = None
    installment_label: Optional[str] = None
    installment_count: Optional[int] = None


class SinglePurchaseRequest(BaseModel):
    """One purchase billed on the invoice of its cycle (or on invoice_id)"""

    type: Literal["single"]
    name: str = Field(..., min_length=1)
    amount_cents: int = Field(..., gt=0)
    purchase_date: date
    credit_card_id: Optional[uuid.UUID] = None
    invoice_id: Optional[uuid.UUID] = None
    category_id: Optional[uuid.UUID] = None
    note: Optional[str] = None

    def to_purchase(self) -> SinglePurchase:
        return SinglePurchase(
            name=self.name,
            amount_cents=self.amount_cents,
            purchase_date=self.purchase_date,
            credit_card_id=self.credit_card_id,
            invoice_id=self.invoice_id,
            category_id=self.category_id,
            note=self.note,
        )


class InstallmentPurchaseRequest(BaseModel):
    """Purchase split into monthly installments"""

    type: Literal["installment"]
    name: str = Field(..., min_length=1)
    amount_cents: int = Field(..., gt=0)
    credit_card_id: uuid.UUID
    installment_count: int
    first_installment_date: date
    category_id: Optional[uuid.UUID] = None
    note: Optional[str] = None

    def to_purchase(self) -> InstallmentPurchase:
        return InstallmentPurchase(
            name=self.name,
            amount_cents=self.amount_cents,
            credit_card_id=self.credit_card_id,
            installment_count=self.installment_count,
            first_installment_date=self.first_installment_date,
            category_id=self.category_id,
            note=self.note,
        )


PurchaseRequest = Annotated[
    Union[SinglePurchaseRequest, InstallmentPurchaseRequest],
    Field(discriminator="type"),
]


class InstallmentPurchaseResponse(BaseModel):
    """Response for an installment purchase"""

    installments: List[ExpenseResponse]
    installment_count: int
    total_cents: int
    base_cents: int
    remainder_cents: int


class ExpenseUpdateRequest(PartialUpdateRequest):
    """Request body for PUT /v1/credit-cards/expenses/{expense_id}"""

    nullable_fields: ClassVar[Tuple[str, ...]] = ("category_id", "note")

    name: Optional[str] = Field(None, min_length=1)
    amount_cents: Optional[int] = Field(None, gt=0)
    purchase_date: Optional[date] = None
    category_id: Optional[uuid.UUID] = None
    note: Optional[str] = None


# Invoices


class InvoiceCardSummary(ORMModel):
    id: uuid.UUID
    name: str
    brand: Optional[str] = None


class InvoiceResponse(ORMModel):
    id: uuid.UUID
    credit_card_id: uuid.UUID
    month: int
    year: int
    due_date: date
    status: str
    note: Optional[str] = None
    total_cents: int
    card: Optional[InvoiceCardSummary] = None
    expenses: List[ExpenseResponse] = []


class InvoiceCreateRequest(BaseModel):
    """Request body for POST /v1/credit-cards/invoices"""

    credit_card_id: uuid.UUID
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=1)
    due_date: date
    note: Optional[str] = None


class InvoiceStatusRequest(BaseModel):
    status: str = Field(..., description="open | paid | overdue")


class InvoicePaymentRequest(BaseModel):
    """Request body for POST /v1/credit-cards/invoices/pay"""

    invoice_id: uuid.UUID
    bank_account_id: uuid.UUID
    category_id: uuid.UUID
    payment_date: date


class TransactionResponse(ORMModel):
    id: uuid.UUID
    bank_account_id: uuid.UUID
    category_id: uuid.UUID
    type: str
    amount_cents: int
    description: str
    date: date


class InvoicePaymentResponse(BaseModel):
    transaction: TransactionResponse
    invoice: InvoiceResponse


# Bank accounts


class BankAccountCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    is_default: bool = False


class BankAccountUpdateRequest(PartialUpdateRequest):
    name: Optional[str] = Field(None, min_length=1)
    is_default: Optional[bool] = None


class BankAccountResponse(ORMModel):
    id: uuid.UUID
    name: str
    is_default: bool
    is_active: bool


# Linked users

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


class LinkedUserCreateRequest(BaseModel):
    """Request body for POST /v1/linked-users"""

    name: str = Field(..., min_length=1)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6)
    whatsapp: str = Field(..., min_length=1)
    permission_type: AccessLevel


class LinkedUserUpdateRequest(PartialUpdateRequest):
    """Request body for PUT /v1/linked-users/{link_id}"""

    nullable_fields: ClassVar[Tuple[str, ...]] = ("linked_user_phone",)

    permission_type: Optional[AccessLevel] = None
    is_active: Optional[bool] = None
    linked_user_name: Optional[str] = Field(None, min_length=1)
    linked_user_email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    linked_user_phone: Optional[str] = None


class LinkedUserInfo(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    phone: str = ""


class LinkedUserResponse(BaseModel):
    id: uuid.UUID
    linked_user_id: str
    permission_type: AccessLevel
    is_active: bool
    created_at: Optional[datetime] = None
    user_info: LinkedUserInfo

    @classmethod
    def from_link(cls, link) -> "LinkedUserResponse":
        return cls(
            id=link.id,
            linked_user_id=link.linked_user_id,
            permission_type=link.permission_type,
            is_active=link.is_active,
            created_at=link.created_at,
            user_info=LinkedUserInfo(
                id=link.linked_user_id,
                email=link.linked_user_email,
                name=link.linked_user_name,
                phone=link.linked_user_phone or "",
            ),
        )


class LinkedUserListResponse(BaseModel):
    total: int
    linked_users: List[LinkedUserResponse]


# Transfers


class TransferCreateRequest(BaseModel):
    """Request body for POST /v1/transfers"""

    from_account_id: uuid.UUID
    to_account_id: uuid.UUID
    amount_cents: int = Field(..., gt=0)
    transfer_date: date
    description: Optional[str] = None


class TransferUpdateRequest(PartialUpdateRequest):
    nullable_fields: ClassVar[Tuple[str, ...]] = ("description",)

    from_account_id: Optional[uuid.UUID] = None
    to_account_id: Optional[uuid.UUID] = None
    amount_cents: Optional[int] = Field(None, gt=0)
    transfer_date: Optional[date] = None
    description: Optional[str] = None


class TransferAccountSummary(ORMModel):
    id: uuid.UUID
    name: str
    is_default: bool


class TransferResponse(ORMModel):
    id: uuid.UUID
    from_account_id: uuid.UUID
    to_account_id: uuid.UUID
    amount_cents: int
    transfer_date: date
    description: Optional[str] = None
    from_account: Optional[TransferAccountSummary] = None
    to_account: Optional[TransferAccountSummary] = None


class MostActiveAccount(BaseModel):
    id: uuid.UUID
    name: str
    count: int


class TransferStatsResponse(BaseModel):
    """Response for GET /v1/transfers/stats"""

    total_transfers: int
    total_amount_cents: int
    monthly_transfers: int
    monthly_amount_cents: int
    most_active_account: Optional[MostActiveAccount] = None
