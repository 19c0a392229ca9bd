"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, List, Optional, Union


class AccessLevel(str, Enum):
    VIEW_ONLY = "view_only"
    FULL_ACCESS = "full_access"


class InvoiceStatus(str, Enum):
    OPEN = "open"
    PAID = "paid"
    OVERDUE = "overdue"


class CategoryType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


@dataclass(frozen=True)
class Principal:
    """Authenticated caller plus the owner whose data it operates on"""

    user_id: str
    owner_id: str
    access_level: AccessLevel

    @property
    def can_write(self) -> bool:
        return self.access_level == AccessLevel.FULL_ACCESS


@dataclass(frozen=True)
class BillingCycle:
    """Month/year bucket an invoice covers"""

    month: int
    year: int


@dataclass
class SinglePurchase:
    """One expense placed in a single invoice"""

    name: str
    amount_cents: int
    purchase_date: date
    credit_card_id: Optional[uuid.UUID] = None
    invoice_id: Optional[uuid.UUID] = None
    category_id: Optional[uuid.UUID] = None
    note: Optional[str] = None


@dataclass
class InstallmentPurchase:
    """Purchase split into monthly installments across invoices"""

    name: str
    amount_cents: int
    credit_card_id: uuid.UUID
    installment_count: int
    first_installment_date: date
    category_id: Optional[uuid.UUID] = None
    note: Optional[str] = None


Purchase = Union[SinglePurchase, InstallmentPurchase]


@dataclass
class Installment:
    """Single slice of a split purchase"""

    number: int  # 1-based
    count: int
    purchase_date: date
    amount_cents: int

    @property
    def label(self) -> str:
        return f"{self.number}/{self.count}"


@dataclass
class InstallmentSplit:
    """Amount breakdown for a split purchase"""

    total_cents: int
    base_cents: int
    remainder_cents: int
    count: int
    installments: List[Installment] = field(default_factory=list)


@dataclass
class InstallmentResult:
    """Expenses created for an installment purchase"""

    expenses: List[Any]
    split: InstallmentSplit
