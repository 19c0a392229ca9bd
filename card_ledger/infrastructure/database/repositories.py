"""Data access layer for cards, invoices, expenses and the payment ledger

Every write commits on its own: multi-step operations are composed by the
service layer as sagas, not wrapped in one database transaction.
"""

import functools
import uuid
from datetime import date
from typing import Any, Callable, Dict, List, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from card_ledger.domain.exceptions import DuplicateRowError, StoreFailureError
from card_ledger.domain.models import BillingCycle
from card_ledger.infrastructure.database.models import (
    BankAccount,
    Category,
    CreditCard,
    CreditCardExpense,
    CreditCardInvoice,
    LedgerTransaction,
    LinkedUser,
    Transfer,
)

F = TypeVar("F", bound=Callable[..., Any])


def _is_unique_violation(exc: IntegrityError) -> bool:
    # PostgreSQL reports SQLSTATE 23505; SQLite only has the message text
    if getattr(exc.orig, "pgcode", None) == "23505":
        return True
    return "UNIQUE" in str(exc.orig).upper()


def store_call(func: F) -> F:
    """Translate SQLAlchemy failures into domain store errors"""

    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except IntegrityError as e:
            self.db.rollback()
            if _is_unique_violation(e):
                raise DuplicateRowError(f"{func.__qualname__}: uniqueness violation") from e
            raise StoreFailureError(f"{func.__qualname__}: integrity error") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreFailureError(f"{func.__qualname__}: {e}") from e

    return wrapper  # type: ignore[return-value]


class _Repository:
    def __init__(self, db: Session):
        self.db = db

    def _save(self, row):
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def _apply(self, row, changes: Dict[str, Any]):
        for key, value in changes.items():
            setattr(row, key, value)
        return self._save(row)


class CardRepository(_Repository):
    """Repository for credit cards"""

    @store_call
    def list_by_owner(self, owner_id: str) -> List[CreditCard]:
        return (
            self.db.query(CreditCard)
            .filter(CreditCard.user_id == owner_id)
            .order_by(CreditCard.is_default.desc(), CreditCard.name.asc())
            .all()
        )

    @store_call
    def get_owned(self, card_id: uuid.UUID, owner_id: str) -> Optional[CreditCard]:
        return (
            self.db.query(CreditCard)
            .filter(CreditCard.id == card_id, CreditCard.user_id == owner_id)
            .first()
        )

    @store_call
    def create(self, owner_id: str, **fields: Any) -> CreditCard:
        return self._save(CreditCard(user_id=owner_id, **fields))

    @store_call
    def update(self, card: CreditCard, changes: Dict[str, Any]) -> CreditCard:
        return self._apply(card, changes)

    @store_call
    def delete(self, card: CreditCard) -> None:
        self.db.delete(card)
        self.db.commit()

    @store_call
    def clear_default(self, owner_id: str) -> None:
        self.db.query(CreditCard).filter(
            CreditCard.user_id == owner_id, CreditCard.is_default.is_(True)
        ).update({CreditCard.is_default: False}, synchronize_session=False)
        self.db.commit()


class InvoiceRepository(_Repository):
    """Repository for monthly card invoices"""

    def _owned_query(self, owner_id: str):
        return (
            self.db.query(CreditCardInvoice)
            .join(CreditCard, CreditCardInvoice.credit_card_id == CreditCard.id)
            .filter(CreditCard.user_id == owner_id)
            .options(selectinload(CreditCardInvoice.expenses), selectinload(CreditCardInvoice.card))
        )

    @store_call
    def find_by_cycle(self, card_id: uuid.UUID, month: int, year: int) -> Optional[CreditCardInvoice]:
        """Look up an invoice by its natural key"""
        return (
            self.db.query(CreditCardInvoice)
            .filter(
                CreditCardInvoice.credit_card_id == card_id,
                CreditCardInvoice.month == month,
                CreditCardInvoice.year == year,
            )
            .first()
        )

    @store_call
    def get_owned(self, invoice_id: uuid.UUID, owner_id: str) -> Optional[CreditCardInvoice]:
        return self._owned_query(owner_id).filter(CreditCardInvoice.id == invoice_id).first()

    @store_call
    def list_owned(
        self,
        owner_id: str,
        card_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> List[CreditCardInvoice]:
        """Fetch invoices with expenses, newest cycle first"""
        query = self._owned_query(owner_id)
        if card_id is not None:
            query = query.filter(CreditCardInvoice.credit_card_id == card_id)
        if status is not None:
            query = query.filter(CreditCardInvoice.status == status)
        if month is not None:
            query = query.filter(CreditCardInvoice.month == month)
        if year is not None:
            query = query.filter(CreditCardInvoice.year == year)
        return query.order_by(CreditCardInvoice.year.desc(), CreditCardInvoice.month.desc()).all()

    @store_call
    def create(
        self,
        card_id: uuid.UUID,
        cycle: BillingCycle,
        due_date: date,
        note: Optional[str] = None,
    ) -> CreditCardInvoice:
        """
        Insert an open invoice for a cycle.

        Raises:
            DuplicateRowError: another invoice already holds (card, month, year)
        """
        return self._save(
            CreditCardInvoice(
                credit_card_id=card_id,
                month=cycle.month,
                year=cycle.year,
                due_date=due_date,
                status="open",
                note=note,
            )
        )

    @store_call
    def set_status(self, invoice: CreditCardInvoice, status: str) -> CreditCardInvoice:
        return self._apply(invoice, {"status": status})

    @store_call
    def delete(self, invoice: CreditCardInvoice) -> None:
        self.db.delete(invoice)
        self.db.commit()


class ExpenseRepository(_Repository):
    """Repository for invoice expenses"""

    @store_call
    def create(
        self,
        invoice_id: uuid.UUID,
        name: str,
        amount_cents: int,
        purchase_date: date,
        category_id: Optional[uuid.UUID] = None,
        note: Optional[str] = None,
        installment_label: Optional[str] = None,
        installment_count: Optional[int] = None,
    ) -> CreditCardExpense:
        return self._save(
            CreditCardExpense(
                invoice_id=invoice_id,
                name=name,
                amount_cents=amount_cents,
                purchase_date=purchase_date,
                category_id=category_id,
                note=note,
                installment_label=installment_label,
                installment_count=installment_count,
            )
        )

    @store_call
    def get_owned(self, expense_id: uuid.UUID, owner_id: str) -> Optional[CreditCardExpense]:
        return (
            self.db.query(CreditCardExpense)
            .join(CreditCardInvoice, CreditCardExpense.invoice_id == CreditCardInvoice.id)
            .join(CreditCard, CreditCardInvoice.credit_card_id == CreditCard.id)
            .filter(CreditCardExpense.id == expense_id, CreditCard.user_id == owner_id)
            .first()
        )

    @store_call
    def update(self, expense: CreditCardExpense, changes: Dict[str, Any]) -> CreditCardExpense:
        return self._apply(expense, changes)

    @store_call
    def delete(self, expense: CreditCardExpense) -> None:
        self.db.delete(expense)
        self.db.commit()

    @store_call
    def delete_by_ids(self, expense_ids: List[uuid.UUID]) -> int:
        if not expense_ids:
            return 0
        deleted = (
            self.db.query(CreditCardExpense)
            .filter(CreditCardExpense.id.in_(expense_ids))
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted

    @store_call
    def delete_for_invoice(self, invoice_id: uuid.UUID) -> int:
        deleted = (
            self.db.query(CreditCardExpense)
            .filter(CreditCardExpense.invoice_id == invoice_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted


class BankAccountRepository(_Repository):
    """Repository for bank accounts"""

    @store_call
    def list_active(self, owner_id: str) -> List[BankAccount]:
        return (
            self.db.query(BankAccount)
            .filter(BankAccount.user_id == owner_id, BankAccount.is_active.is_(True))
            .order_by(BankAccount.is_default.desc(), BankAccount.name.asc())
            .all()
        )

    @store_call
    def get_owned(self, account_id: uuid.UUID, owner_id: str) -> Optional[BankAccount]:
        return (
            self.db.query(BankAccount)
            .filter(
                BankAccount.id == account_id,
                BankAccount.user_id == owner_id,
                BankAccount.is_active.is_(True),
            )
            .first()
        )

    @store_call
    def get_default(self, owner_id: str) -> Optional[BankAccount]:
        return (
            self.db.query(BankAccount)
            .filter(
                BankAccount.user_id == owner_id,
                BankAccount.is_default.is_(True),
                BankAccount.is_active.is_(True),
            )
            .first()
        )

    @store_call
    def create(self, owner_id: str, name: str, is_default: bool = False) -> BankAccount:
        return self._save(BankAccount(user_id=owner_id, name=name, is_default=is_default, is_active=True))

    @store_call
    def update(self, account: BankAccount, changes: Dict[str, Any]) -> BankAccount:
        return self._apply(account, changes)

    @store_call
    def deactivate(self, account: BankAccount) -> BankAccount:
        return self._apply(account, {"is_active": False, "is_default": False})

    @store_call
    def clear_default(self, owner_id: str) -> None:
        self.db.query(BankAccount).filter(
            BankAccount.user_id == owner_id, BankAccount.is_default.is_(True)
        ).update({BankAccount.is_default: False}, synchronize_session=False)
        self.db.commit()


class CategoryRepository(_Repository):
    """Repository for categories"""

    @store_call
    def get_owned(self, category_id: uuid.UUID, owner_id: str) -> Optional[Category]:
        return (
            self.db.query(Category)
            .filter(Category.id == category_id, Category.user_id == owner_id)
            .first()
        )


class TransactionRepository(_Repository):
    """Repository for ledger transactions"""

    @store_call
    def create(
        self,
        owner_id: str,
        bank_account_id: uuid.UUID,
        category_id: uuid.UUID,
        amount_cents: int,
        description: str,
        transaction_date: date,
        type: str = "expense",
    ) -> LedgerTransaction:
        return self._save(
            LedgerTransaction(
                user_id=owner_id,
                bank_account_id=bank_account_id,
                category_id=category_id,
                type=type,
                amount_cents=amount_cents,
                description=description,
                date=transaction_date,
            )
        )

    @store_call
    def delete(self, transaction: LedgerTransaction) -> None:
        self.db.delete(transaction)
        self.db.commit()


class LinkedUserRepository(_Repository):
    """Repository for delegated-access links"""

    @store_call
    def find_active_link(self, linked_user_id: str) -> Optional[LinkedUser]:
        return (
            self.db.query(LinkedUser)
            .filter(LinkedUser.linked_user_id == linked_user_id, LinkedUser.is_active.is_(True))
            .first()
        )

    @store_call
    def list_active_for_owner(self, owner_id: str) -> List[LinkedUser]:
        return (
            self.db.query(LinkedUser)
            .filter(LinkedUser.main_user_id == owner_id, LinkedUser.is_active.is_(True))
            .order_by(LinkedUser.created_at.desc())
            .all()
        )

    @store_call
    def get_owned(self, link_id: uuid.UUID, owner_id: str) -> Optional[LinkedUser]:
        return (
            self.db.query(LinkedUser)
            .filter(LinkedUser.id == link_id, LinkedUser.main_user_id == owner_id)
            .first()
        )

    @store_call
    def create(
        self,
        owner_id: str,
        linked_user_id: str,
        permission_type: str,
        name: str,
        email: str,
        phone: Optional[str] = None,
    ) -> LinkedUser:
        return self._save(
            LinkedUser(
                main_user_id=owner_id,
                linked_user_id=linked_user_id,
                permission_type=permission_type,
                is_active=True,
                linked_user_name=name,
                linked_user_email=email,
                linked_user_phone=phone,
            )
        )

    @store_call
    def update(self, link: LinkedUser, changes: Dict[str, Any]) -> LinkedUser:
        return self._apply(link, changes)


class TransferRepository(_Repository):
    """Repository for transfers between bank accounts"""

    @store_call
    def list_by_owner(self, owner_id: str) -> List[Transfer]:
        return (
            self.db.query(Transfer)
            .options(selectinload(Transfer.from_account), selectinload(Transfer.to_account))
            .filter(Transfer.user_id == owner_id)
            .order_by(Transfer.transfer_date.desc(), Transfer.created_at.desc())
            .all()
        )

    @store_call
    def get_owned(self, transfer_id: uuid.UUID, owner_id: str) -> Optional[Transfer]:
        return (
            self.db.query(Transfer)
            .filter(Transfer.id == transfer_id, Transfer.user_id == owner_id)
            .first()
        )

    @store_call
    def create(
        self,
        owner_id: str,
        from_account_id: uuid.UUID,
        to_account_id: uuid.UUID,
        amount_cents: int,
        transfer_date: date,
        description: Optional[str] = None,
    ) -> Transfer:
        return self._save(
            Transfer(
                user_id=owner_id,
                from_account_id=from_account_id,
                to_account_id=to_account_id,
                amount_cents=amount_cents,
                transfer_date=transfer_date,
                description=description,
            )
        )

    @store_call
    def update(self, transfer: Transfer, changes: Dict[str, Any]) -> Transfer:
        return self._apply(transfer, changes)

    @store_call
    def delete(self, transfer: Transfer) -> None:
        self.db.delete(transfer)
        self.db.commit()
