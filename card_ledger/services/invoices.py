"""Invoice allocation engine

Places card purchases on monthly invoices, splits installment purchases
and pays invoices. The store offers no cross-table transactions, so
multi-step writes run as sagas with explicit compensating actions:

    installment purchase  each slice: lookup-or-create invoice → insert expense
                          on failure: delete the slices already inserted
    invoice payment       insert transaction → mark invoice paid
                          on failure: delete the transaction
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from card_ledger.config import settings
from card_ledger.domain.billing import compute_due_date, resolve_cycle
from card_ledger.domain.exceptions import (
    AlreadyPaidError,
    BankAccountNotFoundError,
    CardNotFoundError,
    CategoryNotFoundError,
    DuplicateInvoiceError,
    DuplicateRowError,
    ExpenseNotFoundError,
    InvalidCategoryError,
    InvalidInputError,
    InvoiceNotFoundError,
    StoreFailureError,
)
from card_ledger.domain.installments import split_installments
from card_ledger.domain.models import (
    BillingCycle,
    CategoryType,
    InstallmentPurchase,
    InstallmentResult,
    InvoiceStatus,
    Principal,
    Purchase,
    SinglePurchase,
)
from card_ledger.infrastructure.database.models import (
    CreditCard,
    CreditCardExpense,
    CreditCardInvoice,
    LedgerTransaction,
)
from card_ledger.infrastructure.database.repositories import (
    BankAccountRepository,
    CardRepository,
    CategoryRepository,
    ExpenseRepository,
    InvoiceRepository,
    TransactionRepository,
)
from card_ledger.infrastructure.observability.logging import log_purchase
from card_ledger.infrastructure.observability.metrics import (
    invoice_created_counter,
    invoice_payment_counter,
    invoice_race_fallback_counter,
    record_compensation,
    record_expenses,
)
from card_ledger.services.directory import require_write

logger = logging.getLogger(__name__)

EDITABLE_EXPENSE_FIELDS = ("name", "amount_cents", "purchase_date", "category_id", "note")
REQUIRED_EXPENSE_FIELDS = ("name", "amount_cents", "purchase_date")


@dataclass
class PaymentResult:
    transaction: LedgerTransaction
    invoice: CreditCardInvoice


def _parse_status(status: str) -> InvoiceStatus:
    try:
        return InvoiceStatus(status)
    except ValueError:
        raise InvalidInputError(f"Invalid invoice status: {status}") from None


class InvoiceService:
    """Invoice and expense operations scoped to a principal's effective owner"""

    def __init__(
        self,
        db: Session,
        due_day_overflow: Optional[str] = None,
        max_installments: Optional[int] = None,
        request_id: Optional[str] = None,
    ):
        self.cards = CardRepository(db)
        self.invoices = InvoiceRepository(db)
        self.expenses = ExpenseRepository(db)
        self.accounts = BankAccountRepository(db)
        self.categories = CategoryRepository(db)
        self.transactions = TransactionRepository(db)
        self.due_day_overflow = due_day_overflow or settings.due_day_overflow
        self.max_installments = max_installments or settings.max_installments
        self.request_id = request_id

    def _log_extra(self, principal: Principal, step: str, **fields: Any) -> Dict[str, Any]:
        return {"request_id": self.request_id, "owner_id": principal.owner_id, "step": step, **fields}

    # Lookups

    def _get_card(self, principal: Principal, card_id: uuid.UUID) -> CreditCard:
        card = self.cards.get_owned(card_id, principal.owner_id)
        if card is None:
            raise CardNotFoundError("Credit card not found")
        return card

    def _get_invoice(self, principal: Principal, invoice_id: uuid.UUID) -> CreditCardInvoice:
        invoice = self.invoices.get_owned(invoice_id, principal.owner_id)
        if invoice is None:
            raise InvoiceNotFoundError("Invoice not found")
        return invoice

    def _get_expense(self, principal: Principal, expense_id: uuid.UUID) -> CreditCardExpense:
        expense = self.expenses.get_owned(expense_id, principal.owner_id)
        if expense is None:
            raise ExpenseNotFoundError("Expense not found")
        return expense

    def _check_category(self, principal: Principal, category_id: Optional[uuid.UUID]) -> None:
        if category_id is not None and self.categories.get_owned(category_id, principal.owner_id) is None:
            raise CategoryNotFoundError("Category not found")

    # Invoice lookup-or-create

    def get_or_create_invoice(
        self, principal: Principal, card_id: uuid.UUID, cycle: BillingCycle
    ) -> CreditCardInvoice:
        """Return the card's invoice for a cycle, creating it when missing"""
        card = self._get_card(principal, card_id)
        return self._invoice_for_cycle(principal, card, cycle)

    def _invoice_for_cycle(
        self, principal: Principal, card: CreditCard, cycle: BillingCycle
    ) -> CreditCardInvoice:
        invoice = self.invoices.find_by_cycle(card.id, cycle.month, cycle.year)
        if invoice is not None:
            return invoice

        due_date = compute_due_date(cycle.month, cycle.year, card.due_day, self.due_day_overflow)
        try:
            invoice = self.invoices.create(card.id, cycle, due_date)
        except DuplicateRowError:
            # A concurrent caller inserted the same cycle first; reuse its row
            invoice_race_fallback_counter.inc()
            invoice = self.invoices.find_by_cycle(card.id, cycle.month, cycle.year)
            if invoice is None:
                raise StoreFailureError("Invoice vanished after uniqueness violation")
            return invoice

        invoice_created_counter.labels(origin="auto").inc()
        logger.info(
            "Invoice created",
            extra=self._log_extra(
                principal, "invoice_created", invoice_id=str(invoice.id), month=cycle.month, year=cycle.year
            ),
        )
        return invoice

    # Expenses

    def create_expense(self, principal: Principal, purchase: Purchase):
        """
        Record a card purchase.

        Returns:
            CreditCardExpense for a SinglePurchase, InstallmentResult for an
            InstallmentPurchase
        """
        require_write(principal, "create expenses")
        if isinstance(purchase, InstallmentPurchase):
            return self._create_installments(principal, purchase)
        return self._create_single(principal, purchase)

    def _create_single(self, principal: Principal, purchase: SinglePurchase) -> CreditCardExpense:
        if purchase.amount_cents <= 0:
            raise InvalidInputError("Amount must be greater than zero")
        self._check_category(principal, purchase.category_id)

        if purchase.invoice_id is not None:
            # Caller picked the invoice: no cycle resolution, ownership check only
            invoice = self._get_invoice(principal, purchase.invoice_id)
        elif purchase.credit_card_id is not None:
            card = self._get_card(principal, purchase.credit_card_id)
            cycle = resolve_cycle(purchase.purchase_date, card.closing_day)
            invoice = self._invoice_for_cycle(principal, card, cycle)
        else:
            raise InvalidInputError("Either invoice_id or credit_card_id is required")

        expense = self.expenses.create(
            invoice_id=invoice.id,
            name=purchase.name,
            amount_cents=purchase.amount_cents,
            purchase_date=purchase.purchase_date,
            category_id=purchase.category_id,
            note=purchase.note,
        )

        record_expenses("single", 1)
        log_purchase(principal.owner_id, "single", purchase.amount_cents, 1, self.request_id)
        return expense

    def _create_installments(self, principal: Principal, purchase: InstallmentPurchase) -> InstallmentResult:
        split = split_installments(
            purchase.amount_cents,
            purchase.installment_count,
            purchase.first_installment_date,
            max_installments=self.max_installments,
        )
        card = self._get_card(principal, purchase.credit_card_id)
        self._check_category(principal, purchase.category_id)

        created: List[CreditCardExpense] = []
        created_ids: List[uuid.UUID] = []
        try:
            for installment in split.installments:
                cycle = resolve_cycle(installment.purchase_date, card.closing_day)
                invoice = self._invoice_for_cycle(principal, card, cycle)
                note = (
                    f"{purchase.note} - Installment {installment.label}"
                    if purchase.note
                    else f"Installment {installment.label}"
                )
                expense = self.expenses.create(
                    invoice_id=invoice.id,
                    name=f"{purchase.name} ({installment.label})",
                    amount_cents=installment.amount_cents,
                    purchase_date=installment.purchase_date,
                    category_id=purchase.category_id,
                    note=note,
                    installment_label=installment.label,
                    installment_count=installment.count,
                )
                created.append(expense)
                created_ids.append(expense.id)
        except StoreFailureError:
            self._compensate_installments(principal, created_ids)
            raise

        record_expenses("installment", len(created))
        log_purchase(principal.owner_id, "installment", purchase.amount_cents, len(created), self.request_id)
        return InstallmentResult(expenses=created, split=split)

    def _compensate_installments(self, principal: Principal, expense_ids: List[uuid.UUID]) -> None:
        """Delete slices inserted before a failure; invoices created on the way are kept"""
        if not expense_ids:
            return
        try:
            self.expenses.delete_by_ids(expense_ids)
        except StoreFailureError:
            record_compensation("installment", succeeded=False)
            logger.error(
                "Installment rollback failed; manual cleanup required",
                extra=self._log_extra(
                    principal, "installment_compensation", expense_ids=[str(i) for i in expense_ids]
                ),
            )
            return
        record_compensation("installment", succeeded=True)
        logger.warning(
            "Installment purchase rolled back",
            extra=self._log_extra(principal, "installment_compensation", deleted=len(expense_ids)),
        )

    def update_expense(
        self, principal: Principal, expense_id: uuid.UUID, changes: Dict[str, Any]
    ) -> CreditCardExpense:
        """Edit a single expense in place; installments are never re-split"""
        require_write(principal, "edit expenses")
        unknown = set(changes) - set(EDITABLE_EXPENSE_FIELDS)
        if unknown:
            raise InvalidInputError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        cleared = [field for field in REQUIRED_EXPENSE_FIELDS if field in changes and changes[field] is None]
        if cleared:
            raise InvalidInputError(f"Fields cannot be null: {', '.join(cleared)}")
        if "amount_cents" in changes and changes["amount_cents"] <= 0:
            raise InvalidInputError("Amount must be greater than zero")
        self._check_category(principal, changes.get("category_id"))

        expense = self._get_expense(principal, expense_id)
        if not changes:
            return expense
        return self.expenses.update(expense, changes)

    def delete_expense(self, principal: Principal, expense_id: uuid.UUID) -> None:
        require_write(principal, "delete expenses")
        expense = self._get_expense(principal, expense_id)
        self.expenses.delete(expense)

    # Invoices

    def create_invoice(
        self,
        principal: Principal,
        card_id: uuid.UUID,
        month: int,
        year: int,
        due_date: date,
        note: Optional[str] = None,
    ) -> CreditCardInvoice:
        """Manually open an invoice; one per card and cycle"""
        require_write(principal, "create invoices")
        if not 1 <= month <= 12:
            raise InvalidInputError("Month must be between 1 and 12")
        if year < 1:
            raise InvalidInputError("Year must be positive")

        card = self._get_card(principal, card_id)
        if self.invoices.find_by_cycle(card.id, month, year) is not None:
            raise DuplicateInvoiceError("An invoice already exists for this month/year")

        try:
            invoice = self.invoices.create(card.id, BillingCycle(month=month, year=year), due_date, note=note)
        except DuplicateRowError as e:
            raise DuplicateInvoiceError("An invoice already exists for this month/year") from e

        invoice_created_counter.labels(origin="manual").inc()
        return invoice

    def list_invoices(
        self,
        principal: Principal,
        card_id: Optional[uuid.UUID] = None,
        status: Optional[str] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> List[CreditCardInvoice]:
        if status is not None:
            status = _parse_status(status).value
        return self.invoices.list_owned(principal.owner_id, card_id=card_id, status=status, month=month, year=year)

    def get_invoice(self, principal: Principal, invoice_id: uuid.UUID) -> CreditCardInvoice:
        return self._get_invoice(principal, invoice_id)

    def set_invoice_status(self, principal: Principal, invoice_id: uuid.UUID, status: str) -> CreditCardInvoice:
        require_write(principal, "update invoices")
        new_status = _parse_status(status)
        invoice = self._get_invoice(principal, invoice_id)
        if new_status == InvoiceStatus.PAID and invoice.status == InvoiceStatus.PAID.value:
            raise AlreadyPaidError("Invoice is already paid")
        return self.invoices.set_status(invoice, new_status.value)

    def delete_invoice(self, principal: Principal, invoice_id: uuid.UUID) -> None:
        """Delete an invoice together with its expenses"""
        require_write(principal, "delete invoices")
        invoice = self._get_invoice(principal, invoice_id)
        self.expenses.delete_for_invoice(invoice.id)
        self.invoices.delete(invoice)

    # Payment

    def pay_invoice(
        self,
        principal: Principal,
        invoice_id: uuid.UUID,
        bank_account_id: uuid.UUID,
        category_id: uuid.UUID,
        payment_date: date,
    ) -> PaymentResult:
        """
        Pay an invoice from a bank account.

        Flow:
        1. Validate invoice, account and category (no writes yet)
        2. Insert the payment transaction
        3. Mark the invoice paid; on failure delete the transaction
        """
        require_write(principal, "pay invoices")
        invoice = self._get_invoice(principal, invoice_id)
        if invoice.status == InvoiceStatus.PAID.value:
            raise AlreadyPaidError("Invoice is already paid")
        if invoice.total_cents <= 0:
            raise InvalidInputError("Invoice has no amount to pay")

        if self.accounts.get_owned(bank_account_id, principal.owner_id) is None:
            raise BankAccountNotFoundError("Bank account not found")
        category = self.categories.get_owned(category_id, principal.owner_id)
        if category is None:
            raise CategoryNotFoundError("Category not found")
        if category.type != CategoryType.EXPENSE.value:
            raise InvalidCategoryError("Category must be an expense category")

        description = f"Invoice payment {invoice.card.name} - {invoice.month:02d}/{invoice.year}"
        try:
            transaction = self.transactions.create(
                owner_id=principal.owner_id,
                bank_account_id=bank_account_id,
                category_id=category_id,
                amount_cents=invoice.total_cents,
                description=description,
                transaction_date=payment_date,
            )
        except StoreFailureError:
            invoice_payment_counter.labels(outcome="failed").inc()
            raise

        transaction_id = transaction.id
        try:
            invoice = self.invoices.set_status(invoice, InvoiceStatus.PAID.value)
        except StoreFailureError:
            invoice_payment_counter.labels(outcome="failed").inc()
            self._compensate_payment(principal, invoice_id, transaction)
            raise

        invoice_payment_counter.labels(outcome="paid").inc()
        logger.info(
            "Invoice paid",
            extra=self._log_extra(
                principal, "invoice_paid", invoice_id=str(invoice_id), transaction_id=str(transaction_id)
            ),
        )
        return PaymentResult(transaction=transaction, invoice=invoice)

    def _compensate_payment(
        self, principal: Principal, invoice_id: uuid.UUID, transaction: LedgerTransaction
    ) -> None:
        try:
            self.transactions.delete(transaction)
        except StoreFailureError:
            record_compensation("payment", succeeded=False)
            logger.error(
                "Payment rollback failed; transaction left without a paid invoice",
                extra=self._log_extra(principal, "payment_compensation", invoice_id=str(invoice_id)),
            )
            return
        record_compensation("payment", succeeded=True)
        logger.warning(
            "Invoice payment rolled back",
            extra=self._log_extra(principal, "payment_compensation", invoice_id=str(invoice_id)),
        )
