"""SQLAlchemy ORM models for cards, invoices, expenses and the payment ledger"""

import uuid
from sqlalchemy import (
    Column,
    String,
    BigInteger,
    Boolean,
    DateTime,
    Date,
    Integer,
    ForeignKey,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class CreditCard(Base):
    """Credit card with its billing-cycle settings"""

    __tablename__ = "credit_card"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    brand = Column(Text, nullable=True)
    card_limit_cents = Column(BigInteger, nullable=False)
    closing_day = Column(Integer, nullable=False)
    due_day = Column(Integer, nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    invoices = relationship("CreditCardInvoice", back_populates="card", cascade="all, delete-orphan")


class CreditCardInvoice(Base):
    """One billing cycle of a card; unique per (card, month, year)"""

    __tablename__ = "credit_card_invoice"
    __table_args__ = (
        UniqueConstraint("credit_card_id", "month", "year", name="uq_invoice_card_cycle"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    credit_card_id = Column(Uuid, ForeignKey("credit_card.id", ondelete="CASCADE"), nullable=False, index=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(String(16), nullable=False, default="open")
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    card = relationship("CreditCard", back_populates="invoices")
    expenses = relationship(
        "CreditCardExpense",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="CreditCardExpense.purchase_date",
    )

    @property
    def total_cents(self) -> int:
        return sum(expense.amount_cents for expense in self.expenses)


class CreditCardExpense(Base):
    """Purchase (or one installment of a purchase) billed on an invoice"""

    __tablename__ = "credit_card_expense"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_id = Column(Uuid, ForeignKey("credit_card_invoice.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Uuid, ForeignKey("category.id", ondelete="SET NULL"), nullable=True)
    name = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    purchase_date = Column(Date, nullable=False)
    note = Column(Text, nullable=True)
    installment_label = Column(String(8), nullable=True)
    installment_count = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    invoice = relationship("CreditCardInvoice", back_populates="expenses")
    category = relationship("Category")


class BankAccount(Base):
    """Bank account; deleting only deactivates it"""

    __tablename__ = "bank_account"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    is_default = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Category(Base):
    """Income or expense category"""

    __tablename__ = "category"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    type = Column(String(16), nullable=False)  # "income" or "expense"


class LedgerTransaction(Base):
    """Account movement, e.g. the payment of an invoice"""

    __tablename__ = "ledger_transaction"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    bank_account_id = Column(Uuid, ForeignKey("bank_account.id"), nullable=False)
    category_id = Column(Uuid, ForeignKey("category.id"), nullable=False)
    type = Column(String(16), nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    description = Column(Text, nullable=False)
    date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class LinkedUser(Base):
    """Delegated access granted by a main user to a linked user"""

    __tablename__ = "linked_user"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    main_user_id = Column(Text, nullable=False, index=True)
    linked_user_id = Column(Text, nullable=False, index=True)
    permission_type = Column(String(16), nullable=False, default="view_only")
    is_active = Column(Boolean, nullable=False, default=True)
    linked_user_name = Column(Text, nullable=True)
    linked_user_email = Column(Text, nullable=True)
    linked_user_phone = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


class Transfer(Base):
    """Money moved between two of the owner's bank accounts"""

    __tablename__ = "transfer"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    from_account_id = Column(Uuid, ForeignKey("bank_account.id"), nullable=False)
    to_account_id = Column(Uuid, ForeignKey("bank_account.id"), nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    transfer_date = Column(Date, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    from_account = relationship("BankAccount", foreign_keys=[from_account_id])
    to_account = relationship("BankAccount", foreign_keys=[to_account_id])
