"""Tests for transfers between bank accounts and their statistics"""

import uuid
from datetime import date
from types import SimpleNamespace

import pytest
from sqlalchemy.orm import Session
from card_ledger.domain.exceptions import (
    BankAccountNotFoundError,
    ForbiddenError,
    InvalidInputError,
    TransferNotFoundError,
)
from card_ledger.infrastructure.database.models import BankAccount, Transfer
from card_ledger.services.transfers import TransferService, summarize_transfers


@pytest.fixture
def service(db: Session) -> TransferService:
    return TransferService(db)


def move(from_id, to_id, amount_cents, day, from_name="Checking", to_name="Savings"):
    return SimpleNamespace(
        from_account_id=from_id,
        to_account_id=to_id,
        from_account=SimpleNamespace(name=from_name),
        to_account=SimpleNamespace(name=to_name),
        amount_cents=amount_cents,
        transfer_date=day,
    )


def test_summarize_transfers_totals_and_current_month():
    checking, savings, wallet = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    transfers = [
        move(checking, savings, 10000, date(2025, 5, 20)),
        move(savings, wallet, 2500, date(2025, 5, 2), from_name="Savings", to_name="Wallet"),
        move(checking, wallet, 4000, date(2025, 4, 30), to_name="Wallet"),
    ]

    stats = summarize_transfers(transfers, today=date(2025, 5, 31))

    assert stats.total_transfers == 3
    assert stats.total_amount_cents == 16500
    assert stats.monthly_transfers == 2
    assert stats.monthly_amount_cents == 12500
    assert stats.most_active_account.id == checking
    assert stats.most_active_account.name == "Checking"
    assert stats.most_active_account.count == 2


def test_summarize_transfers_tie_goes_to_first_seen():
    checking, savings = uuid.uuid4(), uuid.uuid4()

    stats = summarize_transfers([move(checking, savings, 100, date(2025, 1, 1))], today=date(2025, 6, 1))

    assert stats.most_active_account.id == checking
    assert stats.monthly_transfers == 0


def test_summarize_no_transfers():
    stats = summarize_transfers([], today=date(2025, 6, 1))

    assert stats.total_transfers == 0
    assert stats.most_active_account is None


def test_create_transfer(service, db, owner, bank_account, savings_account):
    transfer = service.create_transfer(
        owner, bank_account.id, savings_account.id, 20000, date(2025, 5, 3), description="Emergency fund"
    )

    assert transfer.user_id == owner.owner_id
    assert transfer.amount_cents == 20000
    assert db.query(Transfer).count() == 1


def test_create_transfer_rejects_same_account(service, db, owner, bank_account):
    with pytest.raises(InvalidInputError):
        service.create_transfer(owner, bank_account.id, bank_account.id, 100, date(2025, 5, 3))
    assert db.query(Transfer).count() == 0


@pytest.mark.parametrize("amount_cents", [0, -100])
def test_create_transfer_rejects_non_positive_amount(service, owner, bank_account, savings_account, amount_cents):
    with pytest.raises(InvalidInputError):
        service.create_transfer(owner, bank_account.id, savings_account.id, amount_cents, date(2025, 5, 3))


def test_create_transfer_rejects_foreign_or_inactive_account(service, db, owner, bank_account, savings_account):
    foreign = BankAccount(user_id="user_other", name="Theirs", is_default=True, is_active=True)
    db.add(foreign)
    savings_account.is_active = False
    db.commit()

    with pytest.raises(BankAccountNotFoundError):
        service.create_transfer(owner, bank_account.id, foreign.id, 100, date(2025, 5, 3))
    with pytest.raises(BankAccountNotFoundError):
        service.create_transfer(owner, bank_account.id, savings_account.id, 100, date(2025, 5, 3))
    assert db.query(Transfer).count() == 0


def test_viewer_cannot_create_transfer(service, viewer, bank_account, savings_account):
    with pytest.raises(ForbiddenError):
        service.create_transfer(viewer, bank_account.id, savings_account.id, 100, date(2025, 5, 3))


def test_update_transfer_checks_merged_accounts(service, owner, bank_account, savings_account):
    transfer = service.create_transfer(owner, bank_account.id, savings_account.id, 500, date(2025, 5, 3))

    with pytest.raises(InvalidInputError):
        service.update_transfer(owner, transfer.id, {"to_account_id": bank_account.id})

    updated = service.update_transfer(owner, transfer.id, {"amount_cents": 750, "description": None})
    assert updated.amount_cents == 750
    assert updated.to_account_id == savings_account.id


def test_update_transfer_rejects_null_required_field(service, owner, bank_account, savings_account):
    transfer = service.create_transfer(owner, bank_account.id, savings_account.id, 500, date(2025, 5, 3))

    with pytest.raises(InvalidInputError):
        service.update_transfer(owner, transfer.id, {"transfer_date": None})


def test_delete_transfer_scoped_to_owner(service, db, owner, other_owner, bank_account, savings_account):
    transfer = service.create_transfer(owner, bank_account.id, savings_account.id, 500, date(2025, 5, 3))

    with pytest.raises(TransferNotFoundError):
        service.delete_transfer(other_owner, transfer.id)

    service.delete_transfer(owner, transfer.id)
    assert db.query(Transfer).count() == 0


def test_transfer_stats_reads_owner_transfers(service, owner, other_owner, bank_account, savings_account):
    service.create_transfer(owner, bank_account.id, savings_account.id, 500, date(2025, 5, 3))
    service.create_transfer(owner, savings_account.id, bank_account.id, 300, date(2025, 4, 3))

    stats = service.transfer_stats(owner, today=date(2025, 5, 10))

    assert (stats.total_transfers, stats.total_amount_cents) == (2, 800)
    assert (stats.monthly_transfers, stats.monthly_amount_cents) == (1, 500)
    assert stats.most_active_account.count == 2
    assert service.transfer_stats(other_owner, today=date(2025, 5, 10)).total_transfers == 0
