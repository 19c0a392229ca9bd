"""Transfers between the owner's bank accounts and their monthly statistics"""

import logging
import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from card_ledger.domain.exceptions import BankAccountNotFoundError, InvalidInputError, TransferNotFoundError
from card_ledger.domain.models import Principal
from card_ledger.infrastructure.database.models import Transfer
from card_ledger.infrastructure.database.repositories import BankAccountRepository, TransferRepository
from card_ledger.services.directory import require_write

logger = logging.getLogger(__name__)

REQUIRED_TRANSFER_FIELDS = ("from_account_id", "to_account_id", "amount_cents", "transfer_date")


@dataclass
class AccountActivity:
    id: uuid.UUID
    name: str
    count: int


@dataclass
class TransferStats:
    total_transfers: int
    total_amount_cents: int
    monthly_transfers: int
    monthly_amount_cents: int
    most_active_account: Optional[AccountActivity]


def summarize_transfers(transfers: List[Transfer], today: date) -> TransferStats:
    """
    Totals over all transfers and over the calendar month of `today`.

    The most active account is the one appearing on most transfers, as
    source or destination; ties go to the account seen first.
    """
    monthly = [t for t in transfers if (t.transfer_date.year, t.transfer_date.month) == (today.year, today.month)]

    activity: Counter = Counter()
    names: Dict[uuid.UUID, str] = {}
    for transfer in transfers:
        for account_id, account in (
            (transfer.from_account_id, transfer.from_account),
            (transfer.to_account_id, transfer.to_account),
        ):
            activity[account_id] += 1
            if account is not None:
                names[account_id] = account.name

    most_active = None
    if activity:
        account_id, count = activity.most_common(1)[0]
        most_active = AccountActivity(id=account_id, name=names.get(account_id, "Unknown account"), count=count)

    return TransferStats(
        total_transfers=len(transfers),
        total_amount_cents=sum(t.amount_cents for t in transfers),
        monthly_transfers=len(monthly),
        monthly_amount_cents=sum(t.amount_cents for t in monthly),
        most_active_account=most_active,
    )


class TransferService:
    def __init__(self, db: Session, request_id: Optional[str] = None):
        self.transfers = TransferRepository(db)
        self.accounts = BankAccountRepository(db)
        self.request_id = request_id

    def _get_transfer(self, principal: Principal, transfer_id: uuid.UUID) -> Transfer:
        transfer = self.transfers.get_owned(transfer_id, principal.owner_id)
        if transfer is None:
            raise TransferNotFoundError("Transfer not found")
        return transfer

    def _check_account(self, principal: Principal, account_id: uuid.UUID) -> None:
        if self.accounts.get_owned(account_id, principal.owner_id) is None:
            raise BankAccountNotFoundError("Bank account not found")

    def list_transfers(self, principal: Principal) -> List[Transfer]:
        return self.transfers.list_by_owner(principal.owner_id)

    def create_transfer(
        self,
        principal: Principal,
        from_account_id: uuid.UUID,
        to_account_id: uuid.UUID,
        amount_cents: int,
        transfer_date: date,
        description: Optional[str] = None,
    ) -> Transfer:
        require_write(principal, "create transfers")
        if amount_cents <= 0:
            raise InvalidInputError("Amount must be greater than zero")
        if from_account_id == to_account_id:
            raise InvalidInputError("Source and destination accounts must differ")
        self._check_account(principal, from_account_id)
        self._check_account(principal, to_account_id)

        transfer = self.transfers.create(
            principal.owner_id, from_account_id, to_account_id, amount_cents, transfer_date, description
        )
        logger.info(
            "Transfer created",
            extra={
                "request_id": self.request_id,
                "owner_id": principal.owner_id,
                "step": "transfer_created",
                "transfer_id": str(transfer.id),
                "amount_cents": amount_cents,
            },
        )
        return transfer

    def update_transfer(self, principal: Principal, transfer_id: uuid.UUID, changes: Dict[str, Any]) -> Transfer:
        """Edit a transfer; only newly referenced accounts must still be active"""
        require_write(principal, "edit transfers")
        cleared = [field for field in REQUIRED_TRANSFER_FIELDS if field in changes and changes[field] is None]
        if cleared:
            raise InvalidInputError(f"Fields cannot be null: {', '.join(cleared)}")
        if "amount_cents" in changes and changes["amount_cents"] <= 0:
            raise InvalidInputError("Amount must be greater than zero")

        transfer = self._get_transfer(principal, transfer_id)
        from_account_id = changes.get("from_account_id", transfer.from_account_id)
        to_account_id = changes.get("to_account_id", transfer.to_account_id)
        if from_account_id == to_account_id:
            raise InvalidInputError("Source and destination accounts must differ")
        for field in ("from_account_id", "to_account_id"):
            if field in changes:
                self._check_account(principal, changes[field])

        if not changes:
            return transfer
        return self.transfers.update(transfer, changes)

    def delete_transfer(self, principal: Principal, transfer_id: uuid.UUID) -> None:
        require_write(principal, "delete transfers")
        self.transfers.delete(self._get_transfer(principal, transfer_id))

    def transfer_stats(self, principal: Principal, today: date) -> TransferStats:
        return summarize_transfers(self.transfers.list_by_owner(principal.owner_id), today)
