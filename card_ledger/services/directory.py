"""Delegated-access directory: who acts on whose data, and with which rights"""

from typing import Optional

from sqlalchemy.orm import Session

from card_ledger.domain.exceptions import ForbiddenError
from card_ledger.domain.models import AccessLevel, Principal
from card_ledger.infrastructure.database.models import LinkedUser
from card_ledger.infrastructure.database.repositories import LinkedUserRepository


def _owner_of(user_id: str, link: Optional[LinkedUser]) -> str:
    return link.main_user_id if link else user_id


def _level_of(link: Optional[LinkedUser]) -> AccessLevel:
    # Owners always have full access
    return AccessLevel(link.permission_type) if link else AccessLevel.FULL_ACCESS


class Directory:
    """Resolves an authenticated user to the owner whose rows it may touch"""

    def __init__(self, db: Session):
        self.links = LinkedUserRepository(db)

    def resolve_effective_owner(self, user_id: str) -> str:
        return _owner_of(user_id, self.links.find_active_link(user_id))

    def access_level(self, user_id: str) -> AccessLevel:
        return _level_of(self.links.find_active_link(user_id))

    def resolve_principal(self, user_id: str) -> Principal:
        """Owner and access level from a single link lookup"""
        link = self.links.find_active_link(user_id)
        return Principal(user_id=user_id, owner_id=_owner_of(user_id, link), access_level=_level_of(link))


def require_write(principal: Principal, action: str) -> None:
    if not principal.can_write:
        raise ForbiddenError(f"Insufficient permission to {action}")


def require_owner(principal: Principal, action: str) -> None:
    """Linked users never manage the owner's links, whatever their access level"""
    if principal.user_id != principal.owner_id:
        raise ForbiddenError(f"Only the account owner can {action}")
