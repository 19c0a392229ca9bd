"""Linked-user management: the owner grants other people access to their data

Creating a link is a two-step saga across services without a shared
transaction:

    register the account with the auth service → insert the link row
    on failure: delete the account just registered
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from card_ledger.domain.exceptions import AuthServiceError, InvalidInputError, LinkedUserNotFoundError, StoreFailureError
from card_ledger.domain.models import AccessLevel, Principal
from card_ledger.infrastructure.clients.auth import AuthClient
from card_ledger.infrastructure.database.models import LinkedUser
from card_ledger.infrastructure.database.repositories import LinkedUserRepository
from card_ledger.infrastructure.observability.metrics import record_compensation
from card_ledger.services.directory import require_owner

logger = logging.getLogger(__name__)


class LinkedUserService:
    def __init__(self, db: Session, auth_client: AuthClient, request_id: Optional[str] = None):
        self.links = LinkedUserRepository(db)
        self.auth_client = auth_client
        self.request_id = request_id

    def _get_link(self, principal: Principal, link_id: uuid.UUID) -> LinkedUser:
        link = self.links.get_owned(link_id, principal.owner_id)
        if link is None:
            raise LinkedUserNotFoundError("Linked user not found")
        return link

    def list_links(self, principal: Principal) -> List[LinkedUser]:
        require_owner(principal, "list linked users")
        return self.links.list_active_for_owner(principal.owner_id)

    async def create_link(
        self,
        principal: Principal,
        name: str,
        email: str,
        password: str,
        phone: Optional[str],
        permission_type: AccessLevel,
    ) -> LinkedUser:
        """Register a new account and link it to the owner with the given permission"""
        require_owner(principal, "create linked users")
        user = await self.auth_client.create_user(email=email, password=password, name=name, phone=phone)

        try:
            link = self.links.create(
                principal.owner_id,
                linked_user_id=user.id,
                permission_type=permission_type.value,
                name=name,
                email=email,
                phone=phone,
            )
        except StoreFailureError:
            await self._compensate_account(principal, user.id)
            raise

        logger.info(
            "Linked user created",
            extra={
                "request_id": self.request_id,
                "owner_id": principal.owner_id,
                "step": "linked_user_created",
                "linked_user_id": user.id,
                "permission_type": permission_type.value,
            },
        )
        return link

    async def _compensate_account(self, principal: Principal, user_id: str) -> None:
        extra = {
            "request_id": self.request_id,
            "owner_id": principal.owner_id,
            "step": "linked_user_compensation",
            "linked_user_id": user_id,
        }
        try:
            await self.auth_client.delete_user(user_id)
        except AuthServiceError:
            record_compensation("linked_user", succeeded=False)
            logger.error("Orphaned auth account after failed link; manual cleanup required", extra=extra)
            return
        record_compensation("linked_user", succeeded=True)
        logger.warning("Linked user creation rolled back", extra=extra)

    def update_link(self, principal: Principal, link_id: uuid.UUID, changes: Dict[str, Any]) -> LinkedUser:
        require_owner(principal, "edit linked users")
        if not changes:
            raise InvalidInputError("No valid fields provided for update")
        link = self._get_link(principal, link_id)

        if isinstance(changes.get("permission_type"), AccessLevel):
            changes = {**changes, "permission_type": changes["permission_type"].value}
        return self.links.update(link, changes)

    def deactivate_link(self, principal: Principal, link_id: uuid.UUID) -> LinkedUser:
        """Revoke access; the row is kept so the link can be reactivated"""
        require_owner(principal, "delete linked users")
        link = self._get_link(principal, link_id)
        return self.links.update(link, {"is_active": False})
