"""Tests for linked-user management and its account rollback"""

import uuid

import pytest
from unittest.mock import patch
from sqlalchemy.orm import Session
from card_ledger.domain.exceptions import (
    AuthServiceError,
    ForbiddenError,
    InvalidInputError,
    LinkedUserNotFoundError,
    StoreFailureError,
)
from card_ledger.domain.models import AccessLevel, Principal
from card_ledger.infrastructure.database.models import LinkedUser
from card_ledger.services.directory import Directory
from card_ledger.services.linked_users import LinkedUserService

DELEGATE = Principal(user_id="user_delegate", owner_id="user_owner", access_level=AccessLevel.FULL_ACCESS)


@pytest.fixture
def service(db: Session, auth_service) -> LinkedUserService:
    return LinkedUserService(db, auth_service)


async def create_ana(service: LinkedUserService, principal: Principal, level=AccessLevel.VIEW_ONLY) -> LinkedUser:
    return await service.create_link(
        principal,
        name="Ana",
        email="ana@example.com",
        password="secret123",
        phone="+5511999990000",
        permission_type=level,
    )


async def test_create_link_grants_access_to_owner_data(service, db, owner, auth_service):
    link = await create_ana(service, owner)

    assert link.main_user_id == owner.owner_id
    assert link.linked_user_id == auth_service.accounts["ana@example.com"]
    assert link.permission_type == "view_only"
    assert link.linked_user_phone == "+5511999990000"

    principal = Directory(db).resolve_principal(link.linked_user_id)
    assert principal.owner_id == owner.owner_id
    assert not principal.can_write


async def test_linked_user_cannot_create_links(service, auth_service):
    with pytest.raises(ForbiddenError):
        await create_ana(service, DELEGATE)
    assert auth_service.accounts == {}


async def test_taken_email_rejected_before_link(service, db, owner):
    await create_ana(service, owner)

    with pytest.raises(InvalidInputError):
        await create_ana(service, owner)
    assert db.query(LinkedUser).filter(LinkedUser.main_user_id == owner.owner_id).count() == 1


async def test_failed_link_insert_deletes_new_account(service, db, owner, auth_service):
    with patch.object(service.links, "create", side_effect=StoreFailureError("insert failed")):
        with pytest.raises(StoreFailureError):
            await create_ana(service, owner)

    assert auth_service.deleted == [auth_service.accounts["ana@example.com"]]
    assert db.query(LinkedUser).count() == 0


async def test_failed_account_rollback_still_reports_store_error(service, owner, auth_service):
    with patch.object(service.links, "create", side_effect=StoreFailureError("insert failed")), patch.object(
        auth_service, "delete_user", side_effect=AuthServiceError("auth down")
    ):
        with pytest.raises(StoreFailureError):
            await create_ana(service, owner)


def test_list_links_only_active(service, owner, linked_users):
    service.deactivate_link(owner, linked_users[0].id)

    links = service.list_links(owner)

    assert [link.linked_user_id for link in links] == ["user_delegate"]


def test_list_links_owner_only(service, viewer):
    with pytest.raises(ForbiddenError):
        service.list_links(viewer)


def test_update_link_changes_permission(service, db, owner, linked_users):
    viewer_link = linked_users[0]

    updated = service.update_link(owner, viewer_link.id, {"permission_type": AccessLevel.FULL_ACCESS})

    assert updated.permission_type == "full_access"
    assert Directory(db).access_level(viewer_link.linked_user_id) == AccessLevel.FULL_ACCESS


def test_update_link_requires_changes(service, owner, linked_users):
    with pytest.raises(InvalidInputError):
        service.update_link(owner, linked_users[0].id, {})


def test_other_owner_cannot_touch_link(service, other_owner, linked_users):
    with pytest.raises(LinkedUserNotFoundError):
        service.update_link(other_owner, linked_users[0].id, {"is_active": False})
    with pytest.raises(LinkedUserNotFoundError):
        service.deactivate_link(other_owner, uuid.uuid4())


def test_deactivated_link_resolves_user_to_itself(service, db, owner, linked_users):
    delegate_link = linked_users[1]

    service.deactivate_link(owner, delegate_link.id)

    assert Directory(db).resolve_effective_owner(delegate_link.linked_user_id) == delegate_link.linked_user_id
