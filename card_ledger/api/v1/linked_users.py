"""/v1/linked-users - people the owner shares their data with"""

import uuid

from fastapi import APIRouter, Depends, status

from card_ledger.api.dependencies import get_linked_user_service, get_principal
from card_ledger.api.v1.schemas import (
    LinkedUserCreateRequest,
    LinkedUserListResponse,
    LinkedUserResponse,
    LinkedUserUpdateRequest,
)
from card_ledger.domain.models import Principal
from card_ledger.services.linked_users import LinkedUserService

router = APIRouter()


@router.get("/linked-users", response_model=LinkedUserListResponse)
def list_linked_users(
    principal: Principal = Depends(get_principal),
    service: LinkedUserService = Depends(get_linked_user_service),
):
    links = service.list_links(principal)
    return LinkedUserListResponse(
        total=len(links),
        linked_users=[LinkedUserResponse.from_link(link) for link in links],
    )


@router.post("/linked-users", response_model=LinkedUserResponse, status_code=status.HTTP_201_CREATED)
async def create_linked_user(
    request_body: LinkedUserCreateRequest,
    principal: Principal = Depends(get_principal),
    service: LinkedUserService = Depends(get_linked_user_service),
):
    """
    Create an account for someone else and give it access to the owner's data.

    view_only links can read everything; full_access links can also write.
    """
    link = await service.create_link(
        principal,
        name=request_body.name.strip(),
        email=request_body.email,
        password=request_body.password,
        phone=request_body.whatsapp,
        permission_type=request_body.permission_type,
    )
    return LinkedUserResponse.from_link(link)


@router.put("/linked-users/{link_id}", response_model=LinkedUserResponse)
def update_linked_user(
    link_id: uuid.UUID,
    request_body: LinkedUserUpdateRequest,
    principal: Principal = Depends(get_principal),
    service: LinkedUserService = Depends(get_linked_user_service),
):
    link = service.update_link(principal, link_id, request_body.changes())
    return LinkedUserResponse.from_link(link)


@router.delete("/linked-users/{link_id}")
def delete_linked_user(
    link_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    service: LinkedUserService = Depends(get_linked_user_service),
):
    service.deactivate_link(principal, link_id)
    return {"message": "Linked user deleted"}
