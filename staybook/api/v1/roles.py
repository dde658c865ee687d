"""Role management endpoints (admin only)."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status

from staybook.api.v1.auth import require_admin
from staybook.core.database import get_uow
from staybook.models import Role, RoleAssignment
from staybook.repositories.errors import NotFoundError
from staybook.repositories.unit_of_work import UnitOfWork
from staybook.schemas.auth import CurrentUser
from staybook.schemas.roles import (
    RoleAssignmentOut,
    RoleAssignRequest,
    RoleRemovedResponse,
    RolesListResponse,
    UserListItem,
    UserRolesResponse,
    UsersListResponse,
)
from staybook.services.role_resolver import parse_role
from staybook.services.role_service import RoleService

logger = logging.getLogger(__name__)
router = APIRouter()

AdminUser = Annotated[CurrentUser, Depends(require_admin)]
Uow = Annotated[UnitOfWork, Depends(get_uow)]


def _assignment_out(assignment: RoleAssignment) -> RoleAssignmentOut:
    return RoleAssignmentOut(
        id=assignment.id,
        user_id=assignment.user_id,
        role=assignment.role,
        role_name=Role(assignment.role).label,
        assigned_date=assignment.assigned_date,
    )


@router.get("", response_model=RolesListResponse)
def list_roles(_admin: AdminUser) -> RolesListResponse:
    return RolesListResponse(roles=RoleService.get_all_roles())


@router.get("/users/{user_id}", response_model=UserRolesResponse)
def get_user_roles(user_id: int, _admin: AdminUser, uow: Uow) -> UserRolesResponse:
    user = uow.users.get_by_id(user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} does not exist.", entity="User", entity_id=user_id)
    service = RoleService(uow)
    return UserRolesResponse(
        user_id=user_id,
        roles=service.get_user_roles(user_id),
        highest_role=service.get_user_highest_role(user_id),
        is_admin=bool(user.is_admin),
    )


@router.post(
    "/users/{user_id}",
    response_model=RoleAssignmentOut,
    status_code=status.HTTP_200_OK,
)
def assign_role(
    user_id: int,
    body: RoleAssignRequest,
    admin: AdminUser,
    uow: Uow,
) -> RoleAssignmentOut:
    """Grant a role. Granting a role the user already holds returns the existing assignment."""
    assignment = RoleService(uow).assign_role(user_id, body.role)
    logger.info(
        "Role granted via API",
        extra={"actor_id": admin.id, "user_id": user_id, "role": body.role},
    )
    return _assignment_out(assignment)


@router.delete("/users/{user_id}/{role}", response_model=RoleRemovedResponse)
def remove_role(user_id: int, role: str, admin: AdminUser, uow: Uow) -> RoleRemovedResponse:
    removed = RoleService(uow).remove_role(user_id, role)
    logger.info(
        "Role removal via API",
        extra={"actor_id": admin.id, "user_id": user_id, "role": role, "removed": removed},
    )
    return RoleRemovedResponse(user_id=user_id, role=parse_role(role).label, removed=removed)


@router.get("/{role}/users", response_model=UsersListResponse)
def list_users_in_role(role: str, _admin: AdminUser, uow: Uow) -> UsersListResponse:
    users = RoleService(uow).get_users_in_role(role)
    return UsersListResponse(users=[UserListItem.model_validate(u) for u in users])
