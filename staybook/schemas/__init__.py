"""Pydantic request/response and query schemas."""

from staybook.schemas.auth import CurrentUser, LoginRequest, TokenResponse
from staybook.schemas.health import HealthResponse
from staybook.schemas.query import Criterion, Ordering, QuerySpec
from staybook.schemas.roles import (
    RoleAssignmentOut,
    RoleAssignRequest,
    RoleRemovedResponse,
    RolesListResponse,
    UserListItem,
    UserRolesResponse,
    UsersListResponse,
)

__all__ = [
    "Criterion",
    "CurrentUser",
    "HealthResponse",
    "LoginRequest",
    "Ordering",
    "QuerySpec",
    "RoleAssignRequest",
    "RoleAssignmentOut",
    "RoleRemovedResponse",
    "RolesListResponse",
    "TokenResponse",
    "UserListItem",
    "UserRolesResponse",
    "UsersListResponse",
]
