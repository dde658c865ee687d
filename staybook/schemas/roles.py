"""Request/response schemas for role management endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RoleAssignRequest(BaseModel):
    """Role to grant, by name (e.g. ``Admin``, ``CleaningStaff``)."""

    role: str = Field(..., min_length=1, max_length=50)


class RoleAssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    role: int
    role_name: str
    assigned_date: datetime | None = None


class UserRolesResponse(BaseModel):
    """Effective roles of one user."""

    user_id: int
    roles: list[str]
    highest_role: str
    is_admin: bool


class RoleRemovedResponse(BaseModel):
    user_id: int
    role: str
    removed: bool


class UserListItem(BaseModel):
    """User entry for admin lists (no password)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    username: str | None = None
    is_admin: bool


class UsersListResponse(BaseModel):
    users: list[UserListItem]


class RolesListResponse(BaseModel):
    roles: list[str]
