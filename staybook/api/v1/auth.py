"""JWT login and auth dependencies (get_current_user, require_admin)."""

from typing import Annotated

import jwt
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from staybook.core.database import get_uow
from staybook.core.security import create_access_token, decode_access_token
from staybook.models import Role
from staybook.repositories.unit_of_work import UnitOfWork
from staybook.schemas.auth import CurrentUser, LoginRequest, TokenResponse
from staybook.services.account_service import AccountService
from staybook.services.role_service import RoleService

router = APIRouter()
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


@router.post("", response_model=TokenResponse)
def login(
    body: LoginRequest,
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> TokenResponse:
    """
    Authenticate with email and password; returns a JWT access token carrying role claims.
    Include the token in the Authorization header as: Bearer <access_token>
    """
    user = AccountService(uow).authenticate(body.email, body.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        )
    roles = RoleService(uow).get_user_roles(user.id)
    token = create_access_token(sub=user.id, roles=roles, is_admin=bool(user.is_admin))
    return TokenResponse(access_token=token, token_type="bearer")


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    uow: Annotated[UnitOfWork, Depends(get_uow)],
) -> CurrentUser:
    """
    Dependency: require valid Bearer JWT and return the current user. Raises 401 if missing or invalid.

    Roles are re-read from the database so a revoked role stops working
    before the token expires.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")
    try:
        payload = decode_access_token(credentials.credentials)
    except jwt.PyJWTError:
        raise _unauthorized("Invalid or expired token")
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token payload")
    user = uow.users.get_by_id(user_id)
    if user is None:
        raise _unauthorized("User not found")
    roles = [role.label for role in uow.roles.get_user_roles(user.id)]
    return CurrentUser(id=user.id, email=user.email, is_admin=bool(user.is_admin), roles=roles)


def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: require an effective Admin (or higher). Raises 403 otherwise."""
    admin_labels = {role.label for role in Role if role >= Role.ADMIN}
    if not admin_labels.intersection(current_user.roles):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user
