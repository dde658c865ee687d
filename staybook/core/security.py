"""Password hashing and bearer tokens carrying a user's effective roles."""

from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from staybook.core.config import settings

# Input limits shared by registration and the login schema.
EMAIL_MAX_LEN = 100
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 128

# bcrypt only looks at the first 72 bytes.
_BCRYPT_MAX_BYTES = 72


def _password_bytes(plain_password: str) -> bytes:
    return plain_password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain_password: str, rounds: int | None = None) -> str:
    """bcrypt hash for storage; ``rounds`` defaults to settings.BCRYPT_ROUNDS."""
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(plain_password), salt).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """False for a wrong password and for a malformed stored hash."""
    try:
        return bcrypt.checkpw(_password_bytes(plain_password), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def create_access_token(sub: str | int, roles: list[str], is_admin: bool = False) -> str:
    """
    Signed token for user ``sub``.

    ``roles`` are effective role labels at sign-in; ``is_admin`` mirrors the
    legacy flag for clients that still read it.
    """
    issued = datetime.now(UTC)
    claims: dict[str, Any] = {
        "sub": str(sub),
        "roles": list(roles),
        "is_admin": bool(is_admin),
        "iat": issued,
        "exp": issued + timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
    }
    return jwt.encode(claims, settings.JWT_SECRET.get_secret_value(), algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """Verified claims; raises jwt.PyJWTError for a bad signature or an expired token."""
    return jwt.decode(
        token,
        settings.JWT_SECRET.get_secret_value(),
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": ["sub", "exp"]},
    )
