"""Registration and sign-in on top of the user repository."""

import logging

from staybook.core.security import EMAIL_MAX_LEN, PASSWORD_MAX_LEN, PASSWORD_MIN_LEN, hash_password, verify_password
from staybook.models import User
from staybook.repositories.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class AccountError(Exception):
    """Raised when a registration request cannot be honoured (duplicate email/username, bad input)."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AccountService:
    def __init__(self, uow: UnitOfWork) -> None:
        self.uow = uow

    def register_user(
        self,
        email: str,
        password: str,
        username: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> User:
        """Create an account with a bcrypt hash. New users hold only the implicit Guest role."""
        email = (email or "").strip()
        if not email or len(email) > EMAIL_MAX_LEN or "@" not in email:
            raise AccountError("Invalid email address.")
        if not (PASSWORD_MIN_LEN <= len(password or "") <= PASSWORD_MAX_LEN):
            raise AccountError("Password must be 8-128 characters.")
        username = username.strip() if username and username.strip() else None

        users = self.uow.users
        if users.email_exists(email):
            raise AccountError("Email is already registered.")
        if username is not None and users.username_exists(username):
            raise AccountError("Username is already taken.")

        user = User(
            email=email,
            username=username,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            is_admin=False,
        )
        users.add(user)
        self.uow.save_changes()
        logger.info("User registered", extra={"user_id": user.id})
        return user

    def authenticate(self, email: str, password: str) -> User | None:
        """Return the user when the password verifies; None otherwise."""
        user = self.uow.users.get_by_email(email)
        if user is None or not password:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    def authenticate_with_reservation(self, email: str, reservation_number: str) -> User | None:
        """Guest sign-in with the email and reservation number of one of their bookings."""
        return self.uow.users.find_by_reservation(email, reservation_number)
