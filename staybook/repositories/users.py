from sqlalchemy import func, select
from sqlalchemy.orm import selectinload

from staybook.models import Booking, User

from .base import Repository


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


class UserRepository(Repository[User]):
    """Account lookups. Empty input returns None/False rather than raising."""

    model = User

    def get_by_email(self, email: str | None) -> User | None:
        if _blank(email):
            return None
        stmt = select(User).where(func.lower(User.email) == email.strip().lower()).limit(1)
        return self.store.scalar_one_or_none(stmt)

    def get_by_username(self, username: str | None) -> User | None:
        if _blank(username):
            return None
        stmt = select(User).where(User.username == username.strip()).limit(1)
        return self.store.scalar_one_or_none(stmt)

    def get_with_bookings(self, user_id: int) -> User | None:
        stmt = select(User).options(selectinload(User.bookings)).where(User.id == user_id)
        return self.store.scalar_one_or_none(stmt)

    def get_with_reviews(self, user_id: int) -> User | None:
        stmt = select(User).options(selectinload(User.reviews)).where(User.id == user_id)
        return self.store.scalar_one_or_none(stmt)

    def validate_credentials(self, email: str | None, password_hash: str | None) -> User | None:
        """Match an already-hashed credential exactly. No hashing happens here."""
        if _blank(email) or _blank(password_hash):
            return None
        stmt = (
            select(User)
            .where(
                func.lower(User.email) == email.strip().lower(),
                User.password_hash == password_hash,
            )
            .limit(1)
        )
        return self.store.scalar_one_or_none(stmt)

    def find_by_reservation(self, email: str | None, reservation_number: str | None) -> User | None:
        if _blank(email) or _blank(reservation_number):
            return None
        stmt = (
            select(User)
            .join(Booking, Booking.user_id == User.id)
            .where(
                Booking.reservation_number == reservation_number.strip(),
                func.lower(User.email) == email.strip().lower(),
            )
            .limit(1)
        )
        return self.store.scalar_one_or_none(stmt)

    def email_exists(self, email: str | None) -> bool:
        if _blank(email):
            return False
        stmt = select(select(User.id).where(func.lower(User.email) == email.strip().lower()).exists())
        return bool(self.store.scalar(stmt))

    def username_exists(self, username: str | None) -> bool:
        if _blank(username):
            return False
        stmt = select(select(User.id).where(User.username == username.strip()).exists())
        return bool(self.store.scalar(stmt))
