"""ORM model for registered user accounts."""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, false, func
from sqlalchemy.orm import relationship

from staybook.models.base import Base


class User(Base):
    """
    Registered account.

    Emails are unique regardless of case (see uq_users_email_lower below).
    is_admin is the legacy admin flag. Role assignments live in
    user_role_assignments; the effective role set combines both.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(100), nullable=False, unique=True, index=True)
    username = Column(String(50), nullable=True, unique=True, index=True)
    password_hash = Column(String(128), nullable=False)
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    phone_number = Column(String(20), nullable=True)
    is_admin = Column(Boolean, nullable=False, default=False, server_default=false())
    is_email_verified = Column(Boolean, nullable=False, default=False, server_default=false())
    created_date = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    bookings = relationship(
        "Booking",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Booking.id",
    )
    reviews = relationship(
        "Review",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Review.id",
    )
    role_assignments = relationship(
        "RoleAssignment",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="RoleAssignment.role",
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} is_admin={self.is_admin}>"


Index("uq_users_email_lower", func.lower(User.email), unique=True)
