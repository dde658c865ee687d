"""Role enumeration and the per-user role assignment model."""

from enum import IntEnum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import relationship

from staybook.models.base import Base


class Role(IntEnum):
    """
    Ordered roles; a higher value outranks a lower one.

    GUEST is implicit for every registered user and never stored as a row.
    Values are persisted, so new roles must take unused numbers.
    """

    GUEST = 10
    CLEANING_STAFF = 20
    PARTNER = 30
    ADMIN = 100
    SUPER_ADMIN = 200

    @property
    def label(self) -> str:
        """Display name used in claims and API payloads (e.g. ``SuperAdmin``)."""
        return "".join(part.capitalize() for part in self.name.split("_"))


class RoleAssignment(Base):
    """A persisted (user, role) grant. At most one row per pair."""

    __tablename__ = "user_role_assignments"
    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_user_role_assignments_user_role"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role = Column(Integer, nullable=False)
    assigned_date = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    user = relationship("User", back_populates="role_assignments")

    def __repr__(self) -> str:
        return f"<RoleAssignment user_id={self.user_id} role={self.role}>"
