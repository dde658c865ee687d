"""SQLAlchemy ORM models."""

from staybook.models.base import Base
from staybook.models.booking import Booking
from staybook.models.review import Review
from staybook.models.role_assignment import Role, RoleAssignment
from staybook.models.user import User

__all__ = ["Base", "Booking", "Review", "Role", "RoleAssignment", "User"]
