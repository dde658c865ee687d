"""Role management by role name: the surface the HTTP layer and token building use."""

import logging

from staybook.models import Role, RoleAssignment, User
from staybook.repositories.errors import InvalidArgumentError
from staybook.repositories.unit_of_work import UnitOfWork
from staybook.services.role_resolver import parse_role, role_claims

logger = logging.getLogger(__name__)


class RoleService:
    """Wraps the role repository of one unit of work; every mutation runs in its own transaction."""

    def __init__(self, uow: UnitOfWork) -> None:
        if uow is None:
            raise InvalidArgumentError("RoleService requires a unit of work.")
        self.uow = uow

    @staticmethod
    def get_all_roles() -> list[str]:
        return [role.label for role in Role]

    def get_user_roles(self, user_id: int) -> list[str]:
        return [role.label for role in self.uow.roles.get_user_roles(user_id)]

    def get_user_highest_role(self, user_id: int) -> str:
        return self.uow.roles.get_user_highest_role(user_id).label

    def user_has_role(self, user_id: int, role: str) -> bool:
        return self.uow.roles.user_has_role(user_id, parse_role(role))

    def get_users_in_role(self, role: str) -> list[User]:
        return self.uow.roles.get_users_in_role(parse_role(role))

    def assign_role(self, user_id: int, role: str) -> RoleAssignment:
        wanted = parse_role(role)
        self.uow.begin_transaction()
        try:
            assignment = self.uow.roles.assign_role_to_user(user_id, wanted)
        except Exception:
            logger.exception("Error assigning role %s to user %s", wanted.label, user_id)
            self.uow.rollback_transaction()
            raise
        self.uow.commit_transaction()
        return assignment

    def remove_role(self, user_id: int, role: str) -> bool:
        wanted = parse_role(role)
        self.uow.begin_transaction()
        try:
            removed = self.uow.roles.remove_role_from_user(user_id, wanted)
        except Exception:
            logger.exception("Error removing role %s from user %s", wanted.label, user_id)
            self.uow.rollback_transaction()
            raise
        self.uow.commit_transaction()
        return removed

    def generate_user_role_claims(self, user: User) -> list[tuple[str, str]]:
        """IsAdmin claim for backward compatibility, then one role claim per effective role."""
        if user is None:
            raise InvalidArgumentError("user is required.")
        return role_claims(bool(user.is_admin), self.uow.roles.get_user_roles(user.id))
