import logging
from datetime import UTC, datetime

from sqlalchemy import delete, or_, select, true
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from staybook.models import Role, RoleAssignment, User
from staybook.services.role_resolver import (
    DEFAULT_ROLE,
    LEGACY_FLAG_ROLE,
    admin_flag_after_assign,
    admin_flag_after_remove,
    effective_roles,
    has_role,
    highest_role,
    parse_role,
)

from .base import Repository
from .errors import InvalidArgumentError, NotFoundError, PersistenceError

logger = logging.getLogger(__name__)


class RoleRepository(Repository[RoleAssignment]):
    """
    Role assignment rows plus the legacy ``users.is_admin`` flag.

    Mutations persist immediately through ``save_changes``: on their own they
    commit, inside an explicit transaction they only flush and become part of it.
    """

    model = RoleAssignment

    def get_user_role_assignments(self, user_id: int) -> list[RoleAssignment]:
        stmt = (
            select(RoleAssignment)
            .where(RoleAssignment.user_id == user_id)
            .order_by(RoleAssignment.role)
        )
        return self.store.scalars(stmt)

    def get_role_assignment(self, user_id: int, role: Role | int | str) -> RoleAssignment | None:
        wanted = parse_role(role)
        stmt = select(RoleAssignment).where(
            RoleAssignment.user_id == user_id,
            RoleAssignment.role == int(wanted),
        )
        return self.store.scalar_one_or_none(stmt)

    def assign_role_to_user(self, user_id: int, role: Role | int | str) -> RoleAssignment:
        """
        Grant ``role``; returns the new row, or the existing one when already granted.

        Raises NotFoundError for an unknown user and InvalidArgumentError for
        GUEST, which is implicit and never stored.
        """
        wanted = parse_role(role)
        if wanted == DEFAULT_ROLE:
            raise InvalidArgumentError(f"{wanted.label} is implicit for every user and cannot be assigned.")
        user = self._require_user(user_id)

        assignment = self.get_role_assignment(user_id, wanted)
        created = False
        if assignment is None:
            assignment, created = self._insert_if_absent(user_id, wanted)

        new_flag = admin_flag_after_assign(bool(user.is_admin), wanted)
        if new_flag != bool(user.is_admin):
            user.is_admin = new_flag
        self.store.save_changes()

        if created:
            logger.info(
                "Role assigned",
                extra={"user_id": user_id, "role": wanted.label, "is_admin": bool(user.is_admin)},
            )
        return assignment

    def remove_role_from_user(self, user_id: int, role: Role | int | str) -> bool:
        """
        Revoke ``role``. False when no row exists for the pair, or when the
        row was already gone by the time the DELETE ran (concurrent remover).

        Removing ADMIN also clears the legacy flag.
        """
        wanted = parse_role(role)
        assignment = self.get_role_assignment(user_id, wanted)
        if assignment is None:
            return False

        # Staged writes go out first so the DELETE is ordered after them.
        self.store.flush()
        result = self.store.execute(delete(RoleAssignment).where(RoleAssignment.id == assignment.id))
        if result.rowcount == 0:
            logger.info(
                "Role assignment already removed concurrently",
                extra={"user_id": user_id, "role": wanted.label},
            )
            return False

        user = self.store.get(User, user_id)
        if user is not None:
            new_flag = admin_flag_after_remove(bool(user.is_admin), wanted)
            if new_flag != bool(user.is_admin):
                user.is_admin = new_flag
        self.store.save_changes()

        logger.info(
            "Role removed",
            extra={"user_id": user_id, "role": wanted.label},
        )
        return True

    def revoke_legacy_admin(self, user_id: int) -> bool:
        """Clear the legacy is_admin flag. False when the user is missing or the flag is already clear."""
        user = self.store.get(User, user_id)
        if user is None or not user.is_admin:
            return False
        user.is_admin = False
        self.store.save_changes()
        logger.info("Legacy admin flag cleared", extra={"user_id": user_id})
        return True

    def get_users_in_role(self, role: Role | int | str) -> list[User]:
        """Users holding ``role``: every user for GUEST, flag holders as well as rows for ADMIN."""
        wanted = parse_role(role)
        stmt = select(User).order_by(User.id)
        if wanted != DEFAULT_ROLE:
            holders = select(RoleAssignment.user_id).where(RoleAssignment.role == int(wanted))
            condition = User.id.in_(holders)
            if wanted == LEGACY_FLAG_ROLE:
                condition = or_(condition, User.is_admin == true())
            stmt = stmt.where(condition)
        return self.store.scalars(stmt)

    def user_has_role(self, user_id: int, role: Role | int | str) -> bool:
        wanted = parse_role(role)
        if wanted == DEFAULT_ROLE:
            return True
        is_admin = False
        if wanted == LEGACY_FLAG_ROLE:
            user = self.store.get(User, user_id)
            is_admin = bool(user is not None and user.is_admin)
        assigned = [wanted] if self.get_role_assignment(user_id, wanted) is not None else []
        return has_role(is_admin, assigned, wanted)

    def get_user_roles(self, user_id: int) -> list[Role]:
        """Effective roles, lowest rank first; empty for an unknown user."""
        user = self.store.get(User, user_id)
        if user is None:
            return []
        return effective_roles(bool(user.is_admin), self._assigned_values(user_id))

    def get_user_highest_role(self, user_id: int) -> Role:
        user = self.store.get(User, user_id)
        if user is None:
            return DEFAULT_ROLE
        if user.is_admin:
            return LEGACY_FLAG_ROLE
        return highest_role(False, self._assigned_values(user_id))

    def _assigned_values(self, user_id: int) -> list[int]:
        stmt = select(RoleAssignment.role).where(RoleAssignment.user_id == user_id)
        return self.store.scalars(stmt)

    def _require_user(self, user_id: int) -> User:
        user = self.store.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} does not exist.", entity="User", entity_id=user_id)
        return user

    def _insert_if_absent(self, user_id: int, role: Role) -> tuple[RoleAssignment, bool]:
        """
        Insert under a SAVEPOINT; a unique-constraint hit means a concurrent
        writer won, so return its row instead of failing.
        """
        self.store.flush()
        assignment = RoleAssignment(
            user_id=user_id,
            role=int(role),
            assigned_date=datetime.now(UTC),
        )
        session = self.session
        try:
            with session.begin_nested():
                session.add(assignment)
                session.flush()
        except IntegrityError:
            existing = self.get_role_assignment(user_id, role)
            if existing is None:
                raise PersistenceError(
                    f"Could not assign {role.label} to user {user_id}: constraint violation without a matching row."
                )
            logger.info(
                "Role assignment already created concurrently",
                extra={"user_id": user_id, "role": role.label},
            )
            return existing, False
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not assign {role.label} to user {user_id}: {exc}") from exc
        return assignment, True
