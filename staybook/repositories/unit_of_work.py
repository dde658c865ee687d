import logging
from types import TracebackType

from .errors import ConflictError, InvalidArgumentError
from .roles import RoleRepository
from .store import EntityStore
from .users import UserRepository

logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    One transactional group of repository operations over a single EntityStore.

    Usage:
        with UnitOfWork(EntityStore(session)) as uow:
            uow.begin_transaction()
            uow.users.add(user)
            uow.roles.assign_role_to_user(user_id, Role.ADMIN)
            uow.commit_transaction()

    Leaving the block never commits; an exception rolls back and the store is
    always released.
    """

    def __init__(self, store: EntityStore) -> None:
        if store is None:
            raise InvalidArgumentError("UnitOfWork requires an entity store.")
        self._store = store
        self._users: UserRepository | None = None
        self._roles: RoleRepository | None = None
        self._disposed = False

    @property
    def store(self) -> EntityStore:
        if self._disposed:
            raise ConflictError("Unit of work has been disposed.")
        return self._store

    @property
    def users(self) -> UserRepository:
        if self._users is None:
            self._users = UserRepository(self.store)
        return self._users

    @property
    def roles(self) -> RoleRepository:
        if self._roles is None:
            self._roles = RoleRepository(self.store)
        return self._roles

    @property
    def in_transaction(self) -> bool:
        return not self._disposed and self._store.in_transaction

    def save_changes(self) -> int:
        """Flush buffered writes; commits too unless an explicit transaction is open. Returns affected rows."""
        return self.store.save_changes()

    def begin_transaction(self) -> None:
        self.store.begin_transaction()

    def commit_transaction(self) -> None:
        """
        Save and commit. Any failure, interruption included, rolls the
        transaction back before the original exception propagates.
        """
        store = self.store
        try:
            self.save_changes()
            store.commit()
        except BaseException as exc:
            logger.warning(
                "Commit failed; rolling back",
                extra={"error_type": type(exc).__name__},
            )
            self.rollback_transaction()
            raise

    def rollback_transaction(self) -> None:
        if self._disposed:
            return
        self._store.rollback()

    def dispose(self) -> None:
        """Roll back anything still open and release the store. Safe to call repeatedly."""
        if self._disposed:
            return
        self._disposed = True
        try:
            self._store.close()
        finally:
            self._users = None
            self._roles = None

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            if exc_type is not None:
                self.rollback_transaction()
        finally:
            self.dispose()
