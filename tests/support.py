"""Shared fixtures for tests that need a real database: a throwaway SQLite file per test case."""

import os
import shutil
import tempfile

from staybook.core.database import create_session_factory, create_store_engine
from staybook.core.security import hash_password
from staybook.models import Base, Booking, Role, RoleAssignment, User
from staybook.repositories.store import EntityStore
from staybook.repositories.unit_of_work import UnitOfWork

# Lowest cost bcrypt accepts; keeps hashing out of test run time.
TEST_BCRYPT_ROUNDS = 4
TEST_PASSWORD = "correct-horse-battery"


class TempDatabase:
    """SQLite file database with the full schema, removed again by close()."""

    def __init__(self) -> None:
        self.directory = tempfile.mkdtemp(prefix="staybook-test-")
        self.url = "sqlite:///" + os.path.join(self.directory, "test.db")
        self.engine = create_store_engine(self.url)
        Base.metadata.create_all(self.engine)
        self.session_factory = create_session_factory(self.engine)

    def session(self):
        return self.session_factory()

    def store(self) -> EntityStore:
        return EntityStore(self.session_factory())

    def uow(self) -> UnitOfWork:
        return UnitOfWork(self.store())

    def close(self) -> None:
        self.engine.dispose()
        shutil.rmtree(self.directory, ignore_errors=True)


def seed_user(
    db: TempDatabase,
    email: str,
    user_id: int | None = None,
    username: str | None = None,
    is_admin: bool = False,
    roles: tuple[Role, ...] = (),
    password: str = TEST_PASSWORD,
) -> int:
    """Insert a committed user (and optional role rows) directly; returns the user id."""
    session = db.session()
    try:
        user = User(
            id=user_id,
            email=email,
            username=username,
            password_hash=hash_password(password, rounds=TEST_BCRYPT_ROUNDS),
            is_admin=is_admin,
        )
        session.add(user)
        session.flush()
        for role in roles:
            session.add(RoleAssignment(user_id=user.id, role=int(role)))
        session.commit()
        return user.id
    finally:
        session.close()


def seed_booking(db: TempDatabase, user_id: int, reservation_number: str) -> int:
    session = db.session()
    try:
        booking = Booking(
            user_id=user_id,
            reservation_number=reservation_number,
            guest_count=2,
            total_price=120,
        )
        session.add(booking)
        session.commit()
        return booking.id
    finally:
        session.close()


def count_rows(db: TempDatabase, model) -> int:
    session = db.session()
    try:
        return session.query(model).count()
    finally:
        session.close()
