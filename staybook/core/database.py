"""Engine, session and unit-of-work factories."""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from staybook.core.config import settings
from staybook.repositories.store import EntityStore
from staybook.repositories.unit_of_work import UnitOfWork

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """
    Let SQLAlchemy own BEGIN on pysqlite connections.

    The driver otherwise delays BEGIN until the first DML statement, which
    breaks SAVEPOINT semantics used for conflict-as-success role inserts.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


def create_store_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine for ``url``; SQLite URLs get thread-sharing and savepoint support."""
    connect_args: dict[str, Any] = {}
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        connect_args["check_same_thread"] = False
    engine = create_engine(
        url,
        connect_args=connect_args,
        pool_pre_ping=not is_sqlite,
        echo=echo,
    )
    if is_sqlite:
        _enable_sqlite_savepoints(engine)
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Sessions never autoflush, so staged writes stay buffered until saved."""
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = create_store_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(get_engine())
    return _session_factory


def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
        _engine = None
    _session_factory = None


def get_db() -> Generator[Session, None, None]:
    """Dependency that yields a DB session and closes it when done."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(
    session_factory: sessionmaker[Session] | None = None,
) -> Generator[UnitOfWork, None, None]:
    """
    Open a unit of work over a fresh session.

    Nothing is committed implicitly: callers use ``save_changes`` or
    ``begin_transaction``/``commit_transaction``. Any exception rolls back.
    """
    factory = session_factory or get_session_factory()
    with UnitOfWork(EntityStore(factory())) as uow:
        yield uow


def get_uow() -> Generator[UnitOfWork, None, None]:
    """Dependency that yields a request-scoped unit of work."""
    with unit_of_work() as uow:
        yield uow


def check_db_connected(db: Session) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
