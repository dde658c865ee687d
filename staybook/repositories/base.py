from collections.abc import Iterable, Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, Select, and_, func, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from staybook.models.base import Base
from staybook.schemas.query import Criterion, Ordering, QuerySpec

from .errors import InvalidArgumentError, NotFoundError, PersistenceError
from .store import EntityStore

ModelT = TypeVar("ModelT", bound=Base)


class Repository(Generic[ModelT]):
    """
    CRUD, criteria and paged queries over one mapped entity type.

    Writes are staged in the store's session and only reach the database when
    the owning unit of work saves or commits. Queries see committed rows plus
    whatever this store has already flushed; staged, unflushed writes are not
    visible to them.
    """

    model: type[ModelT]

    def __init__(self, store: EntityStore) -> None:
        if store is None:
            raise InvalidArgumentError(f"{type(self).__name__} requires an entity store.")
        self.store = store

    @property
    def session(self):
        return self.store.session

    # Retrieval

    def get_by_id(self, entity_id: int) -> ModelT | None:
        return self.store.get(self.model, entity_id)

    def get_all(self) -> list[ModelT]:
        return self.store.scalars(select(self.model).order_by(*self._primary_key()))

    def find(self, spec: QuerySpec) -> list[ModelT]:
        return self.store.scalars(self._build(spec))

    def single_or_default(self, spec: QuerySpec) -> ModelT | None:
        """Return the only match, None when nothing matches; MultipleResultsError when several do."""
        return self.store.scalar_one_or_none(self._build(spec))

    def exists(self, spec: QuerySpec) -> bool:
        stmt = select(self._build(spec, with_includes=False).exists())
        return bool(self.store.scalar(stmt))

    def count(self, spec: QuerySpec | None = None) -> int:
        stmt = select(func.count()).select_from(self.model)
        if spec is not None and spec.where:
            stmt = stmt.where(self._where(spec.where))
        return int(self.store.scalar(stmt) or 0)

    def get_paged(
        self,
        page: int,
        page_size: int,
        filter: QuerySpec | None = None,
        order_by: Sequence[Ordering] | None = None,
        include: Sequence[str] = (),
    ) -> list[ModelT]:
        """
        Return one page (1-based) of entities.

        Applies the filter, then eager loads, then ordering (primary key when
        none is given), then offset/limit. page < 1 or page_size < 1 raises
        InvalidArgumentError.
        """
        if page < 1:
            raise InvalidArgumentError(f"page must be >= 1, got {page}.")
        if page_size < 1:
            raise InvalidArgumentError(f"page_size must be >= 1, got {page_size}.")
        stmt = select(self.model)
        if filter is not None and filter.where:
            stmt = stmt.where(self._where(filter.where))
        includes = [*(filter.include if filter is not None else []), *include]
        stmt = self._apply_includes(stmt, includes)
        orderings = list(order_by) if order_by else list(filter.order_by if filter is not None else [])
        stmt = self._apply_ordering(stmt, orderings)
        stmt = stmt.offset((page - 1) * page_size).limit(page_size)
        return self.store.scalars(stmt)

    # Staged writes

    def add(self, entity: ModelT) -> ModelT:
        self._check_entity(entity)
        if inspect(entity).has_identity:
            raise InvalidArgumentError(
                f"{type(entity).__name__} is already persisted; use update() instead."
            )
        self.session.add(entity)
        return entity

    def add_range(self, entities: Iterable[ModelT]) -> list[ModelT]:
        staged = list(entities)
        for entity in staged:
            self.add(entity)
        return staged

    def update(self, entity: ModelT) -> ModelT:
        """Stage a full-row replace of an already persisted entity, attached by primary key."""
        self._check_entity(entity)
        state = inspect(entity)
        if state.session is self.session and state.persistent:
            return entity
        if any(value is None for value in state.mapper.primary_key_from_instance(entity)):
            raise InvalidArgumentError(f"{type(entity).__name__} has no id to update.")
        merged = self._attach(entity)
        if merged is None:
            raise NotFoundError(
                f"{type(entity).__name__} {state.identity or state.mapper.primary_key_from_instance(entity)} does not exist.",
                entity=type(entity).__name__,
            )
        return merged

    def remove(self, entity: ModelT) -> None:
        self._check_entity(entity)
        state = inspect(entity)
        if state.pending and state.session is self.session:
            self.session.expunge(entity)
            return
        if state.session is not self.session or not state.persistent:
            entity = self._attach(entity)
            if entity is None:
                return
        self.session.delete(entity)

    def remove_range(self, entities: Iterable[ModelT]) -> None:
        for entity in list(entities):
            self.remove(entity)

    def _attach(self, entity: ModelT) -> ModelT | None:
        """Merge a detached/transient entity onto its stored row; None when no such row exists."""
        try:
            merged = self.session.merge(entity)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not attach {type(entity).__name__}: {exc}") from exc
        if inspect(merged).pending:
            self.session.expunge(merged)
            return None
        return merged

    # Spec translation

    def _build(self, spec: QuerySpec, with_includes: bool = True) -> Select:
        stmt = select(self.model)
        if spec.where:
            stmt = stmt.where(self._where(spec.where))
        if with_includes:
            stmt = self._apply_includes(stmt, spec.include)
            stmt = self._apply_ordering(stmt, spec.order_by, default_to_pk=False)
        return stmt

    def _where(self, criteria: Sequence[Criterion]) -> ColumnElement[bool]:
        return and_(*(self._clause(c) for c in criteria))

    def _clause(self, criterion: Criterion) -> ColumnElement[bool]:
        column = self._column(criterion.field)
        value = criterion.value
        op = criterion.op
        if op == "eq":
            return column.is_(None) if value is None else column == value
        if op == "ne":
            return column.is_not(None) if value is None else column != value
        if op == "lt":
            return column < value
        if op == "le":
            return column <= value
        if op == "gt":
            return column > value
        if op == "ge":
            return column >= value
        if op == "in":
            if not isinstance(value, (list, tuple, set, frozenset)):
                raise InvalidArgumentError(f"'in' on {criterion.field} needs a list value.")
            return column.in_(list(value))
        if op == "ieq":
            return func.lower(column) == str(value).lower()
        if op == "contains":
            return column.contains(value, autoescape=True)
        if op == "is_null":
            return column.is_(None) if value in (None, True) else column.is_not(None)
        raise InvalidArgumentError(f"Unsupported operator {op!r}.")

    def _column(self, field: str) -> Any:
        columns = inspect(self.model).columns
        if field not in columns:
            raise InvalidArgumentError(f"{self.model.__name__} has no column {field!r}.")
        return getattr(self.model, field)

    def _apply_includes(self, stmt: Select, relations: Sequence[str]) -> Select:
        known = inspect(self.model).relationships
        for name in dict.fromkeys(relations):
            if name not in known:
                raise InvalidArgumentError(f"{self.model.__name__} has no relation {name!r}.")
            stmt = stmt.options(selectinload(getattr(self.model, name)))
        return stmt

    def _apply_ordering(
        self,
        stmt: Select,
        orderings: Sequence[Ordering],
        default_to_pk: bool = True,
    ) -> Select:
        if not orderings:
            return stmt.order_by(*self._primary_key()) if default_to_pk else stmt
        clauses = []
        for ordering in orderings:
            column = self._column(ordering.field)
            clauses.append(column.desc() if ordering.descending else column.asc())
        # Primary key as tie-breaker keeps pages stable.
        return stmt.order_by(*clauses, *self._primary_key())

    def _primary_key(self) -> tuple[Any, ...]:
        return tuple(inspect(self.model).primary_key)

    def _check_entity(self, entity: Any) -> None:
        if entity is None:
            raise InvalidArgumentError("Entity must not be None.")
        if not isinstance(entity, self.model):
            raise InvalidArgumentError(
                f"Expected {self.model.__name__}, got {type(entity).__name__}."
            )
