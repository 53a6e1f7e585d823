"""Immutable model query handle.

``ModelQuery`` pairs a mapped SQLAlchemy class with a session and a
``Select`` statement. Narrowing methods (``where``, ``with_``, ``order_by``)
never mutate; they return a new ``ModelQuery`` that the repository assigns
in place of the old one.
"""

from __future__ import annotations

import math
import operator
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

import sqlalchemy as sa
from sqlalchemy.orm import Mapper, Session, load_only, selectinload

from repokeeper.core.errors import RecordNotFound, RepositoryError

# Comparison operators accepted by ModelQuery.where()
OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "=": operator.eq,
    "==": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "like": lambda column, value: column.like(value),
    "not like": lambda column, value: column.not_like(value),
    "in": lambda column, value: column.in_(value),
    "not in": lambda column, value: column.not_in(value),
}

SORT_DIRECTIONS = ("asc", "desc")


def is_mapped(model: Any) -> bool:
    """Check if ``model`` is a class mapped by the SQLAlchemy ORM."""
    if not isinstance(model, type):
        return False
    return isinstance(sa.inspect(model, raiseerr=False), Mapper)


@dataclass(frozen=True)
class Page:
    """One page of results plus the numbers needed to render a pager."""

    items: list[Any]
    total: int
    per_page: int
    current_page: int = 1

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def has_more_pages(self) -> bool:
        return self.current_page < self.last_page

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True, eq=False)
class ModelQuery:
    """Query over one mapped model.

    Attributes:
        model: The mapped class
        session: Session used to execute and persist
        statement: Filters and ordering accumulated so far
        loader_options: Eager-loading options applied when executing
    """

    model: type
    session: Session
    statement: sa.Select | None = None
    loader_options: tuple[Any, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.statement is None:
            object.__setattr__(self, "statement", sa.select(self.model))

    # ------------------------------------------------------------------
    # Narrowing
    # ------------------------------------------------------------------

    def where(
        self,
        field: str | Callable[[ModelQuery], ModelQuery],
        op: str = "=",
        value: Any = None,
    ) -> ModelQuery:
        """Narrow by ``field op value``.

        ``field`` may also be a callable taking this query and returning a
        narrowed one, for conditions the operator table cannot express.
        """
        if callable(field):
            narrowed = field(self)
            if not isinstance(narrowed, ModelQuery):
                raise RepositoryError(
                    f"Where callback must return a ModelQuery, got {type(narrowed).__name__}"
                )
            return narrowed

        compare = OPERATORS.get(op.lower())
        if compare is None:
            raise RepositoryError(f"Unsupported where operator '{op}'")

        column = self._attribute(field)
        return replace(self, statement=self.statement.where(compare(column, value)))

    def with_(self, relations: str | Sequence[str]) -> ModelQuery:
        """Eager-load relations. Nested relations use dots: "author.company"."""
        if isinstance(relations, str):
            relations = [relations]

        options = tuple(self._eager_loader(path) for path in relations)
        return replace(self, loader_options=self.loader_options + options)

    def order_by(self, column: str, direction: str = "asc") -> ModelQuery:
        direction = direction.lower()
        if direction not in SORT_DIRECTIONS:
            raise RepositoryError(f"Sort direction must be 'asc' or 'desc', got '{direction}'")

        attribute = self._attribute(column)
        clause = attribute.desc() if direction == "desc" else attribute.asc()
        return replace(self, statement=self.statement.order_by(clause))

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def get(self, columns: Sequence[str] | None = None) -> list[Any]:
        """Execute and return all matching instances."""
        return list(self.session.scalars(self._executable(self.statement, columns)).all())

    def count(self) -> int:
        subquery = self.statement.order_by(None).subquery()
        return self.session.scalar(sa.select(sa.func.count()).select_from(subquery)) or 0

    def paginate(
        self,
        per_page: int,
        columns: Sequence[str] | None = None,
        page: int = 1,
    ) -> Page:
        """Return one page of results.

        Args:
            per_page: Page size
            columns: Columns to load, or None for all
            page: 1-based page number
        """
        if per_page < 1:
            raise RepositoryError(f"Page size must be positive, got {per_page}")
        page = max(1, page)

        total = self.count()
        stmt = self.statement.limit(per_page).offset((page - 1) * per_page)
        items = list(self.session.scalars(self._executable(stmt, columns)).all())
        return Page(items=items, total=total, per_page=per_page, current_page=page)

    def find(self, id: Any, columns: Sequence[str] | None = None) -> Any | None:
        """Find by primary key within the current conditions."""
        primary_key = sa.inspect(self.model).primary_key
        ids = id if isinstance(id, tuple) else (id,)
        if len(ids) != len(primary_key):
            raise RepositoryError(
                f"{self.model.__name__} has {len(primary_key)} primary key column(s), "
                f"got {len(ids)} value(s)"
            )

        stmt = self.statement.where(
            *(column == value for column, value in zip(primary_key, ids))
        )
        return self.session.scalars(self._executable(stmt.limit(1), columns)).first()

    def find_or_fail(self, id: Any, columns: Sequence[str] | None = None) -> Any:
        """Find by primary key.

        Raises:
            RecordNotFound: If nothing matches
        """
        instance = self.find(id, columns)
        if instance is None:
            raise RecordNotFound(self.model.__name__, id)
        return instance

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def new_instance(self, attributes: dict[str, Any]) -> Any:
        """Build an unsaved instance of the model."""
        instance = self.model()
        return self.fill(instance, attributes)

    def fill(self, instance: Any, attributes: dict[str, Any]) -> Any:
        """Assign attributes on an instance.

        Raises:
            RepositoryError: If an attribute is not mapped on the model. Nothing
                is assigned in that case.
        """
        mapper = sa.inspect(self.model)
        unknown = [key for key in attributes if key not in mapper.attrs]
        if unknown:
            raise RepositoryError(
                f"{self.model.__name__} has no attribute '{unknown[0]}'"
            )

        for key, value in attributes.items():
            setattr(instance, key, value)
        return instance

    def save(self, instance: Any) -> Any:
        """Persist an instance and commit."""
        self.session.add(instance)
        self._commit()
        return instance

    def delete(self, instance: Any) -> bool:
        """Delete an instance and commit."""
        self.session.delete(instance)
        self._commit()
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _commit(self) -> None:
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def _attribute(self, name: str) -> Any:
        if name not in sa.inspect(self.model).all_orm_descriptors:
            raise RepositoryError(f"{self.model.__name__} has no attribute '{name}'")
        return getattr(self.model, name)

    def _eager_loader(self, path: str) -> Any:
        model = self.model
        loader = None
        for name in path.split("."):
            relationships = sa.inspect(model).relationships
            if name not in relationships:
                raise RepositoryError(f"{model.__name__} has no relation '{name}'")
            attribute = getattr(model, name)
            loader = selectinload(attribute) if loader is None else loader.selectinload(attribute)
            model = relationships[name].mapper.class_
        return loader

    def _executable(self, stmt: sa.Select, columns: Sequence[str] | None) -> sa.Select:
        options = list(self.loader_options)
        if columns and "*" not in columns:
            options.append(load_only(*(self._attribute(c) for c in columns)))
        return stmt.options(*options) if options else stmt
