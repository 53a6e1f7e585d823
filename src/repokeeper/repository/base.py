"""Base repository.

Wraps CRUD operations on one mapped model and runs the injection pipeline
around each of them:

    before -> operation -> after -> reset

A before injection that sets a return value short-circuits the call: the
operation, the after phase and the reset are all skipped and the override
is returned as is.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from repokeeper.core.action import Action, ActionKind
from repokeeper.core.config import DEFAULT_PER_PAGE, PER_PAGE_KEY, coerce_per_page
from repokeeper.core.container import CONFIG_KEY, SESSION_KEY, Container, ContainerError
from repokeeper.core.errors import InvalidModel, RepositoryError
from repokeeper.injections.flow import AfterFlow, BeforeFlow, ResetFlow
from repokeeper.injections.registry import InjectionRegistry
from repokeeper.injections.types import Injection, Phase
from repokeeper.repository.query import ModelQuery, Page, is_mapped

logger = logging.getLogger(__name__)

Where = Mapping[str, Any] | Sequence[Sequence[Any] | Callable[[ModelQuery], ModelQuery]]


class BaseRepository(ABC):
    """Abstract base class for repositories.

    Subclasses implement ``model()`` and may register injections from setup
    steps listed in ``setups()``:

        class UserRepository(BaseRepository):
            def model(self):
                return User

            def setups(self):
                return [*super().setups(), self.setup_logging]

            def setup_logging(self):
                self.inject(ActionLogger())
    """

    # Dispatch table from public method name to the method doing the work.
    operations: dict[str, str] = {
        "all": "_all",
        "find": "_find",
        "paginate": "_paginate",
        "find_by_field": "_find_by_field",
        "find_where": "_find_where",
        "create": "_create",
        "update": "_update",
        "delete": "_delete",
    }

    query: ModelQuery

    def __init__(self, container: Container):
        self.container = container
        self.injections = InjectionRegistry()
        self.per_page = DEFAULT_PER_PAGE
        self._conditions: list[dict[str, Any]] = []

        self.load_config()
        self.session = self.container.make(SESSION_KEY)
        self.setup()
        self.reset(Action("__init__"))

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def load_config(self) -> None:
        """Read the page size from the container's config."""
        config = self.container.make(CONFIG_KEY)
        self.per_page = coerce_per_page(config.get(PER_PAGE_KEY, DEFAULT_PER_PAGE))

    def setups(self) -> list[Callable[[], None]]:
        """Setup steps run once at construction, in order.

        Override and extend, keeping the steps of base classes and mixins:
        ``return [*super().setups(), self.setup_cache]``.
        """
        return []

    def setup(self) -> None:
        for step in self.setups():
            step()

    @abstractmethod
    def model(self) -> type | str:
        """The mapped class, or its import path ("app.models:User")."""

    def inject(self, injection: Injection) -> None:
        """Register an injection.

        Raises:
            InvalidInjection: If it implements no phase capability
        """
        self.injections.inject(injection)

    def close(self) -> None:
        """Close the session. Pending changes are discarded."""
        self.session.close()

    def __enter__(self) -> BaseRepository:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Model handle and conditions
    # ------------------------------------------------------------------

    def model_instance(self) -> ModelQuery:
        """Build the model handle for ``model()``.

        Override to build the handle differently, e.g. with a base filter
        every call should start from. Must return a ``ModelQuery``.
        """
        try:
            model = self.container.resolve(self.model())
        except ContainerError as e:
            raise InvalidModel(str(e), repository=type(self).__name__) from e

        if not is_mapped(model):
            raise InvalidModel(
                f"{model!r} must be a class mapped by the SQLAlchemy ORM",
                repository=type(self).__name__,
            )
        return ModelQuery(model, self.session)

    def fresh_model(self) -> None:
        """Replace the model handle with a new, unconditioned one."""
        query = self.model_instance()
        if not isinstance(query, ModelQuery):
            raise InvalidModel(
                f"Model handle must be a ModelQuery, got {type(query).__name__}",
                repository=type(self).__name__,
            )
        self.query = query

    def add_condition(self, kind: str, condition: Any) -> None:
        self._conditions.append({kind: condition})

    def reset_conditions(self) -> None:
        self._conditions = []

    def get_conditions(self) -> list[dict[str, Any]]:
        """Conditions applied since the last reset, in order."""
        return list(self._conditions)

    # ------------------------------------------------------------------
    # Flow
    # ------------------------------------------------------------------

    def reset(self, action: Action | None = None) -> None:
        """Rebuild the model handle, clear conditions, run reset injections."""
        action = action or Action("reset")

        self.fresh_model()
        self.reset_conditions()

        flow = ResetFlow(self, action)
        for injection in self.injections.get(Phase.RESET):
            injection.handle(flow)

    def before(self, action: Action) -> BeforeFlow:
        flow = BeforeFlow(self, action)
        for injection in self.injections.get(Phase.BEFORE):
            injection.handle(flow)
        return flow

    def after(self, action: Action, result: Any) -> AfterFlow:
        flow = AfterFlow(self, action, result)
        for injection in self.injections.get(Phase.AFTER):
            injection.handle(flow)
        return flow

    def wrap(self, action: Action, operation: Callable[..., Any] | None = None) -> Any:
        """Run an operation through the injection pipeline.

        Args:
            action: What is being called, with its arguments
            operation: Callable doing the work. Defaults to the entry for
                ``action.method_name`` in ``operations``.

        Returns:
            The before override if one was set, otherwise the operation's
            result as left by the after injections.
        """
        before_flow = self.before(action)
        if before_flow.has_return():
            logger.debug(
                "%s.%s short-circuited by a before injection",
                type(self).__name__,
                action.method_name,
            )
            return before_flow.get_return()

        if operation is None:
            operation = self._operation(action)

        try:
            result = operation(*action.arguments)
        except RepositoryError as e:
            # Outermost call wins, so a delete reports "delete" even though
            # the lookup ran through find.
            e.repository = e.repository or type(self).__name__
            e.operation = action.method_name
            self.reset(action)
            raise
        except Exception:
            self.reset(action)
            raise

        after_flow = self.after(action, result)
        self.reset(action)
        return after_flow.get_return()

    def _operation(self, action: Action) -> Callable[..., Any]:
        name = self.operations.get(action.method_name)
        if name is None:
            raise RepositoryError(
                f"No operation registered for '{action.method_name}'",
                repository=type(self).__name__,
                operation=action.method_name,
            )
        return getattr(self, name)

    # ------------------------------------------------------------------
    # Query building
    # ------------------------------------------------------------------

    def apply_where(self, where: Where) -> BaseRepository:
        """Narrow the model handle.

        Accepts a mapping of field to value (equality), or a sequence whose
        items are ``[field, operator, value]`` triples or callables taking
        and returning a ``ModelQuery``. Logs one "where" condition per call.
        """
        self.add_condition("where", where)

        query = self.query
        if isinstance(where, Mapping):
            for field, value in where.items():
                query = query.where(field, "=", value)
        else:
            for item in where:
                if callable(item):
                    query = query.where(item)
                    continue
                if isinstance(item, str) or len(item) != 3:
                    raise RepositoryError(
                        f"Where conditions must be [field, operator, value], got {item!r}",
                        repository=type(self).__name__,
                    )
                field, op, value = item
                query = query.where(field, op, value)

        self.query = query
        return self

    def apply_order(self, column: str, direction: str = "asc") -> BaseRepository:
        self.add_condition("order", [column, direction])
        self.query = self.query.order_by(column, direction)
        return self

    def with_(self, relations: str | Sequence[str]) -> BaseRepository:
        """Eager-load relations on the next call."""
        self.add_condition("with", relations)
        self.query = self.query.with_(relations)
        return self

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def all(self, columns: Sequence[str] | None = None) -> list[Any]:
        return self.wrap(Action("all", (columns,), ActionKind.READ))

    def find(self, id: Any, columns: Sequence[str] | None = None) -> Any:
        """Find a record by primary key.

        Raises:
            RecordNotFound: If it does not exist
        """
        return self.wrap(Action("find", (id, columns), ActionKind.READ))

    def paginate(
        self,
        limit: int | None = None,
        columns: Sequence[str] | None = None,
        page: int = 1,
    ) -> Page:
        """Get one page of records. ``limit`` defaults to the configured page size."""
        return self.wrap(Action("paginate", (limit, columns, page), ActionKind.READ))

    def find_by_field(
        self,
        field: str,
        value: Any = None,
        columns: Sequence[str] | None = None,
    ) -> list[Any]:
        return self.wrap(Action("find_by_field", (field, value, columns), ActionKind.READ))

    def find_where(self, where: Where, columns: Sequence[str] | None = None) -> list[Any]:
        return self.wrap(Action("find_where", (where, columns), ActionKind.READ))

    def create(self, attributes: dict[str, Any]) -> Any:
        return self.wrap(Action("create", (attributes,), ActionKind.CREATE))

    def update(self, id: Any, attributes: dict[str, Any]) -> Any:
        """Update a record by primary key.

        Raises:
            RecordNotFound: If it does not exist
        """
        return self.wrap(Action("update", (id, attributes), ActionKind.UPDATE))

    def delete(self, id: Any) -> bool:
        """Delete a record by primary key.

        The record is looked up with ``find``, which runs through the
        pipeline (and resets) on its own.

        Raises:
            RecordNotFound: If it does not exist
        """
        return self.wrap(Action("delete", (id,), ActionKind.DELETE))

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def _all(self, columns: Sequence[str] | None = None) -> list[Any]:
        return self.query.get(columns)

    def _find(self, id: Any, columns: Sequence[str] | None = None) -> Any:
        return self.query.find_or_fail(id, columns)

    def _paginate(
        self,
        limit: int | None = None,
        columns: Sequence[str] | None = None,
        page: int = 1,
    ) -> Page:
        limit = self.per_page if limit is None else limit
        return self.query.paginate(limit, columns, page)

    def _find_by_field(
        self,
        field: str,
        value: Any = None,
        columns: Sequence[str] | None = None,
    ) -> list[Any]:
        return self.query.where(field, "=", value).get(columns)

    def _find_where(self, where: Where, columns: Sequence[str] | None = None) -> list[Any]:
        self.apply_where(where)
        return self.query.get(columns)

    def _create(self, attributes: dict[str, Any]) -> Any:
        instance = self.query.new_instance(attributes)
        return self.query.save(instance)

    def _update(self, id: Any, attributes: dict[str, Any]) -> Any:
        instance = self.query.find_or_fail(id)
        try:
            self.query.fill(instance, attributes)
        except Exception:
            # Discard partial changes so a later commit cannot write them
            self.session.rollback()
            raise
        return self.query.save(instance)

    def _delete(self, id: Any) -> bool:
        instance = self.find(id)
        return self.query.delete(instance)
