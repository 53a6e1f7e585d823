"""Flow objects passed to injections.

A flow is created per phase of one repository call and owned by the call
wrapper for that call's lifetime.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from repokeeper.core.action import Action
from repokeeper.core.errors import RepositoryError

if TYPE_CHECKING:
    from repokeeper.repository.base import BaseRepository

_MISSING = object()


class Flow:
    """Common state of every flow: the repository and the triggering action."""

    def __init__(self, repository: BaseRepository, action: Action):
        self._repository = repository
        self._action = action

    @property
    def repository(self) -> BaseRepository:
        return self._repository

    @property
    def action(self) -> Action:
        return self._action


class ResetFlow(Flow):
    """Flow for the reset phase. Read-only."""


class BeforeFlow(Flow):
    """Flow for the before phase.

    Any injection may call ``set_return``; the wrapper then returns that
    value without running the operation, the after phase or the reset.
    """

    def __init__(self, repository: BaseRepository, action: Action):
        super().__init__(repository, action)
        self._return: Any = _MISSING

    def set_return(self, value: Any) -> None:
        self._return = value

    def has_return(self) -> bool:
        return self._return is not _MISSING

    def get_return(self) -> Any:
        """Return the override.

        Raises:
            RepositoryError: If no injection set one
        """
        if self._return is _MISSING:
            raise RepositoryError(
                "No return value was set in the before flow",
                repository=type(self._repository).__name__,
                operation=self._action.method_name,
            )
        return self._return


class AfterFlow(Flow):
    """Flow for the after phase.

    ``result`` is what the operation returned. ``get_return`` starts out as
    the same value; injections replace it in priority order and each one
    sees the value left by the previous.
    """

    def __init__(self, repository: BaseRepository, action: Action, result: Any):
        super().__init__(repository, action)
        self._result = result
        self._return = result

    @property
    def result(self) -> Any:
        return self._result

    def set_return(self, value: Any) -> None:
        self._return = value

    def get_return(self) -> Any:
        return self._return
