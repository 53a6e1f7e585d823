"""Adjustable ability: reusable query criteria.

A criteria object packages query-building calls so they can be shared
between repositories and call sites. It can be applied once, or remembered
and re-applied before every wrapped call until forgotten.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING

from repokeeper.injections.flow import BeforeFlow
from repokeeper.injections.types import BeforeInjection

if TYPE_CHECKING:
    from repokeeper.repository.base import BaseRepository

logger = logging.getLogger(__name__)


class Criteria(ABC):
    """Query criteria applied to a repository."""

    @abstractmethod
    def apply(self, repository: BaseRepository) -> None:
        """Narrow the repository, e.g. with ``apply_where`` or ``with_``."""


class ApplyCriteriaBefore(BeforeInjection):
    """Applies the repository's remembered criteria before each call."""

    def priority(self) -> int:
        return 30

    def handle(self, flow: BeforeFlow) -> None:
        repository = flow.repository
        for criteria in repository.get_criteria():
            repository.apply_criteria(criteria)


class Adjustable:
    """Mixin adding criteria support to a repository.

    Must come before ``BaseRepository`` in the bases:

        class UserRepository(Adjustable, BaseRepository):
            ...
    """

    def setups(self) -> list[Callable[[], None]]:
        return [*super().setups(), self.setup_adjustable]

    def setup_adjustable(self) -> None:
        self._criteria: list[Criteria] = []
        self.inject(ApplyCriteriaBefore())

    def apply_criteria(self, criteria: Criteria) -> Adjustable:
        """Apply criteria to the current call only."""
        logger.debug("Applying %s to %s", type(criteria).__name__, type(self).__name__)
        criteria.apply(self)
        return self

    def remember_criteria(self, criteria: Criteria) -> Adjustable:
        """Apply criteria before every call until forgotten."""
        self._criteria.append(criteria)
        return self

    def forget_criteria(self) -> Adjustable:
        self._criteria = []
        return self

    def get_criteria(self) -> list[Criteria]:
        return list(self._criteria)
