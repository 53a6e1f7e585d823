"""Injection capability types.

An injection is a unit of cross-cutting logic that runs around repository
calls. It declares which phases it takes part in by subclassing one or more
of the capability classes below:

- ResetInjection: after the model handle is rebuilt and conditions cleared
- BeforeInjection: before the operation runs (may short-circuit it)
- AfterInjection: after the operation runs (may replace its result)

An injection taking part in several phases receives a different flow type
in each, and can branch on it inside ``handle``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from repokeeper.injections.flow import AfterFlow, BeforeFlow, ResetFlow


class Phase(Enum):
    """Points in a repository call where injections run."""

    RESET = "reset"
    BEFORE = "before"
    AFTER = "after"


class Injection(ABC):
    """Base class for all injections."""

    @abstractmethod
    def priority(self) -> int:
        """Execution priority. Lower values run first."""

    @abstractmethod
    def handle(self, flow: Any) -> None:
        """Handle the flow of one phase."""


class ResetInjection(Injection):
    """Runs every time the repository resets."""

    @abstractmethod
    def handle(self, flow: ResetFlow) -> None: ...


class BeforeInjection(Injection):
    """Runs before the wrapped operation; may set a return override."""

    @abstractmethod
    def handle(self, flow: BeforeFlow) -> None: ...


class AfterInjection(Injection):
    """Runs after the wrapped operation; may replace the return value."""

    @abstractmethod
    def handle(self, flow: AfterFlow) -> None: ...


CAPABILITIES: dict[Phase, type[Injection]] = {
    Phase.RESET: ResetInjection,
    Phase.BEFORE: BeforeInjection,
    Phase.AFTER: AfterInjection,
}


def phases_for(injection: object) -> list[Phase]:
    """Return every phase the injection is capable of, in phase order."""
    return [
        phase
        for phase, capability in CAPABILITIES.items()
        if isinstance(injection, capability)
    ]
