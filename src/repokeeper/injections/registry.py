"""Injection registry for repokeeper.

Holds the injections of one repository, bucketed by phase and kept in
priority order.
"""

import logging

from repokeeper.core.errors import InvalidInjection
from repokeeper.injections.types import Injection, Phase, phases_for

logger = logging.getLogger(__name__)


class InjectionRegistry:
    """Per-repository registry of injections.

    Each phase bucket is sorted ascending by ``priority()``. Injections with
    equal priority keep their registration order.

    Example:
        registry = InjectionRegistry()
        registry.inject(CacheLookup())     # BeforeInjection, priority 10
        registry.inject(ActionLogger())    # Before + After, priority 100
        registry.get(Phase.BEFORE)         # [CacheLookup, ActionLogger]
    """

    def __init__(self) -> None:
        self._buckets: dict[Phase, list[Injection]] = {phase: [] for phase in Phase}

    def inject(self, injection: Injection) -> list[Phase]:
        """Register an injection in every phase it is capable of.

        Args:
            injection: Object subclassing at least one capability class

        Returns:
            The phases the injection was registered in

        Raises:
            InvalidInjection: If the injection matches no phase. The registry
                is left unchanged.
        """
        phases = phases_for(injection)
        if not phases:
            raise InvalidInjection(
                f"{type(injection).__name__} is not a reset, before or after injection"
            )

        for phase in phases:
            self._buckets[phase].append(injection)
        self._sort()

        logger.debug(
            "Injected %s (priority %s) into %s",
            type(injection).__name__,
            injection.priority(),
            ", ".join(phase.value for phase in phases),
        )
        return phases

    def _sort(self) -> None:
        for phase, injections in self._buckets.items():
            self._buckets[phase] = sorted(injections, key=lambda i: i.priority())

    def get(self, phase: Phase | str) -> list[Injection]:
        """Get the injections of a phase in execution order."""
        return list(self._buckets[Phase(phase)])

    def all(self) -> dict[str, list[Injection]]:
        """Get every bucket, keyed by phase name."""
        return {phase.value: list(injections) for phase, injections in self._buckets.items()}

    def clear(self) -> None:
        """Remove all injections."""
        for injections in self._buckets.values():
            injections.clear()
