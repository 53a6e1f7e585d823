"""repokeeper injection system.

Injections hook into every wrapped repository call at three points:
- reset: after the model handle is rebuilt and conditions are cleared
- before: before the operation runs (can short-circuit with a return value)
- after: after the operation runs (can replace the result)

Usage:
    from repokeeper.injections import BeforeInjection, BeforeFlow

    class ReadOnlyGuard(BeforeInjection):
        def priority(self) -> int:
            return 10

        def handle(self, flow: BeforeFlow) -> None:
            if flow.action.is_write:
                flow.set_return(None)
"""

from repokeeper.injections.audit import ActionLogger
from repokeeper.injections.flow import AfterFlow, BeforeFlow, Flow, ResetFlow
from repokeeper.injections.registry import InjectionRegistry
from repokeeper.injections.types import (
    AfterInjection,
    BeforeInjection,
    Injection,
    Phase,
    ResetInjection,
    phases_for,
)

__all__ = [
    "ActionLogger",
    "AfterFlow",
    "AfterInjection",
    "BeforeFlow",
    "BeforeInjection",
    "Flow",
    "Injection",
    "InjectionRegistry",
    "Phase",
    "ResetFlow",
    "ResetInjection",
    "phases_for",
]
