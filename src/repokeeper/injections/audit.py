"""Built-in injection that logs repository actions."""

import logging

from repokeeper.injections.flow import AfterFlow, BeforeFlow
from repokeeper.injections.types import AfterInjection, BeforeInjection


class ActionLogger(BeforeInjection, AfterInjection):
    """Logs every wrapped call before and after it runs.

    Registered in both the before and after phases. Writes are logged at
    INFO, reads and results at DEBUG.
    """

    def __init__(self, logger: logging.Logger | None = None, priority: int = 100):
        self.logger = logger or logging.getLogger("repokeeper.actions")
        self._priority = priority

    def priority(self) -> int:
        return self._priority

    def handle(self, flow: BeforeFlow | AfterFlow) -> None:
        repository = type(flow.repository).__name__
        action = flow.action

        if isinstance(flow, AfterFlow):
            self.logger.debug(
                "%s.%s returned %s",
                repository,
                action.method_name,
                type(flow.get_return()).__name__,
            )
            return

        level = logging.INFO if action.is_write else logging.DEBUG
        self.logger.log(
            level,
            "%s.%s (%s) called with %r, conditions %r",
            repository,
            action.method_name,
            action.kind.value,
            action.arguments,
            flow.repository.get_conditions(),
        )
