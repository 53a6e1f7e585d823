"""Action descriptors for repository calls."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ActionKind(Enum):
    """What a repository call does to the data."""

    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    UNKNOWN = "unknown"  # resets and anything that is not a data operation


@dataclass(frozen=True)
class Action:
    """One invocation of a public repository method.

    Attributes:
        method_name: Name of the public method (e.g., "find_where")
        arguments: Positional arguments of the call, defaults filled in
        kind: Read, create, update or delete
    """

    method_name: str
    arguments: tuple[Any, ...] = field(default_factory=tuple)
    kind: ActionKind = ActionKind.UNKNOWN

    @property
    def is_write(self) -> bool:
        return self.kind in (ActionKind.CREATE, ActionKind.UPDATE, ActionKind.DELETE)
