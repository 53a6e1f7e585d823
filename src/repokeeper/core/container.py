"""A small service container.

Repositories receive a container at construction and pull their
collaborators from it: the configuration, the database session and the
mapped model class.
"""

from __future__ import annotations

import importlib
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

# Factory signature: (Container) -> object
Factory = Callable[["Container"], Any]


class ContainerError(Exception):
    """Raised when the container cannot resolve a key."""


def import_string(path: str) -> Any:
    """Import an object from "package.module:Name" or "package.module.Name".

    Raises:
        ContainerError: If the module or attribute cannot be found
    """
    if ":" in path:
        module_name, _, attr = path.partition(":")
    else:
        module_name, _, attr = path.rpartition(".")

    if not module_name or not attr:
        raise ContainerError(f"'{path}' is not an import path")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ContainerError(f"Cannot import module '{module_name}': {e}") from e

    try:
        return getattr(module, attr)
    except AttributeError as e:
        raise ContainerError(f"Module '{module_name}' has no attribute '{attr}'") from e


class Container:
    """Resolves keys into objects.

    Resolution order for ``make``:
    1. Shared instances registered with ``instance`` (or cached singletons)
    2. Factories registered with ``bind``
    3. Import strings, then classes, which are called without arguments

    Example:
        container = Container()
        container.instance("config", Config({"repokeeper": {...}}))
        container.bind("db.session", lambda c: session_factory())
        container.make("config")
    """

    def __init__(self) -> None:
        self._bindings: dict[Any, tuple[Factory, bool]] = {}
        self._instances: dict[Any, Any] = {}

    def bind(self, key: Any, factory: Factory, singleton: bool = False) -> None:
        """Register a factory for a key.

        Args:
            key: Any hashable key, usually a string or a class
            factory: Called with the container on every ``make``
            singleton: Cache the first result and share it afterwards
        """
        self._instances.pop(key, None)
        self._bindings[key] = (factory, singleton)

    def instance(self, key: Any, obj: Any) -> None:
        """Register an existing object as the shared instance for a key."""
        self._instances[key] = obj

    def bound(self, key: Any) -> bool:
        """Check if a key has an instance or a binding."""
        return key in self._instances or key in self._bindings

    def resolve(self, key: Any) -> Any:
        """Resolve an import string into the object it names.

        Non-string keys are returned unchanged, so callers can pass either a
        class or its import path.
        """
        if isinstance(key, str):
            return import_string(key)
        return key

    def make(self, key: Any) -> Any:
        """Build or fetch the object for a key.

        Raises:
            ContainerError: If the key is neither bound nor resolvable
        """
        if key in self._instances:
            return self._instances[key]

        if key in self._bindings:
            factory, singleton = self._bindings[key]
            obj = factory(self)
            if singleton:
                self._instances[key] = obj
            return obj

        target = self.resolve(key)
        if isinstance(target, type):
            logger.debug("Building %s without a binding", target.__name__)
            return target()

        raise ContainerError(f"Nothing is bound to {key!r}")


# Keys repositories resolve from the container.
CONFIG_KEY = "config"
SESSION_KEY = "db.session"
