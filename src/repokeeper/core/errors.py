"""Exceptions raised by repositories."""

from typing import Any


class RepositoryError(Exception):
    """Base exception for repository operations."""

    def __init__(
        self,
        message: str,
        repository: str | None = None,
        operation: str | None = None,
    ) -> None:
        self.repository = repository
        self.operation = operation
        super().__init__(message)


class InvalidInjection(RepositoryError):
    """Raised when an injection implements none of the phase capabilities."""


class InvalidModel(RepositoryError):
    """Raised when the model hook does not yield a mapped SQLAlchemy class."""


class RecordNotFound(RepositoryError):
    """Raised when a record looked up by primary key does not exist."""

    def __init__(
        self,
        model: str,
        id: Any,
        repository: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(
            f"{model} with ID {id!r} not found",
            repository=repository,
            operation=operation,
        )
        self.model = model
        self.id = id
