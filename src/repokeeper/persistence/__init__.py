"""Persistence layer - database configuration and sessions."""

from repokeeper.persistence.config import (
    DatabaseConfig,
    bind_database,
    create_session_factory,
)

__all__ = ["DatabaseConfig", "bind_database", "create_session_factory"]
