"""Database configuration and session factory."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from repokeeper.core.container import SESSION_KEY, Container


_TRUTHY = ("1", "true", "yes")


def _url_from_env(base_path: Path | None) -> str:
    # First hit wins: a full URL, then a bare SQLite file path.
    if url := os.environ.get("DATABASE_URL"):
        return url
    if db_path := os.environ.get("REPOKEEPER_DB_PATH"):
        return f"sqlite:///{db_path}"

    db_file = base_path / "data" / "repokeeper.db" if base_path else Path("repokeeper.db")
    return f"sqlite:///{db_file}"


@dataclass
class DatabaseConfig:
    """Where the repositories' sessions connect to.

    Only SQLite and PostgreSQL URLs are accepted by the session factory.
    """

    url: str
    echo: bool = False

    @classmethod
    def from_env(cls, base_path: Path | None = None) -> DatabaseConfig:
        """Read DATABASE_URL, else REPOKEEPER_DB_PATH, else a SQLite file
        under ``{base_path}/data``. REPOKEEPER_DB_ECHO turns on SQL echo.
        """
        echo = os.environ.get("REPOKEEPER_DB_ECHO", "").lower() in _TRUTHY
        return cls(url=_url_from_env(base_path), echo=echo)

    @property
    def parsed_url(self) -> URL:
        return make_url(self.url)

    @property
    def is_sqlite(self) -> bool:
        return self.parsed_url.get_backend_name() == "sqlite"

    @property
    def is_postgresql(self) -> bool:
        return self.parsed_url.get_backend_name() == "postgresql"

    @property
    def is_memory(self) -> bool:
        return self.is_sqlite and self.parsed_url.database in (None, "", ":memory:")

    @property
    def sqlalchemy_url(self) -> str:
        """The URL with a driver filled in; bare postgresql URLs get psycopg v3."""
        url = self.parsed_url
        if url.drivername == "postgresql":
            url = url.set(drivername="postgresql+psycopg")
        return url.render_as_string(hide_password=False)


def create_session_factory(config: DatabaseConfig) -> sessionmaker[Session]:
    """Create a session factory for the configured database.

    In-memory SQLite databases share one connection so that every session
    sees the same data.

    Raises:
        ValueError: For unsupported URL schemes
    """
    if not (config.is_sqlite or config.is_postgresql):
        raise ValueError(f"Unsupported database URL scheme: {config.url}")

    if config.is_memory:
        engine = create_engine(
            config.sqlalchemy_url,
            echo=config.echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(config.sqlalchemy_url, echo=config.echo)

    return sessionmaker(bind=engine)


def bind_database(container: Container, config: DatabaseConfig) -> sessionmaker[Session]:
    """Bind a session factory to the container.

    Every repository built from the container gets its own session.
    """
    factory = create_session_factory(config)
    container.bind(SESSION_KEY, lambda c: factory())
    return factory
