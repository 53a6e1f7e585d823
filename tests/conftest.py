"""Shared fixtures: an in-memory database, models and a user repository."""

import pytest
from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from repokeeper.core.config import Config
from repokeeper.core.container import CONFIG_KEY, SESSION_KEY, Container
from repokeeper.injections.types import AfterInjection, BeforeInjection, ResetInjection
from repokeeper.persistence.config import DatabaseConfig, create_session_factory
from repokeeper.repository.base import BaseRepository


# =============================================================================
# Models
# =============================================================================


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(50))
    age: Mapped[int] = mapped_column(default=0)
    articles: Mapped[list["Article"]] = relationship(back_populates="author")


class Article(Base):
    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(100))
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    author: Mapped[User] = relationship(back_populates="articles")
    comments: Mapped[list["Comment"]] = relationship(back_populates="article")


class Comment(Base):
    __tablename__ = "comments"

    id: Mapped[int] = mapped_column(primary_key=True)
    body: Mapped[str] = mapped_column(String(200))
    article_id: Mapped[int] = mapped_column(ForeignKey("articles.id"))
    article: Mapped[Article] = relationship(back_populates="comments")


class NotAModel:
    pass


# =============================================================================
# Repositories
# =============================================================================


class UserRepository(BaseRepository):
    def model(self):
        return User


# =============================================================================
# Recording injections
# =============================================================================


class _Recording:
    """Appends (flow type, name) to a shared list, then runs an optional callback."""

    def __init__(self, calls, name, priority=0, callback=None):
        self.calls = calls
        self.name = name
        self._priority = priority
        self.callback = callback

    def priority(self):
        return self._priority

    def handle(self, flow):
        self.calls.append((type(flow).__name__, self.name))
        if self.callback:
            self.callback(flow)


class RecordingReset(_Recording, ResetInjection):
    pass


class RecordingBefore(_Recording, BeforeInjection):
    pass


class RecordingAfter(_Recording, AfterInjection):
    pass


class RecordingEverywhere(_Recording, ResetInjection, BeforeInjection, AfterInjection):
    pass


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def session_factory():
    """Session factory over a fresh in-memory database."""
    factory = create_session_factory(DatabaseConfig(url="sqlite://"))
    Base.metadata.create_all(factory.kw["bind"])
    return factory


@pytest.fixture
def config():
    return Config()


@pytest.fixture
def container(session_factory, config):
    container = Container()
    container.instance(CONFIG_KEY, config)
    container.bind(SESSION_KEY, lambda c: session_factory())
    return container


@pytest.fixture
def repository(container):
    return UserRepository(container)


@pytest.fixture
def seeded(session_factory):
    """Three users, two articles by Aaron, one comment."""
    with session_factory() as session:
        aaron = User(id=1, name="Aaron", age=5)
        bob = User(id=2, name="Bob", age=30)
        carol = User(id=3, name="Carol", age=42)
        first = Article(id=1, title="First", author=aaron)
        second = Article(id=2, title="Second", author=aaron)
        first.comments.append(Comment(id=1, body="Nice"))
        session.add_all([aaron, bob, carol, first, second])
        session.commit()
    return session_factory
