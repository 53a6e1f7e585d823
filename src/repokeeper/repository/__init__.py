"""Repositories over SQLAlchemy ORM models."""

from repokeeper.repository.base import BaseRepository
from repokeeper.repository.query import OPERATORS, ModelQuery, Page, is_mapped

__all__ = [
    "BaseRepository",
    "ModelQuery",
    "OPERATORS",
    "Page",
    "is_mapped",
]
