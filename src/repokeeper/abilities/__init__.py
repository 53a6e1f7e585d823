"""Optional repository abilities, mixed into BaseRepository subclasses."""

from repokeeper.abilities.adjustable import Adjustable, ApplyCriteriaBefore, Criteria

__all__ = ["Adjustable", "ApplyCriteriaBefore", "Criteria"]
