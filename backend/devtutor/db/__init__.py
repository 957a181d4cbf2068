"""Database package for the devtutor backend."""

from .base import Base, Database
from .store import PersistResult, SessionStore

__all__ = [
    "Base",
    "Database",
    "PersistResult",
    "SessionStore",
]
