"""Storage module for Zap Notes.

Provides the notes store and its persistence backends.
"""

from .backends import (
    JSONFileBackend,
    MemoryBackend,
    NotesBackend,
    SQLiteBackend,
    create_backend,
)
from .store import NotesSnapshot, NotesStore

__all__ = [
    "JSONFileBackend",
    "MemoryBackend",
    "NotesBackend",
    "NotesSnapshot",
    "NotesStore",
    "SQLiteBackend",
    "create_backend",
]
