"""Notes module for Zap Notes.

Provides the note entity, its content variants, and kind filtering.
"""

from .errors import (
    OrganizeError,
    OrganizeResultError,
    OrganizeTransportError,
    PersistenceError,
    StaleSnapshotError,
    ValidationError,
    ZapError,
)
from .filters import ALL_CATEGORY, FILTER_TABS, FilteredNotes, filter_notes
from .models import AudioContent, NoteItem, NoteKind, PhotoContent, TextContent

__all__ = [
    "ALL_CATEGORY",
    "AudioContent",
    "FILTER_TABS",
    "FilteredNotes",
    "NoteItem",
    "NoteKind",
    "OrganizeError",
    "OrganizeResultError",
    "OrganizeTransportError",
    "PersistenceError",
    "PhotoContent",
    "StaleSnapshotError",
    "TextContent",
    "ValidationError",
    "ZapError",
    "filter_notes",
]
