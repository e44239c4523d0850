"""Authoritative note collection with persistence.

NotesStore owns the ordered list of notes. Every mutation is applied
under one lock, bumps the store revision, and is followed by a write of
the whole collection to the backend.
"""

import logging
import threading
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from ..notes.errors import (
    BackendCorruptError,
    BackendNotFoundError,
    PersistenceError,
    StaleSnapshotError,
    ValidationError,
)
from ..notes.models import NoteItem
from .backends import NotesBackend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotesSnapshot:
    """Immutable copy of the collection at a given revision.

    Attributes:
        notes: Notes in store order
        revision: Store revision when the snapshot was taken
    """

    notes: tuple[NoteItem, ...]
    revision: int

    def __len__(self) -> int:
        return len(self.notes)


def _check_note(note: object) -> NoteItem:
    """Re-check a note handed in by a caller."""
    if not isinstance(note, NoteItem):
        raise ValidationError(f"Expected NoteItem, got {type(note).__name__}")
    # Frozen dataclass validation runs in __post_init__; re-run it so a note
    # patched with object.__setattr__ cannot slip through.
    note.__post_init__()
    return note


class NotesStore:
    """Ordered, persisted collection of notes.

    Storage order is insertion order; presentation decides display order.
    """

    def __init__(
        self,
        backend: NotesBackend,
        on_persist_error: Callable[[PersistenceError], None] | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            backend: Persistence backend
            on_persist_error: Optional callback when a write fails
        """
        self._backend = backend
        self._on_persist_error = on_persist_error
        self._notes: list[NoteItem] = []
        self._revision = 0
        self._dirty = False
        self._lock = threading.RLock()

    @property
    def revision(self) -> int:
        """Counter bumped by every mutation."""
        return self._revision

    @property
    def dirty(self) -> bool:
        """True when the last write failed and current state is unsaved."""
        return self._dirty

    @property
    def notes(self) -> tuple[NoteItem, ...]:
        """Current notes in store order."""
        with self._lock:
            return tuple(self._notes)

    def snapshot(self) -> NotesSnapshot:
        """Take an immutable snapshot together with its revision."""
        with self._lock:
            return NotesSnapshot(notes=tuple(self._notes), revision=self._revision)

    def get(self, note_id: str) -> NoteItem | None:
        """Get a note by id."""
        with self._lock:
            for note in self._notes:
                if note.id == note_id:
                    return note
        return None

    def __len__(self) -> int:
        return len(self._notes)

    def __iter__(self) -> Iterator[NoteItem]:
        return iter(self.notes)

    def __contains__(self, note_id: object) -> bool:
        return isinstance(note_id, str) and self.get(note_id) is not None

    def _index_of(self, note_id: str) -> int | None:
        for index, note in enumerate(self._notes):
            if note.id == note_id:
                return index
        return None

    def add(self, note: NoteItem) -> NoteItem:
        """Append a note and persist.

        Args:
            note: Note to add

        Returns:
            The added note

        Raises:
            ValidationError: If the note is malformed or its id already exists
        """
        note = _check_note(note)
        with self._lock:
            if self._index_of(note.id) is not None:
                raise ValidationError(f"Note id already exists: {note.id}")
            self._notes.append(note)
            self._revision += 1
            logger.debug(f"Added {note.kind.value} note {note.id}")
            self.persist()
        return note

    def remove(self, note_id: str) -> bool:
        """Remove a note by id and persist.

        Args:
            note_id: Id of the note to remove

        Returns:
            True if removed, False if no such note (nothing is written)
        """
        with self._lock:
            index = self._index_of(note_id)
            if index is None:
                logger.debug(f"Remove ignored, no note {note_id}")
                return False
            del self._notes[index]
            self._revision += 1
            logger.debug(f"Removed note {note_id}")
            self.persist()
        return True

    def update(self, note: NoteItem) -> bool:
        """Replace the note with the same id, keeping its position.

        Args:
            note: Edited note

        Returns:
            True if updated, False if no note has that id

        Raises:
            ValidationError: If the note is malformed
        """
        note = _check_note(note)
        with self._lock:
            index = self._index_of(note.id)
            if index is None:
                return False
            self._notes[index] = note
            self._revision += 1
            logger.debug(f"Updated note {note.id}")
            self.persist()
        return True

    def replace_all(
        self, notes: Iterable[NoteItem], expected_revision: int | None = None
    ) -> None:
        """Swap the entire collection for a new ordered list and persist.

        The new ids need not be a subset of the current ones, but they must
        be unique within the new list.

        Args:
            notes: Replacement collection
            expected_revision: Revision the replacement was computed from;
                if the store has changed since, nothing is replaced

        Raises:
            ValidationError: If a note is malformed or ids repeat
            StaleSnapshotError: If expected_revision is outdated
        """
        replacement = [_check_note(note) for note in notes]

        seen: set[str] = set()
        for note in replacement:
            if note.id in seen:
                raise ValidationError(f"Duplicate note id in replacement: {note.id}")
            seen.add(note.id)

        with self._lock:
            if expected_revision is not None and expected_revision != self._revision:
                raise StaleSnapshotError(expected_revision, self._revision)
            self._notes = replacement
            self._revision += 1
            logger.info(f"Replaced collection with {len(replacement)} notes")
            self.persist()

    def load(self) -> None:
        """Load the collection from the backend.

        A missing or corrupt backing store starts the store empty.

        Raises:
            PersistenceError: For read failures other than missing/corrupt data
        """
        try:
            loaded = self._backend.load()
        except BackendNotFoundError:
            logger.info("No saved notes found, starting empty")
            loaded = []
        except BackendCorruptError as e:
            logger.warning(f"Saved notes are unreadable, starting empty: {e}")
            loaded = []

        with self._lock:
            self._notes = list(loaded)
            self._revision += 1
            self._dirty = False
        logger.info(f"Loaded {len(loaded)} notes")

    def persist(self) -> bool:
        """Write the current collection to the backend.

        A failure keeps the in-memory collection as is and marks the store
        dirty; the next successful write stores the current state.

        Returns:
            True if written, False on failure
        """
        with self._lock:
            try:
                self._backend.save(tuple(self._notes))
            except PersistenceError as e:
                self._dirty = True
                logger.warning(f"Failed to persist notes: {e}")
                if self._on_persist_error:
                    self._on_persist_error(e)
                return False

            if self._dirty:
                logger.info("Pending notes written after earlier failure")
            self._dirty = False
            return True


__all__ = ["NotesSnapshot", "NotesStore"]
