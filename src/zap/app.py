"""Application facade for Zap Notes.

Wires the notes store, organize workflow, and status channel together
and exposes the operations the capture, filter, and status UIs use.
"""

import logging
from collections.abc import Sequence

from .config import ZapConfig
from .feedback.status import StatusChannel, StatusLevel
from .notes.errors import PersistenceError
from .notes.filters import FilteredNotes, filter_notes
from .notes.models import AudioContent, NoteItem, NoteKind, PhotoContent, TextContent
from .organizer import OrganizationWorkflow, OrganizeOutcome, create_reorganizer
from .organizer.reorganizer import Reorganizer
from .store.backends import NotesBackend, create_backend
from .store.store import NotesStore

logger = logging.getLogger(__name__)

SAVE_FAILED_MESSAGE = "Couldn't save notes. They will be saved on the next change."


class ZapApp:
    """Notes store, organize workflow, and status channel in one place."""

    def __init__(
        self,
        backend: NotesBackend,
        reorganizer: Reorganizer,
        config: ZapConfig | None = None,
    ) -> None:
        """Initialize the app.

        Args:
            backend: Persistence backend for the store
            reorganizer: External reorganizer for organize runs
            config: Application configuration
        """
        self._config = config or ZapConfig()
        self.status = StatusChannel()
        self.store = NotesStore(backend, on_persist_error=self._report_persist_error)
        self.workflow = OrganizationWorkflow(
            self.store, reorganizer, self.status, self._config.status
        )

    @classmethod
    def from_config(cls, config: ZapConfig, use_mock: bool = False) -> "ZapApp":
        """Create an app from configuration and load saved notes.

        Args:
            config: Application configuration
            use_mock: Use the mock reorganizer

        Returns:
            Ready-to-use ZapApp
        """
        backend = create_backend(config.storage)
        reorganizer = create_reorganizer(config.organizer, use_mock=use_mock)
        app = cls(backend, reorganizer, config)
        app.store.load()
        return app

    def _report_persist_error(self, error: PersistenceError) -> None:
        self.status.post(
            SAVE_FAILED_MESSAGE, StatusLevel.ERROR, clear_after=self._config.status.error_seconds
        )

    @property
    def notes(self) -> tuple[NoteItem, ...]:
        """All notes in storage order."""
        return self.store.notes

    def add_text(
        self, body: str, category: str | None = None, tags: Sequence[str] = ()
    ) -> NoteItem:
        """Capture a text note.

        Raises:
            ValidationError: If the body is empty
        """
        note = NoteItem(content=TextContent(body=body), category=category, tags=tuple(tags))
        return self.store.add(note)

    def add_audio(self, file_ref: str, duration_seconds: float = 0.0) -> NoteItem:
        """Capture an audio note.

        Raises:
            ValidationError: If the file reference or duration is invalid
        """
        note = NoteItem(content=AudioContent(file_ref=file_ref, duration_seconds=duration_seconds))
        return self.store.add(note)

    def add_photo(self, image_ref: str) -> NoteItem:
        """Capture a photo note.

        Raises:
            ValidationError: If the image reference is empty
        """
        return self.store.add(NoteItem(content=PhotoContent(image_ref=image_ref)))

    def edit_text(self, note_id: str, body: str) -> NoteItem | None:
        """Rewrite the body of a text note in place.

        Returns:
            The edited note, or None if no text note has that id
        """
        note = self.store.get(note_id)
        if note is None or note.kind is not NoteKind.TEXT:
            return None
        edited = note.with_content(TextContent(body=body))
        return edited if self.store.update(edited) else None

    def delete(self, note_id: str) -> bool:
        """Delete a note; returns False if it does not exist."""
        return self.store.remove(note_id)

    def filtered(self, category: str | NoteKind) -> FilteredNotes:
        """Notes shown under a filter tab, over a consistent snapshot."""
        return filter_notes(self.store.notes, category)

    def organize(self, wait: bool = False) -> OrganizeOutcome:
        """Start an organize run."""
        return self.workflow.organize(wait=wait)

    def close(self) -> None:
        """Shut down: discard in-flight organize results, stop timers."""
        self.workflow.close()
        self.status.close()
        logger.debug("Zap app closed")


__all__ = ["SAVE_FAILED_MESSAGE", "ZapApp"]
