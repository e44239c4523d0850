"""Mock reorganizer for testing and offline use.

Provides a controllable reorganizer: preset results, preset errors,
simulated latency, and a gate that holds calls until released.
"""

import threading
import time
from collections.abc import Callable, Sequence

from ..notes.models import NoteItem, NoteKind

_KIND_ORDER = {NoteKind.TEXT: 0, NoteKind.AUDIO: 1, NoteKind.PHOTO: 2}


def group_by_kind(notes: Sequence[NoteItem]) -> list[NoteItem]:
    """Default organize: group by kind, oldest first, category = kind label."""
    ordered = sorted(notes, key=lambda n: (_KIND_ORDER[n.kind], n.created_at))
    return [note.with_labels(note.category or note.kind.label, note.tags) for note in ordered]


class MockReorganizer:
    """Mock reorganizer for testing.

    Allows setting predetermined results for predictable testing.
    """

    def __init__(self) -> None:
        """Initialize mock reorganizer."""
        self._result: list[NoteItem] | None = None
        self._handler: Callable[[Sequence[NoteItem]], list[NoteItem]] | None = None
        self._error: Exception | None = None
        self._latency_seconds: float = 0.0
        self._gate = threading.Event()
        self._gate.set()
        self._calls: list[tuple[NoteItem, ...]] = []
        self._lock = threading.Lock()
        self.started = threading.Event()

    def set_result(self, notes: Sequence[NoteItem]) -> None:
        """Return these notes from every call.

        Args:
            notes: Result to return
        """
        self._result = list(notes)
        self._handler = None
        self._error = None

    def set_handler(self, handler: Callable[[Sequence[NoteItem]], list[NoteItem]]) -> None:
        """Compute results with a function of the input notes."""
        self._handler = handler
        self._result = None
        self._error = None

    def set_error(self, error: Exception) -> None:
        """Raise this error from every call.

        Args:
            error: Exception to raise
        """
        self._error = error

    def set_latency(self, seconds: float) -> None:
        """Set simulated latency.

        Args:
            seconds: Delay before answering
        """
        self._latency_seconds = seconds

    def hold(self) -> None:
        """Block calls until release() is called."""
        self._gate.clear()

    def release(self) -> None:
        """Let held calls finish."""
        self._gate.set()

    def reorganize(self, notes: Sequence[NoteItem]) -> list[NoteItem]:
        """Return the preset result (or group notes by kind)."""
        with self._lock:
            self._calls.append(tuple(notes))
        self.started.set()

        if self._latency_seconds:
            time.sleep(self._latency_seconds)
        self._gate.wait()

        if self._error is not None:
            raise self._error
        if self._handler is not None:
            return self._handler(notes)
        if self._result is not None:
            return list(self._result)
        return group_by_kind(notes)

    @property
    def call_count(self) -> int:
        """Get number of reorganize calls."""
        return len(self._calls)

    @property
    def calls(self) -> list[tuple[NoteItem, ...]]:
        """Inputs received, one tuple per call."""
        with self._lock:
            return list(self._calls)

    def clear(self) -> None:
        """Reset mock state."""
        self._result = None
        self._handler = None
        self._error = None
        self._latency_seconds = 0.0
        self._gate.set()
        self.started.clear()
        with self._lock:
            self._calls.clear()


__all__ = ["MockReorganizer", "group_by_kind"]
