"""Organize workflow.

Coordinates a single in-flight reorganizer call: snapshots the store,
runs the reorganizer on a worker thread, and either replaces the
collection with the result or leaves it untouched and reports the
failure on the status channel.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING

from ..config import StatusConfig
from ..feedback.status import StatusLevel, StatusMessage
from ..notes.errors import (
    OrganizeError,
    OrganizeResultError,
    OrganizeTransportError,
    StaleSnapshotError,
    ValidationError,
)

if TYPE_CHECKING:
    from ..feedback.status import StatusChannel
    from ..store.store import NotesSnapshot, NotesStore
    from .reorganizer import Reorganizer

logger = logging.getLogger(__name__)

EMPTY_MESSAGE = "No notes to organize. Add some notes first!"
ORGANIZING_MESSAGE = "Organizing notes..."
SUCCESS_MESSAGE = "Notes organized"
UNSAVED_MESSAGE = "Notes organized, but saving failed. Changes will be saved next time."
STALE_MESSAGE = "Notes changed while organizing. Please try again."
RESULT_ERROR_MESSAGE = "Couldn't organize notes: the organizer returned invalid notes."
TRANSPORT_ERROR_MESSAGE = "Couldn't reach the organizer. Please try again."


class OrganizeState(Enum):
    """State of the organize workflow."""

    IDLE = "idle"
    ORGANIZING = "organizing"
    ERROR = "error"


class OrganizeOutcome(Enum):
    """Immediate result of an organize request."""

    STARTED = "started"
    ALREADY_RUNNING = "already_running"
    NOTHING_TO_ORGANIZE = "nothing_to_organize"


_TRANSITIONS: dict[OrganizeState, frozenset[OrganizeState]] = {
    OrganizeState.IDLE: frozenset({OrganizeState.ORGANIZING}),
    OrganizeState.ORGANIZING: frozenset({OrganizeState.IDLE, OrganizeState.ERROR}),
    OrganizeState.ERROR: frozenset({OrganizeState.IDLE}),
}


def _error_message(error: OrganizeError) -> str:
    if isinstance(error, StaleSnapshotError):
        return STALE_MESSAGE
    if isinstance(error, OrganizeResultError):
        return RESULT_ERROR_MESSAGE
    return TRANSPORT_ERROR_MESSAGE


class OrganizationWorkflow:
    """Runs organize requests against a notes store.

    At most one reorganizer call is in flight. Requests made while one is
    running are ignored, not queued. Failures never touch the store and
    are not retried automatically.
    """

    def __init__(
        self,
        store: NotesStore,
        reorganizer: Reorganizer,
        status: StatusChannel,
        config: StatusConfig | None = None,
    ) -> None:
        """Initialize the workflow.

        Args:
            store: Store whose collection is organized
            reorganizer: External reorganizer
            status: Channel for user-facing messages
            config: Message timing (defaults used when omitted)
        """
        self._store = store
        self._reorganizer = reorganizer
        self._status = status
        self._config = config or StatusConfig()
        self._state = OrganizeState.IDLE
        self._last_error: OrganizeError | None = None
        self._thread: threading.Thread | None = None
        self._progress: StatusMessage | None = None
        self._reorganize_calls = 0
        self._closed = False
        self._lock = threading.RLock()
        self._unsubscribe = status.subscribe(self._on_status)

    @property
    def state(self) -> OrganizeState:
        """Current workflow state."""
        return self._state

    @property
    def is_organizing(self) -> bool:
        """Return True while a reorganizer call is in flight."""
        return self._state is OrganizeState.ORGANIZING

    @property
    def last_error(self) -> OrganizeError | None:
        """Error of the most recent failed organize, if any."""
        return self._last_error

    @property
    def reorganize_calls(self) -> int:
        """Number of reorganizer calls made."""
        return self._reorganize_calls

    def _transition(self, new_state: OrganizeState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise RuntimeError(
                f"Invalid organize transition: {self._state.value} -> {new_state.value}"
            )
        logger.debug(f"Organize state {self._state.value} -> {new_state.value}")
        self._state = new_state

    def organize(self, wait: bool = False) -> OrganizeOutcome:
        """Request an organize run.

        Args:
            wait: Block until the run finishes

        Returns:
            Whether a run was started, skipped, or not needed

        Raises:
            RuntimeError: If the workflow has been closed
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("Organize workflow is closed")

            if self._state is OrganizeState.ORGANIZING:
                logger.info("Organize already in progress, ignoring request")
                return OrganizeOutcome.ALREADY_RUNNING

            snapshot = self._store.snapshot()
            if not snapshot.notes:
                self._status.post(
                    EMPTY_MESSAGE, StatusLevel.NOTICE, clear_after=self._config.notice_seconds
                )
                return OrganizeOutcome.NOTHING_TO_ORGANIZE

            if self._state is OrganizeState.ERROR:
                self._transition(OrganizeState.IDLE)
            self._transition(OrganizeState.ORGANIZING)
            self._last_error = None

            thread = threading.Thread(
                target=self._run,
                args=(snapshot,),
                daemon=True,
                name="zap-organize",
            )
            self._thread = thread
            self._reorganize_calls += 1
            self._progress = self._status.post(ORGANIZING_MESSAGE, StatusLevel.INFO)
            logger.info(f"Organizing {len(snapshot)} notes (revision {snapshot.revision})")
            thread.start()

        if wait:
            thread.join()
        return OrganizeOutcome.STARTED

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the in-flight run.

        Returns:
            True if no run is in flight when this returns
        """
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
            return not thread.is_alive()
        return True

    def acknowledge_error(self) -> None:
        """Dismiss a failed organize and return to idle."""
        with self._lock:
            if self._state is OrganizeState.ERROR:
                self._transition(OrganizeState.IDLE)

    def _on_status(self, message: StatusMessage | None) -> None:
        # Error message cleared or timed out
        if message is None:
            self.acknowledge_error()

    def close(self) -> None:
        """Tear down the workflow; a result still in flight is discarded."""
        with self._lock:
            self._closed = True
        self._unsubscribe()
        logger.debug("Organize workflow closed")

    def _run(self, snapshot: NotesSnapshot) -> None:
        """Worker thread body."""
        try:
            result = self._reorganizer.reorganize(snapshot.notes)
            if not isinstance(result, (list, tuple)):
                raise OrganizeResultError(
                    f"Reorganizer returned {type(result).__name__}, expected a list of notes"
                )

            # Outcome is posted under the lock, before another run can start
            with self._lock:
                if self._closed:
                    logger.info("Workflow closed during organize, discarding result")
                    self._transition(OrganizeState.IDLE)
                    self._withdraw_progress()
                    return
                self._store.replace_all(result, expected_revision=snapshot.revision)
                self._transition(OrganizeState.IDLE)
                self._progress = None

                logger.info(f"Organize finished with {len(result)} notes")
                if self._store.dirty:
                    self._status.post(
                        UNSAVED_MESSAGE, StatusLevel.ERROR, clear_after=self._config.error_seconds
                    )
                else:
                    self._status.post(
                        SUCCESS_MESSAGE, StatusLevel.INFO, clear_after=self._config.success_seconds
                    )

        except OrganizeError as e:
            self._fail(e)
        except ValidationError as e:
            self._fail(OrganizeResultError(f"Organized notes rejected: {e}"))
        except Exception as e:
            logger.exception("Reorganizer raised an unexpected error")
            self._fail(OrganizeTransportError(f"Organize failed: {e}"))

    def _withdraw_progress(self) -> None:
        if self._progress is not None:
            self._status.withdraw(self._progress)
            self._progress = None

    def _fail(self, error: OrganizeError) -> None:
        logger.warning(f"Organize failed: {error}")
        with self._lock:
            self._last_error = error
            self._transition(OrganizeState.ERROR)
            if self._closed:
                self._withdraw_progress()
                return
            self._progress = None
            self._status.post(
                _error_message(error), StatusLevel.ERROR, clear_after=self._config.error_seconds
            )


__all__ = [
    "EMPTY_MESSAGE",
    "OrganizationWorkflow",
    "OrganizeOutcome",
    "OrganizeState",
]
