"""Transient user-facing status messages.

The channel holds at most one message. Posting replaces the current
message; a message posted with a delay clears itself when the delay
elapses unless something newer replaced it first.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum

logger = logging.getLogger(__name__)


class StatusLevel(Enum):
    """Severity of a status message."""

    INFO = "info"
    NOTICE = "notice"
    ERROR = "error"


@dataclass(frozen=True)
class StatusMessage:
    """A single status message.

    Attributes:
        text: Message shown to the user
        level: Severity
        clear_after: Seconds until auto-clear (None keeps it until replaced)
        posted_at: When the message was posted
    """

    text: str
    level: StatusLevel = StatusLevel.INFO
    clear_after: float | None = None
    posted_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def deadline(self) -> datetime | None:
        """When the message will clear itself, if ever."""
        if self.clear_after is None:
            return None
        return self.posted_at + timedelta(seconds=self.clear_after)


StatusListener = Callable[[StatusMessage | None], None]


class StatusChannel:
    """Single-slot status message holder with timed auto-clear.

    Usage:
        status = StatusChannel()
        status.post("Saved", clear_after=3.0)
        status.current  # StatusMessage until 3 seconds pass
    """

    def __init__(self) -> None:
        self._current: StatusMessage | None = None
        self._timer: threading.Timer | None = None
        self._listeners: list[StatusListener] = []
        self._lock = threading.Lock()
        self._closed = False

    @property
    def current(self) -> StatusMessage | None:
        """The active message, or None."""
        return self._current

    @property
    def deadline(self) -> datetime | None:
        """Clear deadline of the active message."""
        message = self._current
        return message.deadline if message is not None else None

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register a callback fired on every change.

        Args:
            listener: Called with the new message (None when cleared)

        Returns:
            Function that removes the listener
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def post(
        self,
        text: str,
        level: StatusLevel = StatusLevel.INFO,
        clear_after: float | None = None,
    ) -> StatusMessage:
        """Show a message, replacing any current one.

        Args:
            text: Message text
            level: Severity
            clear_after: Seconds until the message clears itself

        Returns:
            The posted message
        """
        message = StatusMessage(text=text, level=level, clear_after=clear_after)

        with self._lock:
            self._cancel_timer()
            self._current = message
            if clear_after is not None and not self._closed:
                self._timer = threading.Timer(clear_after, self._expire, args=(message,))
                self._timer.daemon = True
                self._timer.start()
            listeners = list(self._listeners)

        logger.debug(f"Status [{level.value}]: {text}")
        self._notify(listeners, message)
        return message

    def clear(self) -> None:
        """Remove the current message immediately."""
        with self._lock:
            self._cancel_timer()
            if self._current is None:
                return
            self._current = None
            listeners = list(self._listeners)
        self._notify(listeners, None)

    def withdraw(self, message: StatusMessage) -> bool:
        """Remove message if it is still the current one.

        Returns:
            True if the message was cleared
        """
        with self._lock:
            if self._current is not message:
                return False
            self._cancel_timer()
            self._current = None
            listeners = list(self._listeners)
        self._notify(listeners, None)
        return True

    def close(self) -> None:
        """Cancel any pending auto-clear timer."""
        with self._lock:
            self._closed = True
            self._cancel_timer()

    def _expire(self, message: StatusMessage) -> None:
        """Timer callback: clear the message unless it was replaced."""
        with self._lock:
            if self._current is not message:
                return
            self._current = None
            self._timer = None
            listeners = list(self._listeners)
        self._notify(listeners, None)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    @staticmethod
    def _notify(listeners: list[StatusListener], message: StatusMessage | None) -> None:
        for listener in listeners:
            try:
                listener(message)
            except Exception as e:
                logger.warning(f"Status listener failed: {e}")


__all__ = ["StatusChannel", "StatusLevel", "StatusListener", "StatusMessage"]
