"""Error types for the notes store and organize workflow.

Every failure the core can raise derives from ZapError.
"""


class ZapError(Exception):
    """Base exception for Zap Notes errors."""

    pass


class ValidationError(ZapError):
    """Raised when a note or a replacement collection is malformed."""

    pass


class PersistenceError(ZapError):
    """Raised when the backing store cannot be read or written."""

    pass


class BackendNotFoundError(PersistenceError):
    """Raised when the backing store holds no data yet (first run)."""

    pass


class BackendCorruptError(PersistenceError):
    """Raised when persisted data cannot be decoded."""

    pass


class OrganizeError(ZapError):
    """Base exception for organize workflow failures."""

    pass


class OrganizeTransportError(OrganizeError):
    """Raised when the reorganizer is unreachable, times out, or fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Initialize transport error.

        Args:
            message: Error message.
            status_code: HTTP status code if available.
        """
        super().__init__(message)
        self.status_code = status_code


class OrganizeResultError(OrganizeError):
    """Raised when the reorganizer returns data that breaks note invariants."""

    pass


class StaleSnapshotError(OrganizeError):
    """Raised when an organize result was computed from an outdated snapshot."""

    def __init__(self, expected_revision: int, actual_revision: int) -> None:
        super().__init__(
            f"Store changed while organizing (snapshot revision {expected_revision}, "
            f"current revision {actual_revision})"
        )
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision


__all__ = [
    "BackendCorruptError",
    "BackendNotFoundError",
    "OrganizeError",
    "OrganizeResultError",
    "OrganizeTransportError",
    "PersistenceError",
    "StaleSnapshotError",
    "ValidationError",
    "ZapError",
]
