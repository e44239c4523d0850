"""Persistence backends for the notes store.

Provides JSON file, SQLite, and in-memory backends. Every backend
stores the whole ordered collection in one write so a failed save never
leaves a partially written collection behind.
"""

import json
import logging
import os
import sqlite3
import tempfile
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from ..notes.errors import (
    BackendCorruptError,
    BackendNotFoundError,
    PersistenceError,
    ValidationError,
)
from ..notes.models import NoteItem

if TYPE_CHECKING:
    from ..config import StorageConfig

logger = logging.getLogger(__name__)

# Bumped when the on-disk document layout changes
FORMAT_VERSION = 1


class NotesBackend(Protocol):
    """Protocol for note collection persistence."""

    def load(self) -> list[NoteItem]:
        """Load the stored collection.

        Raises:
            BackendNotFoundError: Nothing has been stored yet
            BackendCorruptError: Stored data cannot be decoded
            PersistenceError: Any other read failure
        """
        ...

    def save(self, notes: Sequence[NoteItem]) -> None:
        """Replace the stored collection.

        Raises:
            PersistenceError: If the write fails
        """
        ...


def encode_notes(notes: Sequence[NoteItem]) -> list[dict[str, Any]]:
    """Convert notes to JSON-compatible records, order preserved."""
    return [note.to_dict() for note in notes]


def decode_notes(records: Any) -> list[NoteItem]:
    """Convert stored records back to notes.

    Raises:
        BackendCorruptError: If any record is malformed or ids repeat
    """
    if not isinstance(records, list):
        raise BackendCorruptError(f"Expected a list of notes, got {type(records).__name__}")

    notes: list[NoteItem] = []
    seen: set[str] = set()
    for index, record in enumerate(records):
        try:
            note = NoteItem.from_dict(record)
        except ValidationError as e:
            raise BackendCorruptError(f"Invalid note at position {index}: {e}") from e
        if note.id in seen:
            raise BackendCorruptError(f"Duplicate note id in stored data: {note.id}")
        seen.add(note.id)
        notes.append(note)
    return notes


class JSONFileBackend:
    """Stores the collection as a single JSON document.

    Writes go to a temporary file in the same directory which is fsynced
    and then renamed over the target, so readers only ever see a complete
    document.
    """

    def __init__(self, path: Path) -> None:
        """Initialize JSON file backend.

        Args:
            path: Path to the notes JSON file.
        """
        self._path = Path(path).expanduser()
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        """Path of the notes document."""
        return self._path

    @contextmanager
    def _locked(self) -> Iterator[None]:
        """Hold the backend lock for one load or save."""
        with self._lock:
            yield

    def load(self) -> list[NoteItem]:
        with self._locked():
            if not self._path.exists():
                raise BackendNotFoundError(f"No notes file at {self._path}")

            try:
                with open(self._path, encoding="utf-8") as f:
                    document = json.load(f)
            except json.JSONDecodeError as e:
                raise BackendCorruptError(f"Notes file {self._path} is not valid JSON: {e}") from e
            except UnicodeDecodeError as e:
                raise BackendCorruptError(f"Notes file {self._path} is not UTF-8 text: {e}") from e
            except OSError as e:
                raise PersistenceError(f"Failed to read {self._path}: {e}") from e

        if not isinstance(document, dict) or "notes" not in document:
            raise BackendCorruptError(f"Notes file {self._path} has no 'notes' list")
        return decode_notes(document["notes"])

    def save(self, notes: Sequence[NoteItem]) -> None:
        document = {
            "version": FORMAT_VERSION,
            "saved_at": datetime.now(UTC).isoformat(),
            "notes": encode_notes(notes),
        }

        with self._locked():
            tmp_path: str | None = None
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(
                    dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
                )
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(document, f, ensure_ascii=False, indent=2)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self._path)
                tmp_path = None
            except OSError as e:
                raise PersistenceError(f"Failed to write {self._path}: {e}") from e
            finally:
                if tmp_path is not None:
                    Path(tmp_path).unlink(missing_ok=True)

        logger.debug(f"Saved {len(notes)} notes to {self._path}")


class SQLiteBackend:
    """SQLite backend storing one row per note, ordered by position.

    Uses WAL mode for better concurrent access. A save replaces every row
    inside a single transaction. A file that is not a readable database
    loads as corrupt; the next save moves it aside and starts a fresh one.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize SQLite backend.

        Args:
            db_path: Path to the SQLite database file.

        Raises:
            PersistenceError: If the database cannot be created or opened
        """
        self._db_path = Path(db_path).expanduser()
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None
        self._corrupt: BackendCorruptError | None = None

        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(f"Failed to create {self._db_path.parent}: {e}") from e

        self._open()

    def _open(self) -> None:
        """Connect, enable WAL, and create tables."""
        try:
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._create_tables()
        except sqlite3.OperationalError as e:
            self._close_connection()
            raise PersistenceError(f"Failed to open {self._db_path}: {e}") from e
        except sqlite3.DatabaseError as e:
            # Not a database, or a damaged one
            self._close_connection()
            self._corrupt = BackendCorruptError(f"{self._db_path} is not a usable database: {e}")
            logger.warning(f"{self._corrupt}")
        except sqlite3.Error as e:
            self._close_connection()
            raise PersistenceError(f"Failed to open {self._db_path}: {e}") from e

    def _close_connection(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _replace_corrupt_file(self) -> None:
        """Move a damaged database aside and open a fresh one."""
        backup = self._db_path.with_name(f"{self._db_path.name}.corrupt")
        try:
            os.replace(self._db_path, backup)
            for suffix in ("-wal", "-shm"):
                Path(f"{self._db_path}{suffix}").unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Failed to move aside {self._db_path}: {e}") from e
        logger.warning(f"Moved unreadable database to {backup}")

        self._corrupt = None
        self._open()
        if self._corrupt is not None:
            raise PersistenceError(f"Failed to recreate {self._db_path}: {self._corrupt}")

    def _create_tables(self) -> None:
        """Create database tables."""
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS notes (
                position INTEGER PRIMARY KEY,
                id TEXT NOT NULL UNIQUE,
                payload TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS meta (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            );
            """
        )
        self._conn.commit()

    def load(self) -> list[NoteItem]:
        with self._lock:
            if self._corrupt is not None:
                raise BackendCorruptError(str(self._corrupt))
            if self._conn is None:
                raise PersistenceError(f"{self._db_path} is closed")
            try:
                marker = self._conn.execute(
                    "SELECT value FROM meta WHERE key = 'saved_at'"
                ).fetchone()
                rows = self._conn.execute(
                    "SELECT payload FROM notes ORDER BY position"
                ).fetchall()
            except sqlite3.OperationalError as e:
                raise PersistenceError(f"Failed to read {self._db_path}: {e}") from e
            except sqlite3.DatabaseError as e:
                raise BackendCorruptError(f"Cannot read {self._db_path}: {e}") from e

        if marker is None:
            raise BackendNotFoundError(f"No notes saved in {self._db_path}")

        try:
            records = [json.loads(payload) for (payload,) in rows]
        except (json.JSONDecodeError, TypeError) as e:
            raise BackendCorruptError(f"Invalid note payload in {self._db_path}: {e}") from e
        return decode_notes(records)

    def save(self, notes: Sequence[NoteItem]) -> None:
        rows = [
            (position, record["id"], json.dumps(record, ensure_ascii=False))
            for position, record in enumerate(encode_notes(notes))
        ]

        with self._lock:
            if self._corrupt is not None:
                self._replace_corrupt_file()
            if self._conn is None:
                raise PersistenceError(f"{self._db_path} is closed")
            try:
                # Connection context manager commits, or rolls back on error
                with self._conn:
                    self._conn.execute("DELETE FROM notes")
                    self._conn.executemany(
                        "INSERT INTO notes (position, id, payload) VALUES (?, ?, ?)", rows
                    )
                    self._conn.execute(
                        "INSERT OR REPLACE INTO meta (key, value) VALUES ('saved_at', ?)",
                        (datetime.now(UTC).isoformat(),),
                    )
            except sqlite3.Error as e:
                raise PersistenceError(f"Failed to write {self._db_path}: {e}") from e

        logger.debug(f"Saved {len(rows)} notes to {self._db_path}")

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._close_connection()


class MemoryBackend:
    """In-memory backend for tests and offline runs.

    Keeps serialized records rather than live objects, so a load goes
    through the same decoding as the on-disk backends.
    """

    def __init__(self, notes: Sequence[NoteItem] | None = None) -> None:
        self._records: list[dict[str, Any]] | None = (
            encode_notes(notes) if notes is not None else None
        )
        self._save_error: PersistenceError | None = None
        self._load_error: PersistenceError | None = None
        self._save_count = 0

    def fail_next_save(self, message: str = "Simulated write failure") -> None:
        """Make the next save raise PersistenceError."""
        self._save_error = PersistenceError(message)

    def fail_next_load(self, error: PersistenceError) -> None:
        """Make the next load raise the given error."""
        self._load_error = error

    @property
    def save_count(self) -> int:
        """Number of successful saves."""
        return self._save_count

    @property
    def records(self) -> list[dict[str, Any]] | None:
        """Stored records, or None if nothing was saved yet."""
        return None if self._records is None else [dict(r) for r in self._records]

    def load(self) -> list[NoteItem]:
        if self._load_error is not None:
            error, self._load_error = self._load_error, None
            raise error
        if self._records is None:
            raise BackendNotFoundError("Nothing saved yet")
        return decode_notes(self._records)

    def save(self, notes: Sequence[NoteItem]) -> None:
        if self._save_error is not None:
            error, self._save_error = self._save_error, None
            raise error
        self._records = encode_notes(notes)
        self._save_count += 1


def create_backend(config: "StorageConfig") -> NotesBackend:
    """Create the persistence backend named in the storage config.

    Args:
        config: Storage configuration

    Returns:
        NotesBackend implementation

    Raises:
        ValueError: If the backend name is unknown
    """
    data_dir = Path(config.data_dir).expanduser()
    backend = config.backend.lower()

    if backend == "json":
        return JSONFileBackend(data_dir / config.filename)
    if backend == "sqlite":
        return SQLiteBackend(data_dir / config.sqlite_filename)
    if backend == "memory":
        return MemoryBackend()
    if backend == "mongodb":
        from .mongo import MongoBackend

        return MongoBackend.from_uri(
            config.mongo_uri,
            database=config.mongo_database,
            collection=config.mongo_collection,
        )

    raise ValueError(f"Unknown storage backend: {config.backend}")


__all__ = [
    "FORMAT_VERSION",
    "JSONFileBackend",
    "MemoryBackend",
    "NotesBackend",
    "SQLiteBackend",
    "create_backend",
    "decode_notes",
    "encode_notes",
]
