"""MongoDB backend for the notes store.

The ordered collection is kept in a single document so each save is one
atomic replace_one call.
"""

import logging
import time
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from functools import wraps
from typing import Any, TypeVar

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from ..notes.errors import BackendNotFoundError, PersistenceError
from ..notes.models import NoteItem
from .backends import FORMAT_VERSION, decode_notes, encode_notes

logger = logging.getLogger(__name__)

T = TypeVar("T")

DOCUMENT_ID = "notes"


def retry_on_connection_failure(
    max_retries: int = 3,
    base_delay: float = 0.5,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for exponential backoff retry on connection failures.

    Args:
        max_retries: Maximum number of attempts.
        base_delay: Base delay in seconds (doubles each retry).

    Returns:
        Decorated function with retry logic.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            last_exception: Exception | None = None

            for attempt in range(max_retries):
                try:
                    return func(*args, **kwargs)
                except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                    last_exception = e
                    if attempt < max_retries - 1:
                        delay = base_delay * (2**attempt)
                        logger.warning(
                            "Connection failed (attempt %d/%d), retrying in %.1fs: %s",
                            attempt + 1,
                            max_retries,
                            delay,
                            str(e),
                        )
                        time.sleep(delay)
                    else:
                        logger.error(
                            "Connection failed after %d attempts: %s",
                            max_retries,
                            str(e),
                        )

            raise PersistenceError(f"MongoDB unreachable: {last_exception}") from last_exception

        return wrapper

    return decorator


class MongoBackend:
    """Stores the note collection in one MongoDB document."""

    def __init__(self, collection: Collection[dict[str, Any]]) -> None:
        """Initialize backend with a MongoDB collection.

        Args:
            collection: Collection holding the notes document.
        """
        self._collection = collection

    @classmethod
    def from_uri(
        cls,
        uri: str,
        database: str = "zap",
        collection: str = "notes",
        timeout_ms: int = 5000,
    ) -> "MongoBackend":
        """Connect to MongoDB and build a backend.

        Args:
            uri: MongoDB connection URI.
            database: Database name.
            collection: Collection name.
            timeout_ms: Server selection timeout.
        """
        client: MongoClient[dict[str, Any]] = MongoClient(
            uri, serverSelectionTimeoutMS=timeout_ms
        )
        return cls(client[database][collection])

    @retry_on_connection_failure()
    def load(self) -> list[NoteItem]:
        try:
            doc = self._collection.find_one({"_id": DOCUMENT_ID})
        except (ConnectionFailure, ServerSelectionTimeoutError):
            raise
        except PyMongoError as e:
            raise PersistenceError(f"Failed to read notes document: {e}") from e

        if doc is None:
            raise BackendNotFoundError("No notes document in MongoDB")
        return decode_notes(doc.get("notes"))

    @retry_on_connection_failure()
    def save(self, notes: Sequence[NoteItem]) -> None:
        doc = {
            "_id": DOCUMENT_ID,
            "version": FORMAT_VERSION,
            "saved_at": datetime.now(UTC),
            "notes": encode_notes(notes),
        }
        try:
            self._collection.replace_one({"_id": DOCUMENT_ID}, doc, upsert=True)
        except (ConnectionFailure, ServerSelectionTimeoutError):
            raise
        except PyMongoError as e:
            raise PersistenceError(f"Failed to write notes document: {e}") from e

        logger.debug(f"Saved {len(notes)} notes to MongoDB")


__all__ = ["DOCUMENT_ID", "MongoBackend", "retry_on_connection_failure"]
