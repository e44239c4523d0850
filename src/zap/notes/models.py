"""Data models for captured notes.

Defines the NoteItem entity, its three content variants, and the
NoteKind tag used for filtering.
"""

import math
import uuid
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .errors import ValidationError


class NoteKind(Enum):
    """Variant tag of a note's content."""

    TEXT = "text"
    AUDIO = "audio"
    PHOTO = "photo"

    @property
    def label(self) -> str:
        """Display label used by filter tabs (e.g. "Text")."""
        return self.value.capitalize()


@dataclass(frozen=True)
class TextContent:
    """Typed text payload.

    Attributes:
        body: Note text (must contain non-whitespace characters)
    """

    body: str

    def __post_init__(self) -> None:
        if not isinstance(self.body, str) or not self.body.strip():
            raise ValidationError("Text note body must not be empty")

    @property
    def kind(self) -> NoteKind:
        return NoteKind.TEXT


@dataclass(frozen=True)
class AudioContent:
    """Recorded audio payload.

    Attributes:
        file_ref: Opaque handle to the recording (path or storage key)
        duration_seconds: Recording length in seconds
    """

    file_ref: str
    duration_seconds: float = 0.0

    def __post_init__(self) -> None:
        if not isinstance(self.file_ref, str) or not self.file_ref.strip():
            raise ValidationError("Audio note requires a file reference")
        if isinstance(self.duration_seconds, bool) or not isinstance(
            self.duration_seconds, (int, float)
        ):
            raise ValidationError("Audio duration must be a number")
        if not math.isfinite(self.duration_seconds) or self.duration_seconds < 0:
            raise ValidationError(f"Invalid audio duration: {self.duration_seconds}")

    @property
    def kind(self) -> NoteKind:
        return NoteKind.AUDIO


@dataclass(frozen=True)
class PhotoContent:
    """Captured or picked image payload.

    Attributes:
        image_ref: Opaque handle to the image (path or storage key)
    """

    image_ref: str

    def __post_init__(self) -> None:
        if not isinstance(self.image_ref, str) or not self.image_ref.strip():
            raise ValidationError("Photo note requires an image reference")

    @property
    def kind(self) -> NoteKind:
        return NoteKind.PHOTO


NoteContent = TextContent | AudioContent | PhotoContent


def _new_note_id() -> str:
    return uuid.uuid4().hex


def _parse_timestamp(value: Any) -> datetime:
    """Parse a stored timestamp, treating naive values as UTC."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError as e:
            raise ValidationError(f"Invalid created_at timestamp: {value!r}") from e
    if not isinstance(value, datetime):
        raise ValidationError(f"Invalid created_at timestamp: {value!r}")
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value


@dataclass(frozen=True, eq=False)
class NoteItem:
    """A single captured note.

    Identity is the ``id``; two notes with the same id compare equal even
    if their content differs. Content and labels are replaced by building
    a new NoteItem through ``with_content`` / ``with_labels``.

    Attributes:
        content: Exactly one of TextContent, AudioContent, PhotoContent
        id: Stable unique identifier
        created_at: When the note was captured (UTC)
        category: Optional label assigned by the user or the organizer
        tags: Optional tags assigned by the user or the organizer
    """

    content: NoteContent
    id: str = field(default_factory=_new_note_id)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    category: str | None = None
    tags: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.content, (TextContent, AudioContent, PhotoContent)):
            raise ValidationError(
                f"Unsupported note content: {type(self.content).__name__}"
            )
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValidationError("Note id must be a non-empty string")
        if not isinstance(self.created_at, datetime) or self.created_at.tzinfo is None:
            raise ValidationError("Note created_at must be a timezone-aware datetime")
        if self.category is not None and not isinstance(self.category, str):
            raise ValidationError("Note category must be a string")
        if not isinstance(self.tags, (list, tuple)) or not all(isinstance(t, str) for t in self.tags):
            raise ValidationError("Note tags must be a sequence of strings")
        object.__setattr__(self, "tags", tuple(self.tags))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NoteItem):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def kind(self) -> NoteKind:
        """Variant tag of this note's content."""
        return self.content.kind

    def same_as(self, other: "NoteItem") -> bool:
        """Compare every field, not just identity."""
        return (
            self.id == other.id
            and self.content == other.content
            and self.created_at == other.created_at
            and self.category == other.category
            and self.tags == other.tags
        )

    def with_content(self, content: NoteContent) -> "NoteItem":
        """Return a copy with new content and the same identity."""
        return replace(self, content=content)

    def with_labels(
        self, category: str | None = None, tags: tuple[str, ...] | list[str] = ()
    ) -> "NoteItem":
        """Return a copy with new category/tags and the same identity."""
        return replace(self, category=category, tags=tuple(tags))

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        data: dict[str, Any] = {
            "id": self.id,
            "kind": self.kind.value,
            "created_at": self.created_at.isoformat(),
            "category": self.category,
            "tags": list(self.tags),
        }
        content = self.content
        if isinstance(content, TextContent):
            data["text"] = content.body
        elif isinstance(content, AudioContent):
            data["file_ref"] = content.file_ref
            data["duration_seconds"] = content.duration_seconds
        else:
            data["image_ref"] = content.image_ref
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NoteItem":
        """Create from a stored dictionary.

        Raises:
            ValidationError: If required fields are missing or malformed
        """
        if not isinstance(data, dict):
            raise ValidationError(f"Note record must be an object, got {type(data).__name__}")

        try:
            kind = NoteKind(data.get("kind"))
        except ValueError as e:
            raise ValidationError(f"Unknown note kind: {data.get('kind')!r}") from e

        if kind is NoteKind.TEXT:
            content: NoteContent = TextContent(body=data.get("text", ""))
        elif kind is NoteKind.AUDIO:
            content = AudioContent(
                file_ref=data.get("file_ref", ""),
                duration_seconds=data.get("duration_seconds", 0.0),
            )
        else:
            content = PhotoContent(image_ref=data.get("image_ref", ""))

        if "id" not in data:
            raise ValidationError("Note record is missing an id")

        return cls(
            id=data["id"],
            content=content,
            created_at=_parse_timestamp(data.get("created_at")),
            category=data.get("category"),
            tags=data.get("tags") or (),
        )


__all__ = [
    "AudioContent",
    "NoteContent",
    "NoteItem",
    "NoteKind",
    "PhotoContent",
    "TextContent",
]
