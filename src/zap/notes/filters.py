"""Category filtering for note lists.

Pure projections of a note sequence by content kind. Nothing here
mutates or copies the source collection.
"""

import logging
from collections.abc import Callable, Iterator, Sequence

from .models import NoteItem, NoteKind

logger = logging.getLogger(__name__)

ALL_CATEGORY = "All"

# Tabs offered by the capture UI, in display order
FILTER_TABS: tuple[str, ...] = (ALL_CATEGORY, *(kind.label for kind in NoteKind))

# One predicate per kind; checked below so a new NoteKind cannot be missed
_KIND_MATCHERS: dict[NoteKind, Callable[[NoteItem], bool]] = {
    NoteKind.TEXT: lambda note: note.kind is NoteKind.TEXT,
    NoteKind.AUDIO: lambda note: note.kind is NoteKind.AUDIO,
    NoteKind.PHOTO: lambda note: note.kind is NoteKind.PHOTO,
}

_missing = set(NoteKind) - set(_KIND_MATCHERS)
if _missing:
    raise RuntimeError(f"No filter matcher for note kinds: {sorted(k.value for k in _missing)}")


def parse_category(category: str | NoteKind) -> NoteKind | None:
    """Resolve a filter category to a note kind.

    Args:
        category: "All", a kind label ("Text", "audio", ...) or a NoteKind

    Returns:
        The matching NoteKind, or None for "All" and unrecognized labels
    """
    if isinstance(category, NoteKind):
        return category

    normalized = category.strip().lower()
    if normalized == ALL_CATEGORY.lower():
        return None

    try:
        return NoteKind(normalized)
    except ValueError:
        logger.debug(f"Unknown filter category {category!r}, showing all notes")
        return None


class FilteredNotes:
    """Lazy, restartable view over a note sequence.

    Each iteration walks the source again, so the view reflects the
    source as it is at iteration time.
    """

    def __init__(self, source: Sequence[NoteItem], kind: NoteKind | None) -> None:
        self._source = source
        self._kind = kind

    @property
    def kind(self) -> NoteKind | None:
        """Kind being selected (None means every note)."""
        return self._kind

    def __iter__(self) -> Iterator[NoteItem]:
        if self._kind is None:
            yield from self._source
            return

        matches = _KIND_MATCHERS[self._kind]
        for note in self._source:
            if matches(note):
                yield note

    def __bool__(self) -> bool:
        return any(True for _ in self)

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def to_list(self) -> list[NoteItem]:
        """Materialize the view."""
        return list(self)


def filter_notes(notes: Sequence[NoteItem], category: str | NoteKind) -> FilteredNotes:
    """Project notes by category.

    Args:
        notes: Source collection (typically a store snapshot)
        category: "All" or a note kind label

    Returns:
        FilteredNotes view preserving source order
    """
    return FilteredNotes(notes, parse_category(category))


__all__ = ["ALL_CATEGORY", "FILTER_TABS", "FilteredNotes", "filter_notes", "parse_category"]
