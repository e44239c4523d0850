"""Reorganizer protocol and organize plan handling.

A reorganizer receives the whole collection and returns a new ordered
collection. LLM-backed reorganizers describe their answer as a plan (a
list of entries keyed by note id); merge_plan turns that plan back into
notes.
"""

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from ..notes.errors import OrganizeResultError, ValidationError
from ..notes.models import NoteItem, NoteKind, TextContent

logger = logging.getLogger(__name__)


class Reorganizer(Protocol):
    """Interface for external note reorganization.

    Implementations may block for a long time and may fail.
    """

    def reorganize(self, notes: Sequence[NoteItem]) -> list[NoteItem]:
        """Return a new ordered collection built from notes.

        Args:
            notes: Immutable snapshot of the collection

        Returns:
            Reorganized notes; may drop, merge, relabel, or add notes

        Raises:
            OrganizeTransportError: If the service cannot be reached
            OrganizeResultError: If the service answer is unusable
        """
        ...


def _labels(entry: dict[str, Any], base: NoteItem | None) -> tuple[str | None, tuple[str, ...]]:
    category = entry.get("category", base.category if base else None)
    tags = entry.get("tags", base.tags if base else ())
    if category is not None and not isinstance(category, str):
        raise OrganizeResultError(f"Invalid category in organize plan: {category!r}")
    if not isinstance(tags, (list, tuple)):
        raise OrganizeResultError(f"Invalid tags in organize plan: {tags!r}")
    return category, tuple(tags)


def merge_plan(entries: Any, originals: Sequence[NoteItem]) -> list[NoteItem]:
    """Build the organized collection from a plan.

    Entries referencing a known id keep that note's content (text notes may
    receive rewritten text) and take the entry's category/tags. Entries
    with an unknown or missing id are synthesized text notes.

    Args:
        entries: Parsed plan, a list of dicts
        originals: Snapshot the plan was produced from

    Returns:
        Notes in plan order

    Raises:
        OrganizeResultError: If an entry is malformed
    """
    if not isinstance(entries, list):
        raise OrganizeResultError("Organize plan must be a list of notes")

    by_id = {note.id: note for note in originals}
    organized: list[NoteItem] = []

    for position, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise OrganizeResultError(f"Organize plan entry {position} is not an object")

        try:
            note_id = entry.get("id")
            base = by_id.get(note_id) if isinstance(note_id, str) else None
            category, tags = _labels(entry, base)

            if base is not None:
                note = base.with_labels(category, tags)
                text = entry.get("text")
                if base.kind is NoteKind.TEXT and isinstance(text, str) and text.strip():
                    note = note.with_content(TextContent(body=text))
            else:
                kind = entry.get("kind", NoteKind.TEXT.value)
                if kind != NoteKind.TEXT.value:
                    raise OrganizeResultError(
                        f"Organize plan entry {position} creates a {kind} note; "
                        "only text notes can be synthesized"
                    )
                fields: dict[str, Any] = {
                    "content": TextContent(body=entry.get("text", "")),
                    "category": category,
                    "tags": tags,
                }
                if note_id is not None:
                    fields["id"] = note_id
                note = NoteItem(**fields)
                logger.debug(f"Organize plan synthesized note {note.id}")
        except ValidationError as e:
            raise OrganizeResultError(f"Organize plan entry {position} is invalid: {e}") from e

        organized.append(note)

    return organized


__all__ = ["Reorganizer", "merge_plan"]
