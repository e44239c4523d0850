"""Claude-backed reorganizer.

Sends the note collection to the Anthropic API and turns the returned
plan into an organized collection.
"""

import json
import logging
import os
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import anthropic

from ..notes.errors import OrganizeResultError, OrganizeTransportError
from ..notes.models import NoteItem
from .reorganizer import merge_plan

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You organize a person's captured notes. Notes are text, audio recordings, or photos.

Group related notes together, put the most actionable notes first, give every note a short
category and a few lowercase tags, and add a short text note summarizing a plan for the day
when the notes suggest tasks. Never invent audio or photo notes."""

ORGANIZE_PROMPT = """Here are the notes as JSON:

{notes}

Return ONLY a JSON array, one object per note in the new order:
- existing notes: {{"id": "<existing id>", "category": "...", "tags": ["..."]}}
- a text note may include a cleaned-up "text" field
- new summary notes: {{"kind": "text", "text": "...", "category": "...", "tags": ["..."]}}
You may leave out notes that were merged into a summary."""


@dataclass
class ClaudeReorganizerConfig:
    """Configuration for the Claude reorganizer."""

    api_key: str
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4096
    temperature: float = 0.2
    timeout_seconds: float = 60.0

    @classmethod
    def from_env(cls, **overrides: Any) -> "ClaudeReorganizerConfig":
        """Create config from environment variables.

        Returns:
            ClaudeReorganizerConfig with API key from environment.

        Raises:
            ValueError: If ANTHROPIC_API_KEY is not set.
        """
        api_key = os.environ.get("ANTHROPIC_API_KEY", "").strip()
        if not api_key:
            raise ValueError(
                "ANTHROPIC_API_KEY environment variable is not set. "
                "Set it to use note organization."
            )
        return cls(api_key=api_key, **overrides)


def _describe(note: NoteItem) -> dict[str, Any]:
    """Reduce a note to what the model needs to see."""
    record = note.to_dict()
    # Media handles are meaningless to the model
    record.pop("file_ref", None)
    record.pop("image_ref", None)
    return record


def parse_plan(response_text: str) -> list[Any]:
    """Extract the JSON array from a model response.

    Raises:
        OrganizeResultError: If no JSON array can be parsed
    """
    # The model might wrap the array in prose or a code fence
    json_start = response_text.find("[")
    json_end = response_text.rfind("]") + 1

    if json_start < 0 or json_end <= json_start:
        raise OrganizeResultError("Organizer response contains no JSON array")

    try:
        plan = json.loads(response_text[json_start:json_end])
    except json.JSONDecodeError as e:
        raise OrganizeResultError(f"Failed to parse organizer response: {e}") from e

    if not isinstance(plan, list):
        raise OrganizeResultError("Organizer response is not a JSON array")
    return plan


class ClaudeReorganizer:
    """Reorganizer using the Claude API."""

    def __init__(self, config: ClaudeReorganizerConfig) -> None:
        """Initialize Claude reorganizer.

        Args:
            config: Configuration for the client.
        """
        self._config = config
        self._client = anthropic.Anthropic(
            api_key=config.api_key,
            timeout=config.timeout_seconds,
            max_retries=0,
        )

    @property
    def model_name(self) -> str:
        """Get the model name."""
        return self._config.model

    def reorganize(self, notes: Sequence[NoteItem]) -> list[NoteItem]:
        """Ask Claude for an organize plan and apply it to notes.

        Raises:
            OrganizeTransportError: If the request fails or times out.
            OrganizeResultError: If the response is not a usable plan.
        """
        payload = json.dumps([_describe(note) for note in notes], ensure_ascii=False, indent=1)
        start_time = time.time()

        try:
            response = self._client.messages.create(
                model=self._config.model,
                max_tokens=self._config.max_tokens,
                temperature=self._config.temperature,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": ORGANIZE_PROMPT.format(notes=payload)}],
            )
        except anthropic.AuthenticationError as e:
            raise OrganizeTransportError(
                "Invalid API key. Please check your ANTHROPIC_API_KEY.",
                status_code=e.status_code,
            ) from e
        except anthropic.APITimeoutError as e:
            # Timeout subclasses connection error, so it goes first
            raise OrganizeTransportError(
                f"Organize request timed out after {self._config.timeout_seconds} seconds."
            ) from e
        except anthropic.APIConnectionError as e:
            raise OrganizeTransportError(f"Failed to connect to Claude API: {e}") from e
        except anthropic.APIStatusError as e:
            raise OrganizeTransportError(
                f"API error: {e.message}",
                status_code=e.status_code,
            ) from e

        latency_ms = int((time.time() - start_time) * 1000)
        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        logger.info(
            f"Organizer answered in {latency_ms}ms "
            f"({response.usage.input_tokens + response.usage.output_tokens} tokens)"
        )

        if not text.strip():
            raise OrganizeResultError("Organizer returned an empty response")

        return merge_plan(parse_plan(text), notes)


__all__ = [
    "ClaudeReorganizer",
    "ClaudeReorganizerConfig",
    "ORGANIZE_PROMPT",
    "SYSTEM_PROMPT",
    "parse_plan",
]
