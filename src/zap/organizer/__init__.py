"""Organize module for Zap Notes.

Provides the organize workflow and the reorganizers it can call.
"""

import logging
from typing import TYPE_CHECKING

from .mock import MockReorganizer
from .reorganizer import Reorganizer, merge_plan
from .workflow import OrganizationWorkflow, OrganizeOutcome, OrganizeState

if TYPE_CHECKING:
    from ..config import OrganizerConfig


def create_reorganizer(
    config: "OrganizerConfig | None" = None,
    use_mock: bool = False,
) -> Reorganizer:
    """Create a reorganizer instance.

    Args:
        config: Organizer configuration
        use_mock: If True, return mock implementation

    Returns:
        Reorganizer implementation
    """
    if use_mock or (config is not None and config.provider == "mock"):
        return MockReorganizer()

    from .claude import ClaudeReorganizer, ClaudeReorganizerConfig

    overrides = {}
    if config is not None:
        overrides = {
            "model": config.model,
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
            "timeout_seconds": config.timeout_seconds,
        }

    try:
        return ClaudeReorganizer(ClaudeReorganizerConfig.from_env(**overrides))
    except ValueError as e:
        # No API key: organize still works locally by grouping notes by kind
        logging.getLogger(__name__).warning(f"{e} Using mock reorganizer")
        return MockReorganizer()


__all__ = [
    "MockReorganizer",
    "OrganizationWorkflow",
    "OrganizeOutcome",
    "OrganizeState",
    "Reorganizer",
    "create_reorganizer",
    "merge_plan",
]
