"""Feedback module for Zap Notes.

Provides the transient status message channel.
"""

from .status import StatusChannel, StatusLevel, StatusMessage

__all__ = ["StatusChannel", "StatusLevel", "StatusMessage"]
