"""Zap Notes - personal note capture with AI-assisted organizing.

Zap keeps text, audio, and photo notes in a local store and can hand the
whole collection to an external reorganizer (Claude by default) that
reorders and labels it.

Usage:
    python -m zap add-text "buy milk"
    python -m zap list --category Text
    python -m zap organize
"""

__version__ = "0.1.0"

from .app import ZapApp
from .config import ZapConfig
from .config.loader import load_config

__all__ = [
    "ZapApp",
    "ZapConfig",
    "__version__",
    "load_config",
]
