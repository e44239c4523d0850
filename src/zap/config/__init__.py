"""Configuration module for Zap Notes.

This module provides configuration loading and profile management.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol


@dataclass
class StorageConfig:
    """Note persistence configuration."""

    backend: str = "json"
    data_dir: str = "~/.zap"
    filename: str = "notes.json"
    sqlite_filename: str = "notes.db"
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_database: str = "zap"
    mongo_collection: str = "notes"


@dataclass
class OrganizerConfig:
    """External reorganizer configuration."""

    provider: str = "claude"
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 4096
    temperature: float = 0.2
    timeout_seconds: float = 60.0


@dataclass
class StatusConfig:
    """Status message timing, in seconds."""

    notice_seconds: float = 3.0
    success_seconds: float = 3.0
    error_seconds: float = 5.0


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"


@dataclass
class ZapConfig:
    """Main Zap Notes configuration."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    organizer: OrganizerConfig = field(default_factory=OrganizerConfig)
    status: StatusConfig = field(default_factory=StatusConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


class ConfigLoader(Protocol):
    """Protocol for configuration loading."""

    def load(self, path: Path) -> ZapConfig:
        """Load configuration from file path."""
        ...

    def load_profile(self, profile: str) -> ZapConfig:
        """Load configuration by profile name (dev, prod, test)."""
        ...

    def get_config_dir(self) -> Path:
        """Get the configuration directory path."""
        ...


# Public API
__all__ = [
    "ConfigLoader",
    "LoggingConfig",
    "OrganizerConfig",
    "StatusConfig",
    "StorageConfig",
    "ZapConfig",
]
