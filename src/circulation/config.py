"""Configuration management for circulation.

Loads configuration from environment variables and provides defaults.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

DEFAULT_DB_PATH = Path.home() / ".circulation" / "library.db"


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path
    busy_timeout: float  # seconds SQLite waits on a locked database

    # Unit of work
    lock_timeout: float  # seconds to wait for a per-book lock
    retry_max: int
    retry_base_delay: float  # seconds

    # Logging
    log_level: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get("CIRCULATION_DB_PATH", str(DEFAULT_DB_PATH))
        db_path = Path(db_path_str).expanduser()

        return cls(
            db_path=db_path,
            busy_timeout=float(os.environ.get("CIRCULATION_BUSY_TIMEOUT", "5.0")),
            lock_timeout=float(os.environ.get("CIRCULATION_LOCK_TIMEOUT", "5.0")),
            retry_max=int(os.environ.get("CIRCULATION_RETRY_MAX", "3")),
            retry_base_delay=float(os.environ.get("CIRCULATION_RETRY_DELAY", "0.05")),
            log_level=os.environ.get("CIRCULATION_LOG_LEVEL", "WARNING").upper(),
        )

    @property
    def is_memory(self) -> bool:
        """Whether the database lives in memory only."""
        return str(self.db_path) == ":memory:"

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.lock_timeout <= 0:
            errors.append("CIRCULATION_LOCK_TIMEOUT must be positive")
        if self.busy_timeout < 0:
            errors.append("CIRCULATION_BUSY_TIMEOUT must not be negative")
        if self.retry_max < 1:
            errors.append("CIRCULATION_RETRY_MAX must be at least 1")
        if self.retry_base_delay < 0:
            errors.append("CIRCULATION_RETRY_DELAY must not be negative")
        if not isinstance(logging.getLevelName(self.log_level), int):
            errors.append(f"Unknown log level: {self.log_level}")

        # Check database directory is writable
        if not self.is_memory and not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        return errors


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
