"""Configuration management for chapterly.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

MIN_DAILY_GOAL = 5
MAX_DAILY_GOAL = 300


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path

    # Signed-in user for local runs, None when signed out
    user_id: Optional[str]

    # Book catalog
    google_books_api_key: Optional[str]
    catalog_timeout: int  # seconds
    catalog_max_results: int

    # Goals
    default_daily_goal: int  # minutes

    # Logging
    log_level: str

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "CHAPTERLY_DB_PATH",
            str(Path.home() / ".chapterly" / "chapterly.db"),
        )
        db_path = Path(db_path_str).expanduser()

        return cls(
            db_path=db_path,
            user_id=os.environ.get("CHAPTERLY_USER_ID") or None,
            google_books_api_key=os.environ.get("GOOGLE_BOOKS_API_KEY") or None,
            catalog_timeout=int(os.environ.get("CHAPTERLY_CATALOG_TIMEOUT", "10")),
            catalog_max_results=int(os.environ.get("CHAPTERLY_CATALOG_MAX_RESULTS", "20")),
            default_daily_goal=int(os.environ.get("CHAPTERLY_DEFAULT_GOAL", "30")),
            log_level=os.environ.get("CHAPTERLY_LOG_LEVEL", "WARNING").upper(),
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        # Check database directory is writable
        if str(self.db_path) != ":memory:" and not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        if not MIN_DAILY_GOAL <= self.default_daily_goal <= MAX_DAILY_GOAL:
            errors.append(
                f"Default daily goal must be between {MIN_DAILY_GOAL} and "
                f"{MAX_DAILY_GOAL} minutes, got {self.default_daily_goal}"
            )

        return errors

    def is_signed_in(self) -> bool:
        """Check if a user id is configured."""
        return bool(self.user_id)


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
