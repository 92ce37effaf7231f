"""Configuration settings for medtrack."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        """Initialize settings by loading from .env file and environment variables."""
        # Load .env file if it exists
        env_path = Path(__file__).parent.parent.parent / ".env"
        load_dotenv(dotenv_path=env_path)

        # Logging
        self.log_level: str = self._get_env("LOG_LEVEL", "INFO")
        self.logs_dir: Path = Path(self._get_env("LOGS_DIR", "logs"))

        # Storage
        self.database_path: Path = Path(self._get_env("DATABASE_PATH", "data/medtrack.db"))
        self.backup_dir: Path = Path(self._get_env("BACKUP_DIR", "data/backups"))

        # Scheduling
        self.backup_reminder_days: int = int(self._get_env("BACKUP_REMINDER_DAYS", "30"))
        self.history_days: int = int(self._get_env("HISTORY_DAYS", "7"))
        self.next_due_horizon_days: int = int(self._get_env("NEXT_DUE_HORIZON_DAYS", "60"))

    def _get_env(self, key: str, default: Optional[str] = None) -> str:
        """Get environment variable with optional default value.

        Args:
            key: Environment variable name
            default: Default value if variable is not set

        Returns:
            Environment variable value or default
        """
        return os.getenv(key, default)

    def __repr__(self) -> str:
        return (
            f"Settings("
            f"log_level={self.log_level}, "
            f"logs_dir={self.logs_dir}, "
            f"database_path={self.database_path}, "
            f"backup_dir={self.backup_dir}, "
            f"backup_reminder_days={self.backup_reminder_days}, "
            f"history_days={self.history_days}, "
            f"next_due_horizon_days={self.next_due_horizon_days}"
            f")"
        )
