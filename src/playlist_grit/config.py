"""Configuration management for the playlist version-control tool."""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file from config directory or project root
config_env = Path(__file__).parent.parent.parent / "config" / ".env"
if config_env.exists():
    load_dotenv(config_env)
else:
    # Fallback to working directory .env
    load_dotenv()


class Config:
    """Application configuration."""

    def __init__(self, grit_dir: Optional[Path] = None) -> None:
        """Initialize configuration from environment variables.

        Args:
            grit_dir: Workspace directory, overrides GRIT_DIR
        """
        # Workspace
        self.grit_dir = Path(
            grit_dir if grit_dir is not None else os.getenv("GRIT_DIR", ".grit")
        )

        # Provider call retry settings
        self.max_retries = int(os.getenv("GRIT_MAX_RETRIES", "3"))
        self.retry_backoff = float(os.getenv("GRIT_RETRY_BACKOFF", "1.0"))
        self.max_backoff = float(os.getenv("GRIT_MAX_BACKOFF", "30"))

        # Timeouts (seconds)
        self.lock_timeout = float(os.getenv("GRIT_LOCK_TIMEOUT", "10"))
        self.http_timeout = float(os.getenv("GRIT_HTTP_TIMEOUT", "30"))

        # Logging
        log_file = os.getenv("GRIT_LOG_FILE")
        self.log_file = Path(log_file) if log_file else None

    @property
    def playlists_dir(self) -> Path:
        """Directory holding one repository per tracked playlist."""
        return self.grit_dir / "playlists"

    @property
    def credentials_dir(self) -> Path:
        """Directory holding provider token files."""
        return self.grit_dir / "credentials"

    def ensure_directories(self) -> None:
        """Ensure workspace directories exist."""
        self.playlists_dir.mkdir(parents=True, exist_ok=True)
        self.credentials_dir.mkdir(parents=True, exist_ok=True)


def get_config(grit_dir: Optional[Path] = None) -> Config:
    """Get application configuration."""
    return Config(grit_dir)
