"""
WorkspacesWatch Configuration Module.

Centralizes all configuration settings using Pydantic Settings.
Requires Python 3.11+.
"""

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file into os.environ at module import time
# This ensures nested BaseSettings classes can read the values
_env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    # Try current working directory
    load_dotenv()


class WatcherSettings(BaseSettings):
    """Manifest watching and debounce settings."""

    model_config = SettingsConfigDict(env_prefix="WATCHER_")

    debounce_delay_ms: int = Field(
        default=300, ge=10, le=5000, description="Quiet period before a sync fires"
    )
    manifest_filename: str = Field(
        default="package.json", description="Manifest file watched in each workspace"
    )

    @field_validator("manifest_filename")
    @classmethod
    def validate_manifest_filename(cls, v: str) -> str:
        """Reject names that would escape the workspace directory."""
        if not v or "/" in v or "\\" in v:
            raise ValueError("manifest_filename must be a bare file name")
        return v


class SyncSettings(BaseSettings):
    """Dependency sync settings."""

    model_config = SettingsConfigDict(env_prefix="SYNC_")

    installer_executable: str = Field(
        default="yarn", description="Package manager invoked for each sync"
    )
    lockfile_name: str = Field(default="yarn.lock", description="Project lockfile name")
    lock_suffix: str = Field(
        default=".flock", description="Suffix of the lock artifact next to the lockfile"
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="WARNING")
    format: str = Field(default="console")  # "json" or "console"

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Only the two supported renderers are allowed."""
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError("format must be 'json' or 'console'")
        return v


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="WorkspacesWatch")
    app_version: str = Field(default="0.1.0")
    environment: str = Field(default="development")

    # Sub-settings
    watcher: WatcherSettings = Field(default_factory=WatcherSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def debounce_delay(self) -> float:
        """Debounce quiet period in seconds."""
        return self.watcher.debounce_delay_ms / 1000.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns singleton instance of Settings for performance.
    """
    return Settings()
