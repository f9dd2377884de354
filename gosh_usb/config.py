"""Configuration settings for gosh_usb.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_db_url() -> str:
    """Return the default preference store URL (SQLite)."""
    db_path = Path.home() / ".local" / "share" / "gosh-usb" / "preferences.sqlite"
    return f"sqlite:///{db_path}"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the GOSH_USB_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="GOSH_USB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Persistence
    db_url: str = Field(
        default_factory=_default_db_url,
        description="Preference store connection URL",
    )

    # Device discovery
    poll_interval: float = Field(
        default=8.0,
        gt=0,
        description="Seconds between device enumerations while idle",
    )
    sys_block_dir: Path = Field(
        default=Path("/sys/block"),
        description="sysfs directory listing block devices",
    )
    mounts_file: Path = Field(
        default=Path("/proc/mounts"),
        description="Mount table consulted for device mount points",
    )

    # I/O
    write_block_size: int = Field(
        default=4 * 1024 * 1024,
        ge=4096,
        description="Block size in bytes for writing and verifying",
    )
    checksum_block_size: int = Field(
        default=8 * 1024 * 1024,
        ge=4096,
        description="Block size in bytes for checksum calculation",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )


def get_settings() -> Settings:
    """Get the application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
