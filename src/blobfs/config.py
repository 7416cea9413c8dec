"""
Configuration management using pydantic-settings.

Loads configuration from environment variables (prefixed ``BLOBFS_``) and
.env files. Validates fields and provides typed access to settings.
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MAX_BLOCK_SIZE = 16 * 1024 * 1024

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Optional:
        BLOBFS_DB_PATH: SQLite database file for the record store
        BLOBFS_TABLE_NAME: Table holding all records
        BLOBFS_BLOCK_SIZE: Default block size for new nodes
        BLOBFS_LOG_LEVEL: Console logging level
        BLOBFS_LOG_FILE: JSON-lines log file
    """

    model_config = SettingsConfigDict(
        env_prefix="BLOBFS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    DB_PATH: Path = Field(default=Path("blobfs.db"), description="SQLite database path")
    TABLE_NAME: str = Field(default="records", description="Record table name")

    BLOCK_SIZE: int = Field(
        default=4096,
        ge=1,
        le=MAX_BLOCK_SIZE,
        description="Default block size in bytes for new nodes",
    )

    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING", description="Logging level"
    )
    LOG_FILE: Path | None = Field(default=None, description="JSON-lines log file")

    @field_validator("TABLE_NAME")
    @classmethod
    def validate_table_name(cls, v: str) -> str:
        """Table names are interpolated into SQL, so only identifiers pass."""
        if not _IDENTIFIER.match(v):
            raise ValueError("TABLE_NAME must be a plain SQL identifier")
        return v

    def redacted_display(self) -> dict[str, str | int | None]:
        """Return settings for display."""
        return {
            "DB_PATH": str(self.DB_PATH),
            "TABLE_NAME": self.TABLE_NAME,
            "BLOCK_SIZE": self.BLOCK_SIZE,
            "LOG_LEVEL": self.LOG_LEVEL,
            "LOG_FILE": str(self.LOG_FILE) if self.LOG_FILE else None,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Raises:
        pydantic.ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
