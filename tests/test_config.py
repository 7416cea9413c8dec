"""
Tests for configuration module.
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from blobfs.config import MAX_BLOCK_SIZE, Settings, clear_settings_cache, get_settings


class TestSettings:
    """Tests for Settings loading and validation."""

    def test_settings_loads_from_env(self, mock_env_vars: dict[str, str]) -> None:
        """Test that settings correctly loads from environment variables."""
        settings = get_settings()

        assert settings.DB_PATH == Path(mock_env_vars["BLOBFS_DB_PATH"])
        assert settings.TABLE_NAME == "records"
        assert settings.BLOCK_SIZE == 4
        assert settings.LOG_LEVEL == "DEBUG"
        assert settings.LOG_FILE is None

    def test_defaults(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.DB_PATH == Path("blobfs.db")
        assert settings.BLOCK_SIZE == 4096
        assert settings.TABLE_NAME == "records"
        assert settings.LOG_LEVEL == "WARNING"

    @pytest.mark.parametrize("value", ["0", "-1", str(MAX_BLOCK_SIZE + 1)])
    def test_block_size_bounds(self, value: str) -> None:
        with patch.dict(os.environ, {"BLOBFS_BLOCK_SIZE": value}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    @pytest.mark.parametrize("value", ["records; DROP TABLE x", "1abc", "a-b", ""])
    def test_table_name_must_be_identifier(self, value: str) -> None:
        with patch.dict(os.environ, {"BLOBFS_TABLE_NAME": value}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_invalid_log_level(self) -> None:
        with patch.dict(os.environ, {"BLOBFS_LOG_LEVEL": "LOUD"}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)

    def test_settings_are_cached(self, mock_env_vars: dict[str, str]) -> None:
        assert get_settings() is get_settings()
        clear_settings_cache()
        assert get_settings().BLOCK_SIZE == 4

    def test_redacted_display(self, mock_settings: Settings) -> None:
        display = mock_settings.redacted_display()

        assert display["BLOCK_SIZE"] == 4
        assert display["TABLE_NAME"] == "records"
        assert display["LOG_FILE"] is None
        assert set(display) == {"DB_PATH", "TABLE_NAME", "BLOCK_SIZE", "LOG_LEVEL", "LOG_FILE"}
