"""Tests for configuration module."""

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from gosh_usb.config import Settings, get_settings, print_settings_json


class TestSettings:
    """Test Settings class."""

    def test_default_settings(self) -> None:
        """Settings should have sensible defaults."""
        settings = Settings()

        assert settings.db_url == (
            "sqlite:///"
            f"{Path.home() / '.local' / 'share' / 'gosh-usb' / 'preferences.sqlite'}"
        )
        assert settings.poll_interval == 8.0
        assert settings.sys_block_dir == Path("/sys/block")
        assert settings.mounts_file == Path("/proc/mounts")
        assert settings.write_block_size == 4 * 1024 * 1024
        assert settings.checksum_block_size == 8 * 1024 * 1024
        assert settings.log_level == "INFO"

    def test_settings_from_env(self) -> None:
        """Settings should be loadable from environment variables."""
        with patch.dict(
            os.environ,
            {
                "GOSH_USB_POLL_INTERVAL": "2.5",
                "GOSH_USB_LOG_LEVEL": "DEBUG",
                "GOSH_USB_WRITE_BLOCK_SIZE": "65536",
            },
        ):
            settings = Settings()
            assert settings.poll_interval == 2.5
            assert settings.log_level == "DEBUG"
            assert settings.write_block_size == 65536

    def test_paths_from_env(self) -> None:
        """sysfs and mount table locations should be configurable via env."""
        with patch.dict(
            os.environ,
            {
                "GOSH_USB_SYS_BLOCK_DIR": "/tmp/fake-sys-block",
                "GOSH_USB_MOUNTS_FILE": "/tmp/fake-mounts",
            },
        ):
            settings = Settings()
            assert settings.sys_block_dir == Path("/tmp/fake-sys-block")
            assert settings.mounts_file == Path("/tmp/fake-mounts")

    def test_poll_interval_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Settings(poll_interval=0)

    def test_block_size_lower_bound(self) -> None:
        with pytest.raises(ValidationError):
            Settings(write_block_size=512)

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError):
            Settings(log_level="VERBOSE")


class TestGetSettings:
    """Test get_settings function."""

    def test_get_settings_returns_settings(self) -> None:
        """get_settings should return a Settings instance."""
        settings = get_settings()
        assert isinstance(settings, Settings)


class TestPrintSettingsJson:
    """Test print_settings_json function."""

    def test_print_settings_json(self) -> None:
        """print_settings_json should return valid JSON."""
        settings = Settings()
        parsed = json.loads(print_settings_json(settings))

        assert parsed["poll_interval"] == 8.0
        assert parsed["log_level"] == "INFO"
        assert "db_url" in parsed
        assert "sys_block_dir" in parsed
        assert "mounts_file" in parsed
