"""Tests for configuration module."""

import json
import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from openwrt_maint.config import Settings, get_settings, print_settings_json


class TestSettings:
    """Test Settings class."""

    def test_default_settings(self) -> None:
        """Settings should have sensible defaults."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.github_repo == "openwrt/openwrt"
        assert settings.github_token is None
        assert settings.github_api_url == "https://api.github.com"
        assert settings.upstream_remote == "origin"
        assert settings.default_branch == "master"
        assert settings.download_base_url == "https://downloads.openwrt.org/releases"
        assert settings.http_timeout == 30.0
        assert settings.log_level == "INFO"

    def test_settings_from_env(self) -> None:
        """Settings should be loadable from environment variables."""
        with patch.dict(
            os.environ,
            {
                "OWRT_MAINT_GITHUB_REPO": "me/openwrt",
                "OWRT_MAINT_DEFAULT_BRANCH": "main",
                "OWRT_MAINT_LOG_LEVEL": "DEBUG",
                "OWRT_MAINT_HTTP_TIMEOUT": "5",
            },
        ):
            settings = Settings()
            assert settings.github_repo == "me/openwrt"
            assert settings.default_branch == "main"
            assert settings.log_level == "DEBUG"
            assert settings.http_timeout == 5.0

    def test_token_is_secret(self) -> None:
        """The token should not leak through repr."""
        with patch.dict(os.environ, {"OWRT_MAINT_GITHUB_TOKEN": "ghp_secret"}):
            settings = Settings()
        assert settings.github_token is not None
        assert settings.github_token.get_secret_value() == "ghp_secret"
        assert "ghp_secret" not in repr(settings)

    def test_invalid_timeout(self) -> None:
        """Timeouts must be positive."""
        with patch.dict(os.environ, {"OWRT_MAINT_HTTP_TIMEOUT": "0"}):
            with pytest.raises(ValidationError):
                Settings()

    def test_invalid_log_level(self) -> None:
        """Unknown log levels should be rejected."""
        with patch.dict(os.environ, {"OWRT_MAINT_LOG_LEVEL": "CHATTY"}):
            with pytest.raises(ValidationError):
                Settings()


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

        assert parsed["github_repo"] == settings.github_repo
        assert "default_branch" in parsed
        assert "log_level" in parsed

    def test_token_never_rendered(self) -> None:
        """Only the presence of a token should be rendered."""
        with patch.dict(os.environ, {"OWRT_MAINT_GITHUB_TOKEN": "ghp_secret"}):
            json_str = print_settings_json()

        parsed = json.loads(json_str)
        assert "ghp_secret" not in json_str
        assert "github_token" not in parsed
        assert parsed["github_token_set"] is True
