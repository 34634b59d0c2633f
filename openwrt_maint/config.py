"""Configuration settings for openwrt_maint.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

import json
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the OWRT_MAINT_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="OWRT_MAINT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # GitHub
    github_repo: str = Field(
        default="openwrt/openwrt",
        description="GitHub repository slug (owner/name, no .git suffix)",
    )
    github_token: SecretStr | None = Field(
        default=None,
        description="Personal access token with 'repo' scope, enables closing PRs",
    )
    github_api_url: str = Field(
        default="https://api.github.com",
        description="Base URL of the GitHub REST API",
    )
    github_web_url: str = Field(
        default="https://github.com",
        description="Base URL of the GitHub web UI",
    )

    # Git
    upstream_remote: str = Field(
        default="origin",
        description="Remote holding the canonical branches",
    )
    default_branch: str = Field(
        default="master",
        description="Branch pull requests are rebased on and merged into",
    )

    # Releases
    download_base_url: str = Field(
        default="https://downloads.openwrt.org/releases",
        description="Base URL for release download repositories",
    )

    # Operational
    http_timeout: float | None = Field(
        default=30.0,
        gt=0,
        description="Timeout for GitHub API requests in seconds (unset for none)",
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

    The GitHub token is never rendered, only whether one is configured.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    data = settings.model_dump(mode="json", exclude={"github_token"})
    data["github_token_set"] = settings.github_token is not None
    return json.dumps(data, indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
