"""
Configuration management for the gitsource discovery service.

Non-secret configuration loaded from YAML file, secrets from environment variables.
"""

from enum import StrEnum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def yaml_config_settings_source() -> dict[str, Any]:
    """Load configuration from YAML file."""
    config_path = Path("/etc/gitsource/config.yaml")
    if config_path.exists():
        with open(config_path) as f:
            return yaml.safe_load(f) or {}
    return {}


# --- Ref Fetcher Configuration Models ---


class FetcherBackend(StrEnum):
    """Supported ref fetcher backends."""

    GIT = "git"
    GITHUB = "github"


class GitCliConfig(BaseModel):
    """Command line git configuration."""

    executable: str = Field(default="git", description="Path to the git binary")
    timeout_seconds: int = Field(
        default=60,
        description="Timeout for a single ls-remote invocation. Exceeding it is "
        "reported as the remote being unavailable.",
    )


class GitHubConfig(BaseModel):
    """GitHub REST API configuration."""

    api_url: str = Field(default="https://api.github.com")
    token: SecretStr = Field(
        default=SecretStr(""),
        description="Personal access or installation token (from env)",
    )
    timeout_seconds: float = Field(default=30.0)


class VCSConfig(BaseModel):
    """Remote discovery configuration."""

    fetcher: FetcherBackend = Field(
        default=FetcherBackend.GIT,
        description="Ref fetcher backend: git or github",
    )
    default_remote_name: str = Field(default="origin")
    git: GitCliConfig = Field(default_factory=GitCliConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)


# --- Main Settings ---


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="GITSOURCE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="gitsource-api")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=True, description="JSON logging in production")

    # VCS
    vcs: VCSConfig = Field(default_factory=VCSConfig)

    # API
    api_prefix: str = Field(default="/api/v1")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: Any,
        env_settings: Any,
        dotenv_settings: Any,
        file_secret_settings: Any,
    ) -> tuple[Any, ...]:
        """Customize settings sources: env vars override YAML config."""
        return (
            init_settings,
            env_settings,
            yaml_config_settings_source,
            dotenv_settings,
            file_secret_settings,
        )


# Global settings instance
settings = Settings()
