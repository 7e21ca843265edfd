"""Bot configuration using pydantic-settings.

This module defines the BotSettings class that reads configuration from
environment variables. The chat token, GitHub token and target repository
must be set for the bot to start; everything else has a default.

Variables are read without a prefix so the names match what hosting
platforms and the Discord/GitHub tooling already use (DISCORD_TOKEN,
GITHUB_TOKEN, PORT).
"""

from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BotSettings(BaseSettings):
    """Site bot configuration from environment variables.

    Required fields (must be set via environment variables):
    - discord_token: Bot token used to log in to the chat gateway
    - github_token: GitHub API token for issues, branches, files and PRs
    - github_repository: Target repository in "{owner}/{repo}" format
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # Chat Configuration
    # -------------------------------------------------------------------------
    discord_token: str

    # Only messages from this channel are handled; unset means any channel
    discord_channel_id: Optional[int] = None

    # -------------------------------------------------------------------------
    # GitHub Configuration
    # -------------------------------------------------------------------------
    github_token: str

    github_repository: str

    # Base URL for GitHub API (supports GitHub Enterprise)
    github_base_url: str = "https://api.github.com"

    # Branch that scaffold branches fork from and PRs target
    github_base_branch: str = "main"

    # -------------------------------------------------------------------------
    # State Configuration
    # -------------------------------------------------------------------------
    state_backend: Literal["memory", "github"] = "github"

    # Repository path of the JSON state file (github backend only)
    state_path: str = ".site-bot/state.json"

    # -------------------------------------------------------------------------
    # Server Configuration
    # -------------------------------------------------------------------------
    host: str = "0.0.0.0"

    port: int = 8080

    log_level: str = "INFO"

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("discord_token")
    @classmethod
    def validate_discord_token(cls, v: str) -> str:
        """Validate that the Discord token is not empty."""
        if not v or not v.strip():
            raise ValueError("discord_token cannot be empty")
        return v

    @field_validator("github_token")
    @classmethod
    def validate_github_token(cls, v: str) -> str:
        """Validate that GitHub token is not empty."""
        if not v or not v.strip():
            raise ValueError("github_token cannot be empty")
        return v

    @field_validator("github_repository")
    @classmethod
    def validate_github_repository(cls, v: str) -> str:
        """Validate the repository is in owner/repo format."""
        parts = v.strip().split("/")
        if len(parts) != 2 or not all(parts):
            raise ValueError("github_repository must be in owner/repo format")
        return v.strip()

    @field_validator("github_base_url")
    @classmethod
    def validate_github_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("github_base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("state_path")
    @classmethod
    def validate_state_path(cls, v: str) -> str:
        """Validate that the state path is a relative repository path."""
        v = v.strip()
        if not v or v.startswith("/"):
            raise ValueError("state_path must be a relative repository path")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate that port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log_level: {v}")
        return level

    @property
    def repo_owner(self) -> str:
        return self.github_repository.split("/")[0]

    @property
    def repo_name(self) -> str:
        return self.github_repository.split("/")[1]


def get_settings() -> BotSettings:
    """Create and return a BotSettings instance.

    Returns:
        BotSettings: Configured settings instance.

    Raises:
        pydantic.ValidationError: If required fields are missing or invalid.
    """
    return BotSettings()
