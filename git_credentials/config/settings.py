"""
Configuration using pydantic-settings.

Every setting can come from the environment (prefix ``GIT_CREDENTIALS_``);
CLI options override the environment.

Example:
    $ export GIT_CREDENTIALS_CREDENTIALS_FILE=~/.config/git-credentials.yml
    $ export GIT_CREDENTIALS_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from git_credentials.credentials.keyring_backend import DEFAULT_NAMESPACE
from git_credentials.exceptions import ConfigurationError


class CredentialsSettings(BaseSettings):
    """Settings for credential resolution and the CLI."""

    model_config = SettingsConfigDict(
        env_prefix="GIT_CREDENTIALS_",
        case_sensitive=False,
    )

    credentials_file: Path = Field(default=Path(".credentials.yml"), description="Path of the credentials file")
    log_level: str = Field(default="WARNING", description="Minimum log level")
    log_json: bool = Field(default=False, description="Emit JSON log lines")
    key_directory: Path | None = Field(
        default=None,
        description="Directory for transient SSH key files (system temp dir when unset)",
    )
    cache_store: bool = Field(default=True, description="Re-use the parsed credentials file while it is unchanged")
    keyring_namespace: str = Field(default=DEFAULT_NAMESPACE, description="Prefix for keyring service names")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure the log level is one logging knows."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("credentials_file", "key_directory")
    @classmethod
    def expand_user(cls, v: Path | None) -> Path | None:
        return v.expanduser() if v is not None else None

    @classmethod
    def load(cls, **overrides: Any) -> CredentialsSettings:
        """Build settings from the environment plus explicit overrides.

        Overrides whose value is None are ignored so unset CLI options fall
        back to the environment.

        Raises:
            ConfigurationError: If a setting is invalid
        """
        values = {key: value for key, value in overrides.items() if value is not None}
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings: {e}") from e
