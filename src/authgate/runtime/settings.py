"""Process-level settings read from the environment and .env files.

These are the few primitive values needed before config.yaml can be
located and parsed. Everything else lives in ConfigData.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentVariables(BaseSettings):
    """Simple primitive values loaded from environment variables and .env files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    environment: Literal["development", "production", "test"] = Field(
        default="development", validation_alias="APP_ENVIRONMENT"
    )
    config_file: Path = Field(
        default=Path("config.yaml"), validation_alias="AUTHGATE_CONFIG_FILE"
    )
    log_level: str | None = Field(default=None, validation_alias="LOG_LEVEL")


def get_environment_variables() -> EnvironmentVariables:
    return EnvironmentVariables()
