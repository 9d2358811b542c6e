"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (MARKVIEW__CACHE__TTL_SECONDS=60)
  2. markview.yaml          (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional; every field has a default. The GitHub
token additionally falls back to the conventional ``GITHUB_TOKEN`` variable.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_CONFIG_DIR = platformdirs.user_config_dir("markview")


def _find_config_file() -> str | None:
    """Return the path of the first markview.yaml found, or None."""
    candidates = [
        Path("markview.yaml"),
        Path(_DEFAULT_CONFIG_DIR) / "markview.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080


class GitHubSettings(BaseModel):
    api_url: str = "https://api.github.com"
    token: str | None = None
    user_agent: str = "MarkView-App"
    accept: str = "application/vnd.github.v3+json"
    timeout_seconds: float = 30.0

    @field_validator("token")
    @classmethod
    def blank_token_is_none(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            return None
        return v

    def resolved_token(self) -> str | None:
        """Configured token, else the ``GITHUB_TOKEN`` environment variable."""
        return self.token or os.environ.get("GITHUB_TOKEN") or None


class CacheSettings(BaseModel):
    max_entries: int = 500
    max_bytes: int = 100 * 1024 * 1024
    ttl_seconds: float = 10 * 60
    rate_limit_ttl_seconds: float = 60
    purge_interval_seconds: float = 5 * 60


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: MARKVIEW__SERVER__PORT=9090
        env_prefix="MARKVIEW__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    github: GitHubSettings = GitHubSettings()
    cache: CacheSettings = CacheSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
        )
