"""Beacon configuration management.

Configuration sources (in priority order):
1. Environment variables (BEACON_ prefix)
2. Config file (config.yaml)
3. Defaults
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 8000


class DatabaseConfig(BaseModel):
    """Database configuration."""

    # SQLite by default; postgresql+asyncpg:// works the same way
    url: str = "sqlite+aiosqlite:///./beacon.db"
    echo: bool = False


class ApiKeyConfig(BaseModel):
    """API key issuance settings.

    The expiry window lives only here so issuance and rotation agree.
    """

    default_expiration_days: int = Field(default=365, ge=1)

    # Length of the hex secret handed to the client
    secret_length: int = Field(default=32, ge=16, le=64)

    # Plaintext chars kept for display and candidate narrowing
    prefix_length: int = Field(default=6, ge=4, le=12)

    # bcrypt cost factor (4..31)
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)


class CacheConfig(BaseModel):
    """Aggregation cache configuration."""

    backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"

    # Summaries may lag new events by up to this many seconds
    summary_ttl_seconds: int = 300

    # Upper bound for the in-memory backend (None = unbounded)
    maxsize: int | None = Field(default=10000, ge=1)


class SecurityConfig(BaseModel):
    """Owner session token configuration."""

    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 60 * 24

    # Shared with the identity gateway that posts confirmed sign-ins
    # (None disables the callback)
    identity_callback_secret: str | None = None


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    json_logs: bool = True


class Settings(BaseSettings):
    """Beacon application settings."""

    model_config = SettingsConfigDict(
        env_prefix="BEACON_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    api_key: ApiKeyConfig = Field(default_factory=ApiKeyConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment beats values passed in from the YAML file
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def _load_config_file() -> dict:
    """Load configuration from YAML file if exists.

    Looks for config file in order:
    1. BEACON_CONFIG_FILE environment variable
    2. ./config.yaml
    3. /etc/beacon/config.yaml
    """
    config_paths = [
        os.environ.get("BEACON_CONFIG_FILE"),
        Path("config.yaml"),
        Path("/etc/beacon/config.yaml"),
    ]

    for path in config_paths:
        if path is None:
            continue
        path = Path(path)
        if path.exists():
            with open(path) as f:
                return yaml.safe_load(f) or {}

    return {}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Configuration is loaded from:
    1. YAML config file (if exists)
    2. Environment variables (override)
    3. Defaults
    """
    file_config = _load_config_file()
    return Settings(**file_config)
