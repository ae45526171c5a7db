"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_redis_settings() -> "RedisSettings":
    """Build Redis settings from environment."""

    return RedisSettings()


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment."""

    return AppSettings()


def _build_log_settings() -> "LogSettings":
    """Build logging settings from environment."""

    return LogSettings()


class RedisSettings(BaseSettings):
    """Durable rate limit backend configuration.

    Both ``url`` and ``token`` must be present for the Redis sliding window to
    be used. When either is missing the service runs on the in-memory fixed
    window for the lifetime of the process.
    """

    url: str | None = Field(
        None,
        description="Redis connection URL (e.g., rediss://host:6379/0)",
    )
    token: str | None = Field(
        None,
        description="Redis auth token, sent as the connection password",
    )
    key_prefix: str = Field(
        "ratelimit",
        description="Prefix for sorted-set keys (<prefix>:<identifier>)",
        min_length=1,
    )
    socket_timeout_seconds: float = Field(
        2.0,
        description="Socket connect/read timeout for Redis calls",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable rate limiting on the public content API",
    )
    rate_limit_anonymous_requests: int = Field(
        10,
        description="Requests allowed per window for anonymous (IP-only) traffic",
        ge=1,
    )
    rate_limit_workspace_requests: int = Field(
        200,
        description="Requests allowed per window for workspace-scoped traffic",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        10,
        description="Rate limit window size in seconds",
        ge=1,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers on every rate limited response",
    )
    rate_limit_sweep_probability: float = Field(
        0.01,
        description="Chance per call that the in-memory store sweeps expired counters",
        ge=0.0,
        le=1.0,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", description="Root log level"
    )
    format: Literal["json", "plain"] = Field("json", description="Log format: json or plain")
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int | None = Field(
        10_485_760,
        description="Rotate the log file after this many bytes (None disables rotation)",
    )
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to receive and propagate the request id",
    )

    @field_validator("level", mode="before")
    @classmethod
    def _upper_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    @field_validator("format", "output", mode="before")
    @classmethod
    def _lower_choice(cls, v):
        return v.lower() if isinstance(v, str) else v

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    redis: RedisSettings = Field(default_factory=_build_redis_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
