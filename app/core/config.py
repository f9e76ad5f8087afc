"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
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


DEFAULT_SYSTEM_PROMPT = (
    "You are the friendly assistant embedded in this website's chat widget. "
    "Answer concisely and politely in the language the visitor uses."
)


def _build_llm_settings() -> "LLMSettings":
    """Build LLM settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return LLMSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    See _build_llm_settings() for rationale about the type ignore.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class LLMSettings(BaseSettings):
    """Upstream chat completion provider configuration.

    Any OpenAI-compatible endpoint works; the defaults target DeepSeek.
    Validation of provider-specific requirements happens in the factory.
    """

    provider: str = Field(
        "deepseek",
        description="LLM provider name (deepseek or openai, both OpenAI-compatible)",
    )
    model: str = Field(
        "deepseek-chat",
        description="Model name sent with every completion request",
    )
    api_key: str | None = Field(
        None,
        description="API key for the upstream provider",
    )
    base_url: str | None = Field(
        "https://api.deepseek.com",
        description="OpenAI-compatible API endpoint",
    )
    timeout_seconds: float = Field(
        45.0,
        description="Request timeout in seconds",
    )
    temperature: float = Field(
        0.8,
        description="Sampling temperature forwarded upstream",
        ge=0.0,
        le=2.0,
    )
    max_tokens: int = Field(
        2000,
        description="Maximum completion tokens forwarded upstream",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    system_prompt: str = Field(
        DEFAULT_SYSTEM_PROMPT,
        description="System prompt prepended to every conversation (empty to disable)",
    )
    max_messages: int = Field(
        50,
        description="Maximum number of messages accepted in one chat request",
        ge=1,
    )
    cors_allow_origins: str = Field(
        "*",
        description="Comma-separated list of origins allowed to call the API",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-client fixed-window rate limiting",
    )
    rate_limit_requests: int = Field(
        10,
        description="Maximum number of requests allowed per window (per client)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        300,
        description="Rate limit window size in seconds",
        ge=1,
    )
    rate_limit_sweep_interval_seconds: float = Field(
        60.0,
        description="Interval of the background sweep of expired records (0 disables)",
        ge=0.0,
    )
    rate_limit_sweep_probability: float = Field(
        0.0,
        description="Probability of sweeping expired records on each request",
        ge=0.0,
        le=1.0,
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include Retry-After header when throttling",
    )
    trust_forwarded_for: bool = Field(
        True,
        description="Derive the client identity from X-Forwarded-For when present",
    )

    conversation_log_enabled: bool = Field(
        False,
        description="Append successful conversation turns to the log sink",
    )
    conversation_log_path: str = Field(
        "logs/conversations.jsonl",
        description="JSON Lines file used by the conversation log sink",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log output: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10_485_760, description="Rotate log file after this size (0 disables)")
    backup_count: int = Field(5, description="Number of rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read/propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    llm: LLMSettings = Field(default_factory=_build_llm_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
