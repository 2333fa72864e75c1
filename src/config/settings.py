# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Deployment-wide defaults for the proxy. Values passed in the
initialization message take precedence over these (see proxy/state.py).
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is missing or internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === UPSTREAM ===
    anthropic_api_key: str = ""
    anthropic_base_url: str = "https://api.anthropic.com"
    anthropic_api_version: str = "2023-06-01"

    # === COMPLETION DEFAULTS ===
    default_model: str = "claude-3-7-sonnet-20250219"
    default_max_tokens: int = 4096
    timeout_ms: int = 30_000
    max_retries: int = 0

    # === CACHE ===
    max_cache_size: int = 100
    cache_backend: Literal["memory", "sqlite"] = "memory"
    cache_root: Path = Path("~/.anthropic_proxy/cache")

    # === LOGGING ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Reject non-positive limits."""
        errors: list[str] = []

        if self.max_cache_size < 1:
            errors.append("MAX_CACHE_SIZE must be >= 1")
        if self.timeout_ms < 1:
            errors.append("TIMEOUT_MS must be >= 1")
        if self.default_max_tokens < 1:
            errors.append("DEFAULT_MAX_TOKENS must be >= 1")
        if self.max_retries < 0:
            errors.append("MAX_RETRIES must be >= 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    @property
    def cache_db_path(self) -> Path:
        """SQLite database file used by the sqlite cache backend."""
        return self.cache_root.expanduser() / "anthropic_proxy_cache.db"


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or embedding).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
