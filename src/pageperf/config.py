"""Configuration management with pydantic-settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PagePerfSettings(BaseSettings):
    """pageperf settings loaded from environment variables.

    All settings use the PAGEPERF_ prefix for environment variables.
    """

    # Logging configuration
    log_level: str = Field(default="WARNING", description="Logging level")
    log_format: Literal["console", "json"] = Field(
        default="console",
        description="Log renderer: console or json",
    )

    # Report output
    reports_dir: Path = Field(
        default=Path.home() / ".local" / "share" / "pageperf" / "reports",
        description="Directory where saved Markdown reports are written",
    )

    # Delivery
    delivery_timeout: float = Field(
        default=10.0,
        description="Timeout in seconds for sending a session to an analytics endpoint",
    )

    # Diagnostic thresholds (logging only, never affect statistics)
    slow_api_call_ms: float = Field(
        default=1000.0,
        description="API calls slower than this are logged as slow",
    )
    slow_query_ms: float = Field(
        default=1000.0,
        description="Cache fetches slower than this are logged as slow",
    )
    long_frame_warn_ms: float = Field(
        default=100.0,
        description="Long frames longer than this are logged",
    )

    # Query cache defaults
    default_cache_time_ms: float = Field(
        default=300_000.0,  # 5 minutes
        description="Retention window assumed when a cache entry does not report one",
    )

    model_config = SettingsConfigDict(
        env_prefix="PAGEPERF_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Global settings instance
_settings: PagePerfSettings | None = None


def get_settings() -> PagePerfSettings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = PagePerfSettings()
    return _settings


def reset_settings() -> None:
    """Reset the global settings instance (useful for testing)."""
    global _settings
    _settings = None
