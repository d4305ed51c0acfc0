"""Tests for configuration management."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from pageperf.config import PagePerfSettings, get_settings, reset_settings


class TestGetSettings:
    """Tests for the global settings instance."""

    def test_returns_same_instance(self):
        """get_settings caches the instance until reset."""
        assert get_settings() is get_settings()

    def test_reset_creates_new_instance(self):
        """reset_settings forces a reload on the next call."""
        first = get_settings()
        reset_settings()
        assert get_settings() is not first

    def test_reports_dir_from_env(self, isolated_config: Path):
        """PAGEPERF_REPORTS_DIR overrides the default reports directory."""
        assert get_settings().reports_dir == isolated_config


class TestPagePerfSettings:
    """Tests for PagePerfSettings fields."""

    def test_defaults(self, monkeypatch):
        """Thresholds default to their documented values."""
        monkeypatch.delenv("PAGEPERF_REPORTS_DIR")
        settings = PagePerfSettings()
        assert settings.log_level == "WARNING"
        assert settings.log_format == "console"
        assert settings.delivery_timeout == 10.0
        assert settings.slow_api_call_ms == 1000.0
        assert settings.slow_query_ms == 1000.0
        assert settings.long_frame_warn_ms == 100.0
        assert settings.default_cache_time_ms == 300_000.0
        assert settings.reports_dir.name == "reports"

    def test_env_overrides(self, monkeypatch):
        """Fields are read from PAGEPERF_ prefixed variables."""
        monkeypatch.setenv("PAGEPERF_SLOW_API_CALL_MS", "250")
        monkeypatch.setenv("PAGEPERF_LOG_FORMAT", "json")
        reset_settings()
        settings = get_settings()
        assert settings.slow_api_call_ms == 250.0
        assert settings.log_format == "json"

    def test_invalid_log_format_rejected(self, monkeypatch):
        """Only console and json renderers are accepted."""
        monkeypatch.setenv("PAGEPERF_LOG_FORMAT", "xml")
        with pytest.raises(ValidationError):
            PagePerfSettings()
