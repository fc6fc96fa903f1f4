"""Tests for configuration settings."""

import pytest
from pydantic import ValidationError

from request_limiter.config import (
    LimiterConfig,
    Settings,
    build_config,
    get_settings,
)
from request_limiter.exceptions import ConfigurationError


class TestLimiterConfig:
    """Tests for LimiterConfig model."""

    def test_defaults(self):
        """Test default values are correct."""
        config = LimiterConfig()

        assert config.max_concurrent == 10
        assert config.delay_between_batches_ms == 0
        assert config.progressive_delay_step_ms == 0
        assert config.max_progressive_delay_ms == 0
        assert config.on_success is None
        assert config.on_complete is None

    def test_frozen(self):
        """Test that configs are immutable."""
        config = LimiterConfig()

        with pytest.raises(ValidationError):
            config.max_concurrent = 3

    def test_max_concurrent_lower_bound(self):
        """Test that max_concurrent must be at least 1."""
        with pytest.raises(ValidationError):
            LimiterConfig(max_concurrent=0)

    def test_unknown_field_rejected(self):
        """Test that unknown options are rejected."""
        with pytest.raises(ValidationError):
            LimiterConfig(maxConcurrent=3)

    def test_callbacks_excluded_from_dump(self):
        """Test that callbacks do not appear in serialized output."""
        config = LimiterConfig(on_success=print)

        assert "on_success" not in config.model_dump()

    def test_non_callable_callback_rejected(self):
        """Test that callbacks must be callable."""
        with pytest.raises(ValidationError):
            LimiterConfig(on_error="not callable")

    def test_with_options_returns_new_config(self):
        """Test with_options leaves the original untouched."""
        original = LimiterConfig(max_concurrent=4, on_progress=print)
        changed = original.with_options(delay_between_batches_ms=250)

        assert changed is not original
        assert original.delay_between_batches_ms == 0
        assert changed.delay_between_batches_ms == 250
        assert changed.max_concurrent == 4
        assert changed.on_progress is print

    def test_with_options_validates(self):
        """Test with_options raises ConfigurationError on bad values."""
        with pytest.raises(ConfigurationError):
            LimiterConfig().with_options(progressive_delay_step_ms=-1)


class TestBuildConfig:
    """Tests for build_config function."""

    def test_build_from_mapping(self):
        """Test building from a mapping."""
        config = build_config({"max_concurrent": 2, "max_progressive_delay_ms": 500})

        assert config.max_concurrent == 2
        assert config.max_progressive_delay_ms == 500

    def test_configuration_error_wraps_validation_error(self):
        """Test that the pydantic error is chained."""
        with pytest.raises(ConfigurationError) as exc_info:
            build_config({"max_concurrent": -3})

        assert isinstance(exc_info.value.__cause__, ValidationError)
        assert isinstance(exc_info.value, ValueError)


class TestSettings:
    """Tests for Settings class."""

    def test_settings_defaults(self):
        """Test default values are correct."""
        settings = Settings(_env_file=None)

        assert settings.log_level == "WARNING"
        assert settings.limiter == LimiterConfig()
        assert settings.logging.log_file is None
        assert settings.logging.rotation == "10 MB"

    def test_settings_from_env(self, monkeypatch):
        """Test environment variables override defaults."""
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("LIMITER__MAX_CONCURRENT", "3")
        monkeypatch.setenv("LIMITER__DELAY_BETWEEN_BATCHES_MS", "150")
        monkeypatch.setenv("LOGGING__LOG_FILE", "/tmp/limiter.log")

        settings = Settings(_env_file=None)

        assert settings.log_level == "DEBUG"
        assert settings.limiter.max_concurrent == 3
        assert settings.limiter.delay_between_batches_ms == 150
        assert settings.logging.log_file == "/tmp/limiter.log"

    def test_settings_invalid_limiter_value(self, monkeypatch):
        """Test that invalid limiter values from env are rejected."""
        monkeypatch.setenv("LIMITER__MAX_CONCURRENT", "0")

        with pytest.raises(ValueError):
            Settings(_env_file=None)

    def test_settings_log_level_validation(self, monkeypatch):
        """Test that invalid log level is rejected."""
        monkeypatch.setenv("LOG_LEVEL", "INVALID")

        with pytest.raises(ValueError):
            Settings(_env_file=None)

    def test_settings_case_insensitive(self, monkeypatch):
        """Test that env var names are case-insensitive."""
        monkeypatch.setenv("log_level", "ERROR")

        settings = Settings(_env_file=None)

        assert settings.log_level == "ERROR"


class TestGetSettings:
    """Tests for get_settings function."""

    def test_get_settings_returns_settings(self):
        """Test that get_settings returns a Settings instance."""
        get_settings.cache_clear()

        assert isinstance(get_settings(), Settings)

    def test_get_settings_cached(self):
        """Test that get_settings returns cached instance."""
        get_settings.cache_clear()

        settings1 = get_settings()
        settings2 = get_settings()

        assert settings1 is settings2
