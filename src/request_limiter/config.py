"""Configuration settings for the request limiter."""

from collections.abc import Callable, Mapping
from functools import lru_cache
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from request_limiter.exceptions import ConfigurationError


class LimiterConfig(BaseModel):
    """Configuration for one limiter.

    Controls batch size, inter-batch pacing, and event callbacks.
    Instances are immutable; use ``with_options`` to derive a changed copy.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Concurrency
    max_concurrent: int = Field(
        default=10,
        ge=1,
        description="Maximum operations in flight (batch size)",
    )

    # Timing
    delay_between_batches_ms: int = Field(
        default=0,
        ge=0,
        description="Pause after the first batch, in milliseconds",
    )
    progressive_delay_step_ms: int = Field(
        default=0,
        ge=0,
        description="Milliseconds added to the pause after every batch",
    )
    max_progressive_delay_ms: int = Field(
        default=0,
        ge=0,
        description="Ceiling for the growing pause (0 = pause never grows)",
    )

    # Callbacks
    on_success: Callable[[Any], None] | None = Field(default=None, exclude=True, repr=False)
    on_error: Callable[[Any], None] | None = Field(default=None, exclude=True, repr=False)
    on_progress: Callable[[Any], None] | None = Field(default=None, exclude=True, repr=False)
    on_complete: Callable[[Any], None] | None = Field(default=None, exclude=True, repr=False)

    def with_options(self, **changes: Any) -> "LimiterConfig":
        """Return a new validated config with ``changes`` applied.

        Raises:
            ConfigurationError: If the resulting options are invalid
        """
        return build_config({**dict(self), **changes})


def build_config(options: Mapping[str, Any]) -> LimiterConfig:
    """Validate a mapping of options into a LimiterConfig.

    Args:
        options: Field names mapped to values

    Returns:
        Validated LimiterConfig

    Raises:
        ConfigurationError: If any option is unknown or out of range
    """
    try:
        return LimiterConfig.model_validate(dict(options))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid limiter configuration: {e}") from e


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Process-wide defaults loaded from environment variables.

    Nested values use a double underscore, e.g. ``LIMITER__MAX_CONCURRENT=4``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Console logging level for the CLI",
    )

    # --------------------------------------------------------------------------
    # Limiter Defaults
    # --------------------------------------------------------------------------
    limiter: LimiterConfig = Field(
        default_factory=LimiterConfig,
        description="Default limiter configuration",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
