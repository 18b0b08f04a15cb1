"""Settings models and configuration loading for the RPi temperature monitor."""

import logging
import re
from functools import cached_property, lru_cache
from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    HttpUrl,
    SecretStr,
    ValidationError,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from rpimon.lib.config.enums import MeasureName, PayloadFormat
from rpimon.lib.exceptions import ConfigError

# The original service sampled every 15 minutes
DEFAULT_REFRESH_SEC = 900

# DHT22 needs at least 2 seconds between two reads of the same sensor
DHT22_MIN_READ_INTERVAL_SEC = 2.0

# DHT22 sensor physical bounds
DHT22_BOUNDS = {
    MeasureName.TEMPERATURE: (-40, 80),
    MeasureName.HUMIDITY: (0, 100),
}

_METRIC_PREFIX_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+(\.[A-Za-z0-9_\-]+)*$")


def _parse_bool(v: Any) -> bool:
    """Parse boolean from string '1'/'0' or actual bool."""
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        return v == "1"
    return bool(v)


def _validate_http_url_or_empty(v: str) -> str:
    """Validate HTTP URL format, allowing empty string."""
    if not v:
        return v
    HttpUrl(v)
    return v


def _validate_metric_prefix(v: str) -> str:
    """Validate a dotted Graphite path prefix, allowing empty string."""
    v = v.strip().strip(".")
    if v and not _METRIC_PREFIX_PATTERN.match(v):
        raise ValueError(f"invalid metric prefix: {v!r}")
    return v


def _validate_log_level(v: str) -> str:
    level = v.upper()
    if level not in logging.getLevelNamesMapping():
        raise ValueError(f"unknown log level: {v!r}")
    return level


_BoolFromStr = Annotated[bool, BeforeValidator(_parse_bool)]
_HttpUrlOrEmpty = Annotated[str, AfterValidator(_validate_http_url_or_empty)]
_MetricPrefix = Annotated[str, AfterValidator(_validate_metric_prefix)]
_LogLevel = Annotated[str, AfterValidator(_validate_log_level)]


class SamplingSettings(BaseModel):
    """Sensor sampling settings."""

    model_config = ConfigDict(frozen=True)

    attempts: int = 3
    retry_delay_sec: float = 2.1
    read_timeout_sec: float = 5.0
    max_concurrency: int = 4
    offline_after_ticks: int = 5


class ReportingSettings(BaseModel):
    """Metrics backend settings."""

    model_config = ConfigDict(frozen=True)

    endpoint: str = ""
    api_key: SecretStr = SecretStr("")
    timeout_sec: float = 10.0
    payload_format: PayloadFormat = PayloadFormat.PLAINTEXT
    metric_prefix: str = ""


class PollingSettings(BaseModel):
    """Polling service settings."""

    model_config = ConfigDict(frozen=True)

    frequency_sec: int = DEFAULT_REFRESH_SEC
    shutdown_grace_sec: float = 5.0


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend
    graphite_endpoint: _HttpUrlOrEmpty = ""
    grafana_api_key: SecretStr = SecretStr("")
    payload_format: PayloadFormat = PayloadFormat.PLAINTEXT
    metric_prefix: _MetricPrefix = ""
    report_timeout_sec: float = Field(default=10.0, gt=0)

    # Sensors
    sensors_config_path: str = "sensors.yaml"
    mock_sensors: _BoolFromStr = False
    mock_fault_rate: float = Field(default=0.0, ge=0, le=1)
    read_attempts: int = Field(default=3, ge=1, le=5)
    read_retry_delay_sec: float = Field(
        default=2.1, ge=DHT22_MIN_READ_INTERVAL_SEC
    )
    read_timeout_sec: float = Field(default=5.0, gt=0)
    max_concurrency: int = Field(default=4, ge=1)
    offline_after_ticks: int = Field(default=5, ge=1)

    # Polling
    refresh_time: int = Field(default=DEFAULT_REFRESH_SEC, ge=10)
    shutdown_grace_sec: float = Field(default=5.0, ge=0)

    # Logging
    log_level: _LogLevel = "INFO"

    @cached_property
    def sampling(self) -> SamplingSettings:
        """Get sampling settings as nested object."""
        return SamplingSettings(
            attempts=self.read_attempts,
            retry_delay_sec=self.read_retry_delay_sec,
            read_timeout_sec=self.read_timeout_sec,
            max_concurrency=self.max_concurrency,
            offline_after_ticks=self.offline_after_ticks,
        )

    @cached_property
    def reporting(self) -> ReportingSettings:
        """Get reporting settings as nested object."""
        return ReportingSettings(
            endpoint=self.graphite_endpoint,
            api_key=self.grafana_api_key,
            timeout_sec=self.report_timeout_sec,
            payload_format=self.payload_format,
            metric_prefix=self.metric_prefix,
        )

    @cached_property
    def polling(self) -> PollingSettings:
        """Get polling settings."""
        return PollingSettings(
            frequency_sec=self.refresh_time,
            shutdown_grace_sec=self.shutdown_grace_sec,
        )

    def check_schedule(self) -> None:
        """Check that a full tick fits inside the refresh interval.

        Only the forwarding loop has ticks, so this runs when the service is
        built rather than on every settings load.

        Raises:
            ConfigError: If the worst-case tick outlasts REFRESH_TIME.
        """
        worst_case = (
            self.read_attempts * self.read_timeout_sec
            + (self.read_attempts - 1) * self.read_retry_delay_sec
            + self.report_timeout_sec
        )
        if worst_case >= self.refresh_time:
            raise ConfigError(
                f"REFRESH_TIME ({self.refresh_time}s) must be greater than "
                f"the worst-case tick duration ({worst_case:.1f}s)"
            )


# Settings override for testing - allows injecting custom Settings without
# modifying environment variables or clearing the lru_cache.
_settings_override: Settings | None = None

# Settings built from command-line arguments at startup.
_active_settings: Settings | None = None


@lru_cache(maxsize=1)
def _load_settings() -> Settings:
    """Load settings from environment (cached)."""
    return Settings()


def get_settings() -> Settings:
    """Get the global settings instance.

    Returns the test override if set, then the settings installed by
    load_settings(), otherwise loads from environment variables (cached after
    first load). For testing, use set_settings() from
    rpimon.lib.config.testing to override.
    """
    if _settings_override is not None:
        return _settings_override
    if _active_settings is not None:
        return _active_settings
    return _load_settings()


def load_settings(**overrides: Any) -> Settings:
    """Build settings from the environment plus explicit overrides.

    Overrides whose value is None are ignored, so unset command-line flags
    fall back to the environment. The result becomes the global settings.

    Raises:
        ConfigError: If any value fails validation.
    """
    global _active_settings
    values = {k: v for k, v in overrides.items() if v is not None}
    try:
        settings = Settings(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
    _active_settings = settings
    return settings
