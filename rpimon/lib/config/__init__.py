"""Centralized configuration for the RPi temperature monitor.

This package provides:
- Enums for measurements and payload formats
- Pydantic settings models for configuration
- Functions for loading and accessing the global settings
"""

from .enums import MeasureName, PayloadFormat, Unit
from .settings import (
    DEFAULT_REFRESH_SEC,
    DHT22_BOUNDS,
    DHT22_MIN_READ_INTERVAL_SEC,
    PollingSettings,
    ReportingSettings,
    SamplingSettings,
    Settings,
    get_settings,
    load_settings,
)

__all__ = [
    # Enums
    "MeasureName",
    "PayloadFormat",
    "Unit",
    # Settings models
    "PollingSettings",
    "ReportingSettings",
    "SamplingSettings",
    "Settings",
    # Constants
    "DEFAULT_REFRESH_SEC",
    "DHT22_BOUNDS",
    "DHT22_MIN_READ_INTERVAL_SEC",
    # Functions
    "get_settings",
    "load_settings",
]
