"""Custom exceptions for the RPi temperature monitor.

Provides a hierarchy of domain-specific exceptions. Only configuration and
startup errors are fatal; sensor and delivery errors are recoverable and are
handled inside the polling loop.
"""


class RpiMonitorError(Exception):
    """Base exception for all application errors."""


class ConfigError(RpiMonitorError):
    """Raised when the settings or the sensor list are invalid."""


class HardwareUnavailableError(RpiMonitorError):
    """Raised when the GPIO driver stack cannot be loaded at startup."""


class SensorError(RpiMonitorError):
    """Base exception for failed sensor reads."""


class TransientSensorError(SensorError):
    """Checksum or timing failure; usually resolves on the next read."""


class SensorHardwareError(SensorError):
    """The pin cannot be accessed (permissions, already claimed, no such pin)."""


class DeliveryError(RpiMonitorError):
    """Raised when metrics could not be delivered to the backend."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status
