"""Enumerations for the RPi temperature monitor."""

from enum import StrEnum


class Unit(StrEnum):
    """Measurement units for sensor readings."""

    CELSIUS = "°C"
    PERCENT = "%"


class MeasureName(StrEnum):
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"


class PayloadFormat(StrEnum):
    """Body format used when posting metrics to the backend."""

    PLAINTEXT = "plaintext"  # Graphite line protocol
    JSON = "json"  # Grafana Cloud Graphite datapoints

