"""Domain models for DHT22 sensor readings."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Annotated

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    SecretStr,
    StrictInt,
    StrictStr,
)

from rpimon.lib.config import MeasureName, Unit


def _validate_label(v: str) -> str:
    """Labels become Graphite path segments: lowercase, no whitespace."""
    if not v:
        raise ValueError("sensor name must not be empty")
    if any(c.isspace() for c in v):
        raise ValueError(f"sensor name {v!r} must not contain whitespace")
    if v != v.lower():
        raise ValueError(f"sensor name {v!r} must be lowercase")
    return v


_Label = Annotated[StrictStr, AfterValidator(_validate_label)]


class SensorSpec(BaseModel):
    """A DHT22 sensor wired to a GPIO pin.

    In the sensor-list file the label is written as ``name``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    label: _Label = Field(alias="name")
    pin: StrictInt = Field(ge=0)

    def __str__(self) -> str:
        return f"{self.label} (GPIO{self.pin})"


class ReporterTarget(BaseModel):
    """Where and how to deliver metrics."""

    model_config = ConfigDict(frozen=True)

    endpoint: HttpUrl
    credential: SecretStr


class FaultKind(StrEnum):
    TRANSIENT = "transient"  # checksum/timing, expected occasionally
    HARDWARE = "hardware"  # pin unavailable, expected never


@dataclass(frozen=True, slots=True)
class SensorValues:
    """Raw values returned by a sensor reader."""

    temperature: float
    humidity: float


@dataclass(frozen=True, slots=True)
class Reading:
    sensor: str
    temperature: float
    humidity: float
    timestamp: datetime

    def measures(self) -> tuple[tuple[MeasureName, float], ...]:
        return (
            (MeasureName.TEMPERATURE, self.temperature),
            (MeasureName.HUMIDITY, self.humidity),
        )

    def __str__(self) -> str:
        return (
            f"{self.temperature:.1f}{Unit.CELSIUS}, "
            f"{self.humidity:.1f}{Unit.PERCENT}"
        )


@dataclass(frozen=True, slots=True)
class SampleFault:
    sensor: str
    pin: int
    kind: FaultKind
    reason: str
    attempts: int

    def __str__(self) -> str:
        return (
            f"{self.kind} fault on {self.sensor} (GPIO{self.pin}) "
            f"after {self.attempts} attempt(s): {self.reason}"
        )


@dataclass(slots=True)
class CycleResult:
    """Outcome of sampling every registered sensor once."""

    started_at: datetime
    readings: list[Reading] = field(default_factory=list)
    faults: list[SampleFault] = field(default_factory=list)
