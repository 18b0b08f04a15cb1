"""Sensor registry: the fixed set of DHT22 sensors to sample.

The sensor list is a YAML file with one ``{name, pin}`` record per sensor::

    - name: livingroom
      pin: 4
    - name: bedroom
      pin: 17

It is read once at startup. Any problem with it is an operator error, so
loading fails with ConfigError before any sensor work is attempted.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from rpimon.dht.models import SensorSpec
from rpimon.lib.exceptions import ConfigError
from rpimon.logging import get_logger

logger = get_logger("dht.registry")


def _describe(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'record'}: {err['msg']}"
        for err in error.errors()
    )


def parse_sensors(records: Any, source: str = "sensor list") -> frozenset[SensorSpec]:
    """Validate raw sensor records.

    Raises:
        ConfigError: If the records are not a non-empty list of valid,
            unique sensors.
    """
    if not isinstance(records, list):
        raise ConfigError(f"{source} must be a list of {{name, pin}} records")
    if not records:
        raise ConfigError(f"{source} does not define any sensors")

    errors: list[str] = []
    labels: dict[str, int] = {}
    pins: dict[int, int] = {}
    specs: list[SensorSpec] = []

    for index, record in enumerate(records):
        try:
            spec = SensorSpec.model_validate(record)
        except ValidationError as e:
            errors.append(f"record {index}: {_describe(e)}")
            continue

        if spec.label in labels:
            errors.append(
                f"record {index}: duplicate name {spec.label!r} "
                f"(already used by record {labels[spec.label]})"
            )
        if spec.pin in pins:
            errors.append(
                f"record {index}: duplicate pin {spec.pin} "
                f"(already used by record {pins[spec.pin]})"
            )
        labels.setdefault(spec.label, index)
        pins.setdefault(spec.pin, index)
        specs.append(spec)

    if errors:
        raise ConfigError(
            f"Invalid {source}:\n  - " + "\n  - ".join(errors)
        )
    return frozenset(specs)


def load_sensors(source: str | Path) -> frozenset[SensorSpec]:
    """Load and validate the sensor list file.

    Raises:
        ConfigError: If the file is missing, unreadable, not valid YAML, or
            describes an invalid sensor set.
    """
    path = Path(source)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigError(f"Sensor list {path} not found") from e
    except PermissionError as e:
        raise ConfigError(
            f"Insufficient permissions to read sensor list {path}"
        ) from e
    except OSError as e:
        raise ConfigError(f"Unable to read sensor list {path}: {e}") from e

    try:
        records = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in sensor list {path}: {e}") from e

    sensors = parse_sensors(records, source=f"sensor list {path}")
    logger.info(
        "Registered %d sensor(s): %s",
        len(sensors),
        ", ".join(str(s) for s in sorted(sensors, key=lambda s: s.pin)),
    )
    return sensors
