"""Shared pytest fixtures for the test suite."""

import logging
import sys
import threading
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

# Mock hardware-specific modules before they're imported
# These are only available on Raspberry Pi hardware
sys.modules["adafruit_dht"] = MagicMock()
sys.modules["board"] = MagicMock()

from rpimon.dht.models import Reading, SensorSpec, SensorValues
from rpimon.lib.config import Settings
from rpimon.lib.config.testing import set_settings


def make_reading(
    sensor="livingroom",
    temperature=21.5,
    humidity=44.0,
    timestamp=None,
):
    """Create a Reading for testing."""
    if timestamp is None:
        timestamp = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)
    return Reading(
        sensor=sensor,
        temperature=temperature,
        humidity=humidity,
        timestamp=timestamp,
    )


class FakeReader:
    """Scripted DHT reader.

    ``script`` maps a pin to a list of outcomes, each a SensorValues or an
    exception instance to raise. Outcomes are consumed in order and the last
    one repeats forever.
    """

    def __init__(self, script):
        self._script = {pin: list(outcomes) for pin, outcomes in script.items()}
        self._lock = threading.Lock()
        self.calls: list[int] = []
        self.closed = False

    def read(self, pin):
        with self._lock:
            self.calls.append(pin)
            outcomes = self._script[pin]
            outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def reads_for(self, pin):
        return self.calls.count(pin)

    def close(self):
        self.closed = True


GOOD = SensorValues(temperature=21.5, humidity=44.0)


@pytest.fixture(autouse=True)
def configure_caplog(caplog):
    """Ensure caplog captures logs from the rpimon namespace."""
    caplog.set_level(logging.INFO, logger="rpimon")


@pytest.fixture(autouse=True)
def test_settings():
    """Use default settings, ignoring the environment and any .env file."""
    settings = Settings(_env_file=None)
    set_settings(settings)
    yield settings
    # Reset global settings after each test to avoid cross-test pollution
    set_settings(None)


@pytest.fixture
def frozen_time():
    """Return a fixed datetime for deterministic tests."""
    return datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def sample_reading(frozen_time):
    """Create a valid DHT22 reading."""
    return make_reading(timestamp=frozen_time)


@pytest.fixture
def livingroom():
    return SensorSpec(label="livingroom", pin=4)


@pytest.fixture
def bedroom():
    return SensorSpec(label="bedroom", pin=17)


@pytest.fixture
def sensors_file(tmp_path):
    """Write a sensor list file and return its path."""

    def write(content: str):
        path = tmp_path / "sensors.yaml"
        path.write_text(content)
        return path

    return write
