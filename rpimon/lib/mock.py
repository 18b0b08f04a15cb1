"""Mock sensor data generators for development.

Provides a mock implementation of the DHT reader interface that generates
realistic data without requiring hardware. Used by the polling service and
the check command when MOCK_SENSORS=1 is set.
"""

import random

from rpimon.dht.models import SensorValues
from rpimon.lib.exceptions import TransientSensorError


def _random_walk(
    current: float, drift: float, min_val: float, max_val: float
) -> float:
    """Generate next value using random walk with bounds."""
    change = random.gauss(0, drift)
    new_val = current + change
    return max(min_val, min(max_val, new_val))


class MockDHTReader:
    """Mock DHT22 reader that generates realistic readings per pin.

    - Temperature: drift=0.15, bounds 15-30
    - Humidity: drift=0.3, bounds 30-70

    A ``fault_rate`` between 0 and 1 makes that share of reads fail with a
    transient error, to exercise the retry path.
    """

    def __init__(self, fault_rate: float = 0.0) -> None:
        self._fault_rate = fault_rate
        self._state: dict[int, tuple[float, float]] = {}

    def read(self, pin: int) -> SensorValues:
        if self._fault_rate and random.random() < self._fault_rate:
            raise TransientSensorError("Checksum did not validate (mock)")

        temperature, humidity = self._state.get(
            pin, (random.uniform(20.0, 23.0), random.uniform(45.0, 55.0))
        )
        temperature = _random_walk(temperature, drift=0.15, min_val=15.0, max_val=30.0)
        humidity = _random_walk(humidity, drift=0.3, min_val=30.0, max_val=70.0)
        self._state[pin] = (temperature, humidity)
        return SensorValues(round(temperature, 1), round(humidity, 1))

    def close(self) -> None:
        """No-op for mock reader."""
