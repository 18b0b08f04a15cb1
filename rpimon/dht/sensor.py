"""DHT22 sensor readers.

The sampling cycle talks to hardware through the narrow DHTReader protocol,
so it can be exercised against a fake reader without a Raspberry Pi.
"""

import threading
from types import ModuleType
from typing import Any, Protocol

from rpimon.dht.models import SensorValues
from rpimon.lib.config import Settings, get_settings
from rpimon.lib.exceptions import (
    HardwareUnavailableError,
    SensorHardwareError,
    TransientSensorError,
)
from rpimon.logging import get_logger

logger = get_logger("dht.sensor")


class DHTReader(Protocol):
    """Protocol for DHT sensor reader interface."""

    def read(self, pin: int) -> SensorValues:
        """Read one sample from the sensor on ``pin``.

        Raises:
            TransientSensorError: Checksum or timing failure.
            SensorHardwareError: The pin cannot be used.
        """
        ...

    def close(self) -> None: ...


class AdafruitDHTReader:
    """DHT22 reader backed by the adafruit-circuitpython-dht driver.

    Owns one driver device per pin. Devices are created on first read and
    released by close(), which the owner calls once it stops sampling.
    """

    def __init__(self, use_pulseio: bool = False) -> None:
        self._dht, self._board = self._load_driver()
        self._use_pulseio = use_pulseio
        self._devices: dict[int, Any] = {}
        self._pin_locks: dict[int, threading.Lock] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _load_driver() -> tuple[ModuleType, ModuleType]:
        try:
            import adafruit_dht
            import board
        except (ImportError, NotImplementedError, RuntimeError) as e:
            raise HardwareUnavailableError(
                f"GPIO subsystem unavailable: {e}"
            ) from e
        return adafruit_dht, board

    def _device(self, pin: int) -> tuple[Any, threading.Lock]:
        """Return the driver device for a pin, creating it if needed."""
        with self._lock:
            if pin in self._devices:
                return self._devices[pin], self._pin_locks[pin]

            board_pin = getattr(self._board, f"D{pin}", None)
            if board_pin is None:
                raise SensorHardwareError(f"GPIO{pin} does not exist on this board")
            try:
                device = self._dht.DHT22(board_pin, use_pulseio=self._use_pulseio)
            except (ValueError, OSError, RuntimeError) as e:
                raise SensorHardwareError(f"Cannot claim GPIO{pin}: {e}") from e

            logger.debug("Claimed GPIO%d for DHT22", pin)
            self._devices[pin] = device
            self._pin_locks[pin] = threading.Lock()
            return device, self._pin_locks[pin]

    def read(self, pin: int) -> SensorValues:
        device, pin_lock = self._device(pin)
        # A read abandoned after a timeout may still be running in its thread.
        # Never queue behind it: each stuck pin holds at most one worker thread.
        if not pin_lock.acquire(blocking=False):
            raise TransientSensorError("previous read still in progress")
        try:
            temperature = device.temperature
            humidity = device.humidity
        except RuntimeError as e:
            # DHT library raises RuntimeError for transient sensor issues
            # (e.g., checksum failures, timing issues)
            raise TransientSensorError(str(e)) from e
        except OSError as e:
            raise SensorHardwareError(f"GPIO{pin}: {e}") from e
        finally:
            pin_lock.release()

        if temperature is None or humidity is None:
            raise TransientSensorError("Sensor returned no data")
        return SensorValues(float(temperature), float(humidity))

    def close(self) -> None:
        """Release every claimed pin."""
        with self._lock:
            for pin, device in self._devices.items():
                device.exit()
                logger.debug("Released GPIO%d", pin)
            self._devices.clear()
            self._pin_locks.clear()


def create_reader(settings: Settings | None = None) -> DHTReader:
    """Create reader based on configuration."""
    settings = settings or get_settings()
    if settings.mock_sensors:
        from rpimon.lib.mock import MockDHTReader

        logger.info("Using mock DHT sensors")
        return MockDHTReader(fault_rate=settings.mock_fault_rate)
    return AdafruitDHTReader()
