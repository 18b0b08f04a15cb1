"""Sample every registered DHT22 sensor once per tick.

DHT22 reads fail routinely (checksum or timing mismatch) and usually succeed
on an immediate retry, so each sensor gets a small attempt budget with a
fixed delay honoring the sensor's 2 second minimum re-read interval. A sensor
that still fails is skipped for the current tick only. Sensors are sampled
concurrently so that one faulty sensor never delays the others.
"""

import asyncio
from collections.abc import Iterable

from rpimon.dht.models import (
    CycleResult,
    FaultKind,
    Reading,
    SampleFault,
    SensorSpec,
    SensorValues,
)
from rpimon.dht.sensor import DHTReader
from rpimon.lib.config import DHT22_BOUNDS, MeasureName, get_settings
from rpimon.lib.exceptions import SensorHardwareError, TransientSensorError
from rpimon.lib.retry import with_retry
from rpimon.lib.utils import utcnow
from rpimon.logging import get_logger

logger = get_logger("dht.sampling")

_RETRYABLE = (TransientSensorError, TimeoutError)


class SamplingCycle:
    """Reads a fixed set of sensors through an owned DHTReader."""

    def __init__(
        self,
        reader: DHTReader,
        sensors: Iterable[SensorSpec],
        *,
        attempts: int | None = None,
        retry_delay_sec: float | None = None,
        read_timeout_sec: float | None = None,
        max_concurrency: int | None = None,
        offline_after_ticks: int | None = None,
    ) -> None:
        cfg = get_settings().sampling
        self._reader = reader
        self._sensors = tuple(sorted(sensors, key=lambda s: s.pin))
        self.attempts = attempts or cfg.attempts
        self.retry_delay_sec = (
            cfg.retry_delay_sec if retry_delay_sec is None else retry_delay_sec
        )
        self.read_timeout_sec = read_timeout_sec or cfg.read_timeout_sec
        self.offline_after_ticks = offline_after_ticks or cfg.offline_after_ticks
        self._semaphore = asyncio.Semaphore(max_concurrency or cfg.max_concurrency)
        self._consecutive_faults: dict[str, int] = {}

    @property
    def sensors(self) -> tuple[SensorSpec, ...]:
        return self._sensors

    @property
    def reader(self) -> DHTReader:
        return self._reader

    def consecutive_faults(self, label: str) -> int:
        """Number of ticks in a row the sensor has failed."""
        return self._consecutive_faults.get(label, 0)

    def _read(self, spec: SensorSpec) -> SensorValues:
        """Read once and reject values the DHT22 cannot produce."""
        values = self._reader.read(spec.pin)
        for name in MeasureName:
            value = getattr(values, name)
            bmin, bmax = DHT22_BOUNDS[name]
            if not bmin <= value <= bmax:
                raise TransientSensorError(
                    f"{name.capitalize()} reading outside bounds of DHT22 "
                    f"sensor: {value}"
                )
        return values

    async def sample(self, spec: SensorSpec) -> Reading | SampleFault:
        """Read a sensor within the attempt budget.

        Never raises for sensor failures: the outcome is either a Reading or
        a SampleFault describing why the sensor is skipped this tick.
        """
        attempts = 0

        def attempt() -> SensorValues:
            nonlocal attempts
            attempts += 1
            return self._read(spec)

        try:
            values = await with_retry(
                attempt,
                name=f"Read {spec.label}",
                logger=logger,
                max_attempts=self.attempts,
                delay_sec=self.retry_delay_sec,
                timeout_sec=self.read_timeout_sec,
                retryable_exceptions=_RETRYABLE,
            )
        except SensorHardwareError as e:
            logger.error("Hardware fault on %s: %s", spec, e)
            return SampleFault(
                spec.label, spec.pin, FaultKind.HARDWARE, str(e), attempts
            )
        except _RETRYABLE as e:
            return SampleFault(
                spec.label,
                spec.pin,
                FaultKind.TRANSIENT,
                str(e) or "read timed out",
                attempts,
            )

        reading = Reading(
            sensor=spec.label,
            temperature=values.temperature,
            humidity=values.humidity,
            timestamp=utcnow(),
        )
        logger.info("Read %s: %s", spec.label, reading)
        return reading

    async def _bounded_sample(self, spec: SensorSpec) -> Reading | SampleFault:
        async with self._semaphore:
            return await self.sample(spec)

    def _record_reading(self, spec: SensorSpec) -> None:
        failed_ticks = self._consecutive_faults.pop(spec.label, 0)
        if failed_ticks >= self.offline_after_ticks:
            logger.info(
                "Sensor %s is back online after %d failed ticks",
                spec,
                failed_ticks,
            )

    def _record_fault(self, fault: SampleFault) -> None:
        failed_ticks = self._consecutive_faults.get(fault.sensor, 0) + 1
        self._consecutive_faults[fault.sensor] = failed_ticks
        if failed_ticks >= self.offline_after_ticks:
            logger.error(
                "Sensor %s offline: failed %d consecutive ticks, last error: %s",
                fault.sensor,
                failed_ticks,
                fault.reason,
            )
        else:
            logger.warning("Skipping %s this tick: %s", fault.sensor, fault)

    async def run_once(self) -> CycleResult:
        """Sample every registered sensor once."""
        result = CycleResult(started_at=utcnow())
        outcomes = await asyncio.gather(
            *(self._bounded_sample(spec) for spec in self._sensors),
            return_exceptions=True,
        )

        for spec, outcome in zip(self._sensors, outcomes, strict=True):
            if isinstance(outcome, Reading):
                result.readings.append(outcome)
                self._record_reading(spec)
                continue

            if isinstance(outcome, SampleFault):
                fault = outcome
            elif isinstance(outcome, Exception):
                logger.error(
                    "Unexpected error sampling %s", spec, exc_info=outcome
                )
                fault = SampleFault(
                    spec.label, spec.pin, FaultKind.HARDWARE, repr(outcome), 0
                )
            else:
                raise outcome
            result.faults.append(fault)
            self._record_fault(fault)

        return result
