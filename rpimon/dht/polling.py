"""Sample the DHT22 sensors on a fixed interval and forward the readings.

Every tick samples all registered sensors, then posts the successful
readings to the metrics backend in one request. Sensor faults and delivery
failures are logged and never stop the loop; only startup errors (invalid
sensor list, GPIO unavailable) prevent the service from running.
"""

from typing import override

from rpimon.dht.models import CycleResult, ReporterTarget
from rpimon.dht.registry import load_sensors
from rpimon.dht.reporter import DryRunReporter, GraphiteReporter, MetricsReporter
from rpimon.dht.sampling import SamplingCycle
from rpimon.dht.sensor import create_reader
from rpimon.lib.config import Settings
from rpimon.lib.exceptions import ConfigError, DeliveryError
from rpimon.lib.polling import PollingService
from rpimon.logging import get_logger

logger = get_logger("dht.polling")


class ForwarderService(PollingService[CycleResult]):
    """Polling service forwarding DHT22 readings to Graphite."""

    def __init__(
        self,
        cycle: SamplingCycle,
        reporter: MetricsReporter,
        *,
        frequency_sec: float | None = None,
        shutdown_grace_sec: float | None = None,
    ) -> None:
        super().__init__(
            name="DHT22",
            frequency_sec=frequency_sec,
            shutdown_grace_sec=shutdown_grace_sec,
        )
        self._cycle = cycle
        self._reporter = reporter

    @override
    async def initialize(self) -> None:
        logger.info(
            "Forwarding %d sensor(s) with %s",
            len(self._cycle.sensors),
            type(self._reporter).__name__,
        )

    @override
    async def cleanup(self) -> None:
        """Release the GPIO pins held by the sensor reader."""
        self._cycle.reader.close()

    @override
    async def poll(self) -> CycleResult:
        """Sample every sensor once."""
        result = await self._cycle.run_once()
        logger.info(
            "Tick: %d/%d sensor(s) read",
            len(result.readings),
            len(self._cycle.sensors),
        )
        return result

    @override
    async def publish(self, data: CycleResult) -> None:
        """Report the readings of the tick, dropping them on failure."""
        try:
            await self._reporter.report(data.readings)
        except DeliveryError as e:
            logger.warning(
                "Dropping %d reading(s) from this tick: %s",
                len(data.readings),
                e,
            )

    @override
    def on_poll_error(self, error: BaseException) -> None:
        logger.error("Unexpected error during tick: %s", error, exc_info=error)


def create_reporter(settings: Settings, debug: bool = False) -> MetricsReporter:
    """Create the reporter, or a dry-run one in debug mode."""
    if debug:
        return DryRunReporter(metric_prefix=settings.reporting.metric_prefix)
    cfg = settings.reporting
    if not cfg.endpoint or not cfg.api_key.get_secret_value():
        raise ConfigError(
            "An endpoint (--endpoint or GRAPHITE_ENDPOINT) and an API key "
            "(--api-key or GRAFANA_API_KEY) are required unless --debug is set"
        )
    target = ReporterTarget(endpoint=cfg.endpoint, credential=cfg.api_key)
    return GraphiteReporter(
        target,
        timeout_sec=cfg.timeout_sec,
        payload_format=cfg.payload_format,
        metric_prefix=cfg.metric_prefix,
        interval_sec=settings.polling.frequency_sec,
    )


def create_service(settings: Settings, debug: bool = False) -> ForwarderService:
    """Build the service from settings.

    Raises:
        ConfigError: If the sensor list is invalid or a tick cannot fit in
            the refresh interval.
        HardwareUnavailableError: If the GPIO driver cannot be loaded.
    """
    settings.check_schedule()
    sensors = load_sensors(settings.sensors_config_path)
    reporter = create_reporter(settings, debug)
    sampling = settings.sampling
    cycle = SamplingCycle(
        create_reader(settings),
        sensors,
        attempts=sampling.attempts,
        retry_delay_sec=sampling.retry_delay_sec,
        read_timeout_sec=sampling.read_timeout_sec,
        max_concurrency=sampling.max_concurrency,
        offline_after_ticks=sampling.offline_after_ticks,
    )
    return ForwarderService(
        cycle,
        reporter,
        frequency_sec=settings.polling.frequency_sec,
        shutdown_grace_sec=settings.polling.shutdown_grace_sec,
    )


def serve(settings: Settings, debug: bool = False) -> None:
    """Run the forwarding loop until SIGTERM or SIGINT."""
    service = create_service(settings, debug)
    service.run()
