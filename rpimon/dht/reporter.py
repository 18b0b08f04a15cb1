"""Deliver readings to a Graphite-compatible metrics backend.

Each reading becomes two metrics, ``<label>.temperature`` and
``<label>.humidity``. The default body is the Graphite line protocol::

    livingroom.temperature 21.5 1718452800
    livingroom.humidity 44.0 1718452800

Grafana Cloud's Graphite HTTP API also accepts a JSON list of datapoints,
selected with PAYLOAD_FORMAT=json.

Delivery is best effort: a failed POST raises DeliveryError and the readings
of that tick are dropped, the next tick's fresh readings supersede them.
"""

import asyncio
import json
import urllib.error
import urllib.request
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import Protocol

from rpimon.dht.models import Reading, ReporterTarget
from rpimon.lib.config import PayloadFormat, get_settings
from rpimon.lib.exceptions import DeliveryError
from rpimon.lib.utils import unix_seconds
from rpimon.logging import get_logger

logger = get_logger("dht.reporter")

_CONTENT_TYPES = {
    PayloadFormat.PLAINTEXT: "text/plain; charset=utf-8",
    PayloadFormat.JSON: "application/json",
}


@dataclass(frozen=True, slots=True)
class Datapoint:
    """A Grafana Cloud Graphite datapoint."""

    name: str
    interval: int
    value: float
    time: int


def metric_path(label: str, measure: str, prefix: str = "") -> str:
    path = f"{label}.{measure}"
    return f"{prefix}.{path}" if prefix else path


def format_lines(readings: Sequence[Reading], prefix: str = "") -> str:
    """Serialize readings into newline-delimited Graphite metric lines."""
    lines = [
        f"{metric_path(r.sensor, name, prefix)} {value!r} {unix_seconds(r.timestamp)}"
        for r in readings
        for name, value in r.measures()
    ]
    return "".join(f"{line}\n" for line in lines)


def to_datapoints(
    readings: Sequence[Reading], interval: int, prefix: str = ""
) -> list[Datapoint]:
    """Convert readings into Grafana Cloud Graphite datapoints."""
    return [
        Datapoint(
            name=metric_path(r.sensor, name, prefix),
            interval=interval,
            value=value,
            time=unix_seconds(r.timestamp),
        )
        for r in readings
        for name, value in r.measures()
    ]


def _describe_status(status: int) -> str:
    if status in (401, 403):
        return (
            f"Authentication rejected by metrics backend (HTTP {status}), "
            "check the API key"
        )
    if status == 400:
        return "Metrics backend rejected the payload (HTTP 400)"
    return f"Metrics backend returned HTTP {status}"


class MetricsReporter(Protocol):
    """Protocol for metrics reporter interface."""

    async def report(self, readings: Sequence[Reading]) -> None: ...


class GraphiteReporter:
    """Posts readings to a Graphite HTTP endpoint with bearer authentication."""

    def __init__(
        self,
        target: ReporterTarget,
        *,
        timeout_sec: float | None = None,
        payload_format: PayloadFormat | None = None,
        metric_prefix: str | None = None,
        interval_sec: int | None = None,
    ) -> None:
        settings = get_settings()
        cfg = settings.reporting
        self._target = target
        self._timeout = timeout_sec or cfg.timeout_sec
        self._format = payload_format or cfg.payload_format
        self._prefix = cfg.metric_prefix if metric_prefix is None else metric_prefix
        self._interval = interval_sec or settings.polling.frequency_sec

    def encode(self, readings: Sequence[Reading]) -> bytes:
        """Serialize readings into the request body."""
        if self._format == PayloadFormat.JSON:
            datapoints = to_datapoints(readings, self._interval, self._prefix)
            return json.dumps([asdict(d) for d in datapoints]).encode("utf-8")
        return format_lines(readings, self._prefix).encode("utf-8")

    def _post(self, body: bytes) -> int:
        credential = self._target.credential.get_secret_value()
        req = urllib.request.Request(
            str(self._target.endpoint),
            data=body,
            headers={
                "Content-Type": _CONTENT_TYPES[self._format],
                "Authorization": f"Bearer {credential}",
            },
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:
                return resp.status
        except urllib.error.HTTPError as e:
            raise DeliveryError(_describe_status(e.code), status=e.code) from e
        except urllib.error.URLError as e:
            raise DeliveryError(
                f"Cannot reach metrics backend: {e.reason}"
            ) from e
        except TimeoutError as e:
            raise DeliveryError(
                f"Metrics backend did not answer within {self._timeout}s"
            ) from e
        except OSError as e:
            raise DeliveryError(f"Cannot reach metrics backend: {e}") from e

    async def report(self, readings: Sequence[Reading]) -> None:
        """Deliver one tick's readings.

        Raises:
            DeliveryError: On network failure, timeout, or a non-2xx answer.
        """
        if not readings:
            logger.debug("No readings to report")
            return

        body = self.encode(readings)
        try:
            # Also bounds the wait for a free worker thread
            status = await asyncio.wait_for(
                asyncio.to_thread(self._post, body), timeout=self._timeout
            )
        except TimeoutError as e:
            raise DeliveryError(
                f"Metrics backend did not answer within {self._timeout}s"
            ) from e
        logger.info(
            "Delivered %d metric(s) to %s (HTTP %d)",
            2 * len(readings),
            self._target.endpoint.host,
            status,
        )


class DryRunReporter:
    """Logs the metrics that would be sent, without any network I/O."""

    def __init__(self, metric_prefix: str | None = None) -> None:
        cfg = get_settings().reporting
        self._prefix = cfg.metric_prefix if metric_prefix is None else metric_prefix

    async def report(self, readings: Sequence[Reading]) -> None:
        if not readings:
            logger.info("Debug mode, no readings this tick")
            return
        logger.info(
            "Debug mode, not sending:\n%s",
            format_lines(readings, self._prefix).rstrip("\n"),
        )
