"""Generic async polling service abstraction.

Provides a reusable base class for services that follow the
poll → publish pattern on a fixed interval.
"""
import asyncio
import signal
from abc import ABC, abstractmethod
from contextlib import suppress

from rpimon.lib.config import get_settings
from rpimon.logging import get_logger


class PollingService[T](ABC):
    """Abstract base class for async polling services.

    Implements the common polling loop pattern with:
    - Configurable polling frequency, scheduled from the start of each tick
    - Strictly sequential ticks
    - Graceful shutdown handling with a bounded grace period
    - Error recovery
    """

    def __init__(
        self,
        name: str,
        frequency_sec: float | None = None,
        shutdown_grace_sec: float | None = None,
    ) -> None:
        """Initialize the polling service.

        Args:
            name: Service name for logging.
            frequency_sec: Polling frequency in seconds.
            shutdown_grace_sec: How long an in-flight tick may keep running
                after a shutdown request before it is cancelled.
        """
        self.name = name
        polling_cfg = get_settings().polling
        self.frequency_sec = frequency_sec or polling_cfg.frequency_sec
        self.shutdown_grace_sec = (
            polling_cfg.shutdown_grace_sec
            if shutdown_grace_sec is None
            else shutdown_grace_sec
        )
        self._stop = asyncio.Event()
        self._logger = get_logger(f"polling.{name}")

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize any resources needed before polling starts.

        Called once at the start of run().
        """

    @abstractmethod
    async def cleanup(self) -> None:
        """Clean up resources before exit.

        Called once when the polling loop exits. Should release hardware,
        close connections, etc.
        """

    @abstractmethod
    async def poll(self) -> T | None:
        """Poll for new data.

        Returns:
            The polled data, or None if there is nothing to publish.
        """

    @abstractmethod
    async def publish(self, data: T) -> None:
        """Publish the polled data.

        Args:
            data: The data returned by poll().
        """

    def on_poll_error(self, error: BaseException) -> None:
        """Handle an error that escaped a tick.

        Override to customize error handling. Default logs the error.
        """
        self._logger.error("%s tick failed: %s", self.name, error, exc_info=error)

    def request_shutdown(self) -> None:
        """Stop the loop after the current tick."""
        self._stop.set()

    def _handle_shutdown(self, signum: int) -> None:
        """Handle shutdown signals gracefully."""
        signal_name = signal.Signals(signum).name
        self._logger.info("Received %s, initiating graceful shutdown...", signal_name)
        self.request_shutdown()

    async def _poll_cycle(self) -> None:
        """Execute a single poll → publish cycle."""
        data = await self.poll()
        if data is not None:
            await self.publish(data)

    async def _run_tick(self) -> None:
        """Run one tick, abandoning it if shutdown outlasts the grace period."""
        tick = asyncio.create_task(self._poll_cycle())
        stop = asyncio.create_task(self._stop.wait())
        try:
            await asyncio.wait({tick, stop}, return_when=asyncio.FIRST_COMPLETED)
            if not tick.done():
                self._logger.info(
                    "Waiting up to %.1fs for the current tick to finish...",
                    self.shutdown_grace_sec,
                )
                await asyncio.wait({tick}, timeout=self.shutdown_grace_sec)
        finally:
            stop.cancel()

        if not tick.done():
            tick.cancel()
            await asyncio.wait({tick})
            self._logger.warning("Abandoned in-flight tick on shutdown")
            return
        if not tick.cancelled() and (error := tick.exception()) is not None:
            self.on_poll_error(error)

    async def _sleep(self, seconds: float) -> None:
        """Sleep, waking up early on a shutdown request."""
        with suppress(TimeoutError):
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)

    async def _run_loop(self) -> None:
        """Run the async polling loop with precise timing."""
        await self.initialize()
        self._logger.info(
            "%s polling service started, interval %gs",
            self.name,
            self.frequency_sec,
        )

        loop = asyncio.get_running_loop()

        try:
            while not self._stop.is_set():
                cycle_start = loop.time()
                await self._run_tick()

                # Sleep only the remaining time to maintain consistent intervals
                elapsed = loop.time() - cycle_start
                sleep_time = self.frequency_sec - elapsed
                if sleep_time > 0:
                    await self._sleep(sleep_time)
                elif not self._stop.is_set():
                    self._logger.warning(
                        "%s tick took %.1fs, longer than the %gs interval",
                        self.name,
                        elapsed,
                        self.frequency_sec,
                    )
        finally:
            self._logger.info("Cleaning up resources...")
            await self.cleanup()
            self._logger.info("%s shutdown complete", self.name)

    async def _main(self) -> None:
        loop = asyncio.get_running_loop()
        signals = (signal.SIGTERM, signal.SIGINT)
        for sig in signals:
            loop.add_signal_handler(sig, self._handle_shutdown, sig)
        try:
            await self._run_loop()
        finally:
            for sig in signals:
                loop.remove_signal_handler(sig)

    def run(self) -> None:
        """Run the polling loop.

        This is the main entry point. It:
        1. Sets up signal handlers for graceful shutdown
        2. Calls initialize()
        3. Enters the polling loop (poll → publish)
        4. Calls cleanup() on exit
        """
        asyncio.run(self._main())
