"""Command-line interface.

Usage:
    rpimon check --pin 4
    rpimon serve --endpoint URL --api-key TOKEN [--refresh-time 900]
                 [--sensors-config-path sensors.yaml] [--debug]

Every serve option falls back to its environment variable (see
rpimon.lib.config.Settings), so the service can be configured entirely from
a systemd unit or a .env file.
"""

import argparse
import sys
from collections.abc import Sequence

from rpimon.dht.check import run_check
from rpimon.dht.polling import serve
from rpimon.lib.config import DEFAULT_REFRESH_SEC, load_settings
from rpimon.lib.exceptions import ConfigError, HardwareUnavailableError
from rpimon.logging import configure, get_logger

logger = get_logger("cli")

EXIT_OK = 0
EXIT_CHECK_FAILED = 1
EXIT_CONFIG_ERROR = 2
EXIT_HARDWARE_UNAVAILABLE = 3


def _pin(value: str) -> int:
    pin = int(value)
    if pin < 0:
        raise argparse.ArgumentTypeError(f"pin must be non-negative, got {pin}")
    return pin


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rpimon",
        description="RPi temperature monitoring service",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level (env: LOG_LEVEL, default: INFO)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    serve_parser = commands.add_parser(
        "serve",
        help="Sample the sensors on an interval and send the readings to Graphite",
    )
    serve_parser.add_argument(
        "-e",
        "--endpoint",
        help="Metrics API endpoint receiving the POST requests (env: GRAPHITE_ENDPOINT)",
    )
    serve_parser.add_argument(
        "-a",
        "--api-key",
        help="API key authenticating the POST requests (env: GRAFANA_API_KEY)",
    )
    serve_parser.add_argument(
        "-r",
        "--refresh-time",
        type=int,
        help=(
            "How often to sample and send, in seconds "
            f"(env: REFRESH_TIME, default: {DEFAULT_REFRESH_SEC})"
        ),
    )
    serve_parser.add_argument(
        "-s",
        "--sensors-config-path",
        help="Sensor list file (env: SENSORS_CONFIG_PATH, default: sensors.yaml)",
    )
    serve_parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Sample and log the readings without sending them",
    )

    check_parser = commands.add_parser(
        "check",
        help="Read a sensor once (useful for debugging the wiring)",
    )
    check_parser.add_argument(
        "--pin",
        type=_pin,
        required=True,
        help="GPIO pin number the DHT22 sensor is connected to",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, run the command and return the exit code."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(
            log_level=args.log_level,
            graphite_endpoint=getattr(args, "endpoint", None),
            grafana_api_key=getattr(args, "api_key", None),
            refresh_time=getattr(args, "refresh_time", None),
            sensors_config_path=getattr(args, "sensors_config_path", None),
        )
    except ConfigError as e:
        configure()
        logger.error("%s", e)
        return EXIT_CONFIG_ERROR

    configure(settings.log_level)

    try:
        if args.command == "check":
            return run_check(args.pin)
        serve(settings, debug=args.debug)
    except ConfigError as e:
        logger.error("%s", e)
        return EXIT_CONFIG_ERROR
    except HardwareUnavailableError as e:
        logger.error("%s", e)
        return EXIT_HARDWARE_UNAVAILABLE
    return EXIT_OK


def run() -> None:
    """Console script entry point."""
    sys.exit(main())
