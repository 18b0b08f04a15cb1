"""One-shot sensor check for verifying wiring.

Samples a single pin with the same retry rules as the forwarding service and
prints the outcome, without scheduling or sending anything.
"""

import asyncio
import sys
from contextlib import closing

from rpimon.dht.models import Reading, SampleFault, SensorSpec
from rpimon.dht.sampling import SamplingCycle
from rpimon.dht.sensor import create_reader
from rpimon.lib.config import Unit


async def _sample(pin: int) -> Reading | SampleFault:
    spec = SensorSpec(label=f"pin{pin}", pin=pin)
    with closing(create_reader()) as reader:
        return await SamplingCycle(reader, [spec]).sample(spec)


def check(pin: int) -> Reading | SampleFault:
    """Sample the sensor on ``pin`` once."""
    return asyncio.run(_sample(pin))


def run_check(pin: int) -> int:
    """Sample ``pin``, print the outcome and return the exit code."""
    outcome = check(pin)
    if isinstance(outcome, SampleFault):
        print(f"GPIO{pin}: {outcome.kind} fault: {outcome.reason}", file=sys.stderr)
        return 1
    print(
        f"GPIO{pin}: temperature {outcome.temperature:.1f}{Unit.CELSIUS}, "
        f"humidity {outcome.humidity:.1f}{Unit.PERCENT} "
        f"at {outcome.timestamp.isoformat(timespec='seconds')}"
    )
    return 0
