"""Dispatch counters and timings.

Only an in-memory backend ships with herald; anything implementing
:class:`TelemetryPort` can be passed to the robot.
"""

from herald.telemetry.base import TelemetryPort
from herald.telemetry.inmemory import InMemoryTelemetry

__all__ = [
    "TelemetryPort",
    "InMemoryTelemetry",
]
