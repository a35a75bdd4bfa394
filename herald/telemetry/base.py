"""Base telemetry port protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TelemetryPort(Protocol):
    """Protocol for telemetry backends.

    The robot records:
    - Counters: messages received, listeners executed, catch-all dispatches,
      dispatch errors
    - Timing: duration of one receive cycle
    """

    def incr(self, name: str, value: int = 1, labels: tuple[tuple[str, str], ...] = ()) -> None:
        """Increase a named counter by ``value`` with optional labels.

        Args:
            name: Metric name (e.g., "messages_received")
            value: Amount to increment (default 1)
            labels: Optional label tuples (e.g., (("kind", "text"),))
        """

    def timing(self, name: str, value: float, labels: tuple[tuple[str, str], ...] = ()) -> None:
        """Record timing of an operation in seconds.

        Args:
            name: Metric name (e.g., "receive_duration_seconds")
            value: Duration in seconds
            labels: Optional label tuples
        """
