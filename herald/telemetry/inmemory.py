"""In-memory telemetry backend for tests and local runs."""

from __future__ import annotations

from collections import Counter, defaultdict, deque
from dataclasses import dataclass, field

DEFAULT_MAX_SAMPLES = 1024


@dataclass
class InMemoryTelemetry:
    """Keeps counters and the most recent timing samples per metric.

    Counters are plain integers.  Timings are held in a ring buffer of
    ``max_samples`` values per metric key, so a long-running robot keeps a
    fixed memory footprint.
    """

    max_samples: int = DEFAULT_MAX_SAMPLES
    counters: dict[str, Counter] = field(default_factory=lambda: defaultdict(Counter))
    timings: dict[str, deque[float]] = field(init=False)

    def __post_init__(self) -> None:
        if self.max_samples < 1:
            raise ValueError("max_samples must be at least 1")
        self.timings = defaultdict(lambda: deque(maxlen=self.max_samples))

    def incr(self, name: str, value: int = 1, labels: tuple[tuple[str, str], ...] = ()) -> None:
        self.counters[_metric_key(name, labels)][name] += value

    def timing(self, name: str, value: float, labels: tuple[tuple[str, str], ...] = ()) -> None:
        self.timings[_metric_key(name, labels)].append(value)

    def get_counter(self, name: str, labels: tuple[tuple[str, str], ...] = ()) -> int:
        return int(self.counters[_metric_key(name, labels)][name])

    def get_timing_values(self, name: str, labels: tuple[tuple[str, str], ...] = ()) -> list[float]:
        """Retained samples for ``name``, oldest first."""
        return list(self.timings[_metric_key(name, labels)])

    def reset(self) -> None:
        self.counters.clear()
        self.timings.clear()


def _metric_key(name: str, labels: tuple[tuple[str, str], ...]) -> str:
    if not labels:
        return name
    return name + "{" + ",".join(f"{k}={v}" for k, v in labels) + "}"
