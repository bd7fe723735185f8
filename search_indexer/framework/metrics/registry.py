"""
In-process metrics registry for indexing units

Counters, meters, histograms and timers grouped by (group, type, name). Timers
record nanoseconds. One registry lives in each unit's UnitMetrics, next to a
Prometheus CollectorRegistry; both are handed to components explicitly.
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field

from prometheus_client import CollectorRegistry


class Counter:
    """Monotonic count."""

    def __init__(self):
        self._count = 0

    def inc(self, n: int = 1):
        self._count += n

    @property
    def count(self) -> int:
        return self._count


class Meter:
    """Counts events and their mean rate since creation."""

    def __init__(self):
        self._count = 0
        self._start = time.monotonic()

    def mark(self, n: int = 1):
        self._count += n

    @property
    def count(self) -> int:
        return self._count

    @property
    def mean_rate(self) -> float:
        elapsed = time.monotonic() - self._start
        return self._count / elapsed if elapsed > 0 else 0.0


class Histogram:
    """Distribution of observed values (count, sum, min, max)."""

    def __init__(self):
        self._count = 0
        self._sum = 0.0
        self._min = float("inf")
        self._max = float("-inf")

    def update(self, value: float):
        self._count += 1
        self._sum += value
        self._min = min(self._min, value)
        self._max = max(self._max, value)

    @property
    def count(self) -> int:
        return self._count

    @property
    def sum(self) -> float:
        return self._sum

    @property
    def min(self) -> float:
        return self._min if self._count else 0.0

    @property
    def max(self) -> float:
        return self._max if self._count else 0.0


class Timer:
    """Accumulates durations in nanoseconds."""

    def __init__(self):
        self._count = 0
        self._total_ns = 0

    def update(self, duration_ns: int):
        self._count += 1
        self._total_ns += duration_ns

    @contextmanager
    def time(self):
        start = time.perf_counter_ns()
        try:
            yield self
        finally:
            self.update(time.perf_counter_ns() - start)

    @property
    def count(self) -> int:
        return self._count

    @property
    def total_ns(self) -> int:
        return self._total_ns


@dataclass(frozen=True, order=True)
class MetricName:
    group: str
    type: str
    name: str


class MetricsRegistry:
    """Get-or-create registry of named metrics."""

    def __init__(self):
        self._metrics: dict[MetricName, object] = {}

    def counter(self, group: str, type: str, name: str) -> Counter:
        return self._get_or_create(MetricName(group, type, name), Counter)

    def meter(self, group: str, type: str, name: str) -> Meter:
        return self._get_or_create(MetricName(group, type, name), Meter)

    def histogram(self, group: str, type: str, name: str) -> Histogram:
        return self._get_or_create(MetricName(group, type, name), Histogram)

    def timer(self, group: str, type: str, name: str) -> Timer:
        return self._get_or_create(MetricName(group, type, name), Timer)

    def metrics(self) -> list[tuple[MetricName, object]]:
        """All registered metrics, sorted by name."""
        return sorted(self._metrics.items(), key=lambda item: item[0])

    def _get_or_create(self, metric_name: MetricName, metric_class: type):
        metric = self._metrics.get(metric_name)
        if metric is None:
            metric = metric_class()
            self._metrics[metric_name] = metric
        elif not isinstance(metric, metric_class):
            raise ValueError(f"Metric {metric_name} is already registered as {type(metric).__name__}")
        return metric

    def __len__(self) -> int:
        return len(self._metrics)


@dataclass
class UnitMetrics:
    """The two metrics registries owned by one distributed unit."""

    legacy: MetricsRegistry = field(default_factory=MetricsRegistry)
    current: CollectorRegistry = field(default_factory=CollectorRegistry)
