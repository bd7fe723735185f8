"""
Metrics bridge: copies a unit's metrics registries into its job counters

Runs once at unit teardown. The result is a point-in-time snapshot; nothing is
streamed while the unit is running.
"""

import logging

from ..counters import Counters
from .registry import Counter, Histogram, Meter, MetricsRegistry, Timer, UnitMetrics

logger = logging.getLogger(__name__)

METRICS_COUNTER_GROUP = "Search Indexer Metrics"
NANOS_PER_MILLI = 1_000_000

# Prometheus metric type -> sample suffix carrying the count
_PROMETHEUS_COUNT_SUFFIXES = {
    "counter": "_total",
    "histogram": "_count",
    "summary": "_count",
}


class MetricsBridge:
    """Republishes counter, meter, histogram and timer values as job counters."""

    def __init__(self, counters: Counters, group: str = METRICS_COUNTER_GROUP):
        self.counters = counters
        self.group = group
        self._published = False

    def publish(self, metrics: UnitMetrics):
        """Copy both registries into the counters; later calls do nothing."""
        if self._published:
            logger.debug("Metrics already published for this unit")
            return
        self._published = True

        self.copy_legacy_metrics(metrics.legacy)
        self.copy_prometheus_metrics(metrics.current)

    def copy_legacy_metrics(self, registry: MetricsRegistry):
        for metric_name, metric in registry.metrics():
            counter_name = f"{metric_name.type}: {metric_name.name}"
            if isinstance(metric, Timer):
                value = metric.total_ns // NANOS_PER_MILLI
            elif isinstance(metric, (Counter, Meter, Histogram)):
                value = metric.count
            else:
                continue
            self.counters.increment(counter_name, value, group=self.group)

    def copy_prometheus_metrics(self, registry):
        """Copy counters and histogram/summary observation counts from a CollectorRegistry."""
        for family in registry.collect():
            suffix = _PROMETHEUS_COUNT_SUFFIXES.get(family.type)
            if suffix is None:
                continue
            sample_name = family.name + suffix
            for sample in family.samples:
                if sample.name != sample_name:
                    continue
                counter_name = _labelled_name(family.name, sample.labels)
                self.counters.increment(counter_name, int(sample.value), group=self.group)


def _labelled_name(name: str, labels: dict[str, str]) -> str:
    if not labels:
        return name
    rendered = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
    return f"{name}{{{rendered}}}"
