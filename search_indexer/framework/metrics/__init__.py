"""
Metrics: Per-unit metrics registries and the bridge into job counters
"""

from .bridge import METRICS_COUNTER_GROUP, MetricsBridge
from .registry import Counter, Histogram, Meter, MetricName, MetricsRegistry, Timer, UnitMetrics

__all__ = [
    "METRICS_COUNTER_GROUP",
    "MetricsBridge",
    "MetricsRegistry",
    "MetricName",
    "UnitMetrics",
    "Counter",
    "Meter",
    "Histogram",
    "Timer",
]
