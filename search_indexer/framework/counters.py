"""
Counters: Job-scoped named accumulators

Each distributed unit owns a Counters instance; the executor merges them into the
job totals once units finish.
"""

from collections import defaultdict
from enum import Enum


class IndexerCounters(str, Enum):
    """Fixed counters maintained by the indexing pipeline."""

    INPUT_ROWS = "input rows"
    OUTPUT_INDEX_DOCUMENTS = "output index documents"
    OUTPUT_INDEX_DOCUMENT_BATCHES = "output index document batches"

    @classmethod
    def group(cls) -> str:
        return cls.__name__


class Counters:
    """Monotonic counters keyed by (group, name)."""

    def __init__(self):
        self._values: dict[tuple[str, str], int] = defaultdict(int)

    def increment(self, name: str | IndexerCounters, amount: int = 1, group: str | None = None):
        """Increment a counter.

        Args:
            name: Counter name, or one of the fixed IndexerCounters
            amount: Non-negative increment
            group: Counter group (defaults to the IndexerCounters group)

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Counters only increase, got {amount} for {name}")
        self._values[self._key(name, group)] += int(amount)

    def get(self, name: str | IndexerCounters, group: str | None = None) -> int:
        return self._values.get(self._key(name, group), 0)

    def merge(self, other: "Counters | dict[str, dict[str, int]]"):
        """Add another unit's counters into this one."""
        values = other.to_dict() if isinstance(other, Counters) else other
        for group, names in values.items():
            for name, value in names.items():
                self._values[(group, name)] += value

    def to_dict(self) -> dict[str, dict[str, int]]:
        """Convert to nested {group: {name: value}} for serialization."""
        result: dict[str, dict[str, int]] = {}
        for (group, name), value in sorted(self._values.items()):
            result.setdefault(group, {})[name] = value
        return result

    @staticmethod
    def _key(name: str | IndexerCounters, group: str | None) -> tuple[str, str]:
        if isinstance(name, IndexerCounters):
            return (group or IndexerCounters.group(), name.value)
        return (group or IndexerCounters.group(), name)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"Counters({self.to_dict()})"
