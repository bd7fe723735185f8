"""
Models: Rows, documents and partitions passed between pipeline components
"""

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Row:
    """One record scanned from the table store.

    Attributes:
        key: Row key
        columns: Column values keyed by "family:qualifier"
    """

    key: str
    columns: dict[str, Any] = field(default_factory=dict)

    def get(self, column: str, default: Any = None) -> Any:
        return self.columns.get(column, default)


@dataclass(frozen=True)
class Document:
    """Search-index-ready document produced from a row.

    Attributes:
        id: Stable document identifier
        fields: Field values (a field may hold a single value or a list)
        id_field: Name of the unique key field in the index
    """

    id: str
    fields: dict[str, Any] = field(default_factory=dict)
    id_field: str = "id"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = dict(self.fields)
        data[self.id_field] = self.id
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str, sort_keys=True)


@dataclass(frozen=True)
class ScanSpec:
    """Restricts which rows and columns a source returns.

    Attributes:
        start_row: First row key to include (inclusive)
        end_row: Row key to stop at (exclusive)
        columns: Columns to keep ("family:qualifier"); None keeps all
    """

    start_row: str | None = None
    end_row: str | None = None
    columns: list[str] | None = None

    def includes(self, key: str) -> bool:
        if self.start_row is not None and key < self.start_row:
            return False
        if self.end_row is not None and key >= self.end_row:
            return False
        return True


@dataclass(frozen=True)
class Partition:
    """One independently scannable slice of a table."""

    index: int
    path: str

    @property
    def name(self) -> str:
        return f"part-u-{self.index:05d}"
