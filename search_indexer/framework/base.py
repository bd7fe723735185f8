"""
Base: Abstract base classes for pipeline collaborators

Provides abstract interfaces for row sources, row mappers, document sinks,
index clients and shard builders.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass

from .models import Document, Partition, Row, ScanSpec


class RowSource(ABC):
    """Abstract base class for table scan sources."""

    @abstractmethod
    def partitions(self) -> list[Partition]:
        """List the partitions of the table, one per distributed unit."""
        pass

    @abstractmethod
    def scan(self, partition: Partition, scan_spec: ScanSpec | None = None) -> Iterator[Row]:
        """Scan the rows of one partition.

        Args:
            partition: Partition to scan
            scan_spec: Optional row range and column restriction

        Yields:
            Rows in key order
        """
        pass


class RowMapper(ABC):
    """Abstract base class for row-to-document mapping.

    Document-level problems (a value that cannot be converted, a missing unique key)
    are handled here and recorded in metrics. A mapper never raises for them.
    """

    @abstractmethod
    def map(self, row: Row) -> list[Document]:
        """Convert one row into zero or more documents."""
        pass


class DocumentSink(ABC):
    """Abstract base class for document destinations."""

    @abstractmethod
    def write(self, documents: list[Document]):
        """Hand a batch of documents to the destination.

        Args:
            documents: Documents to transmit, in submission order
        """
        pass

    def close(self):
        """Flush anything pending and release the destination."""
        pass


class IndexClient(ABC):
    """Abstract base class for search cluster clients."""

    @classmethod
    def from_connection_params(cls, connection_params: dict[str, str]) -> "IndexClient":
        """Create a client from free-form index connection parameters."""
        return cls(**connection_params)

    @abstractmethod
    def add(self, documents: list[Document]):
        """Send documents to the cluster in a single request."""
        pass

    @abstractmethod
    def commit(self, wait_flush: bool = True, wait_searcher: bool = True):
        """Make previously added documents visible."""
        pass

    def close(self):
        """Release the connection."""
        pass


@dataclass(frozen=True)
class ShardBuildParams:
    """Parameters handed to the external shard build/merge stage."""

    reducers: int = -1
    shards: int | None = None
    fanout: int | None = None
    max_segments: int = 1


class ShardBuilder(ABC):
    """Abstract base class for the external shard build/merge stage."""

    @abstractmethod
    def build(self, input_dir: str, params: ShardBuildParams) -> int:
        """Build index shards from the documents under input_dir.

        Returns:
            Exit code of the build (0 on success)
        """
        pass
