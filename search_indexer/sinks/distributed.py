"""
Distributed-Output Sink

Hands documents to the batch framework's output stage instead of a live cluster.
Each unit writes one Parquet part file of (id, document) pairs into the output
directory; the external shard build/merge stage reads them from there.
"""

import logging
from typing import Any

import pyarrow as pa
import pyarrow.parquet as pq

from ..framework.base import DocumentSink
from ..framework.counters import Counters, IndexerCounters
from ..framework.filesystem import resolve_filesystem
from ..framework.models import Document

logger = logging.getLogger(__name__)


class ParquetOutputCollector:
    """Output channel of one unit: buffered key/value rows appended to a Parquet part file."""

    SCHEMA = pa.schema(
        [
            ("id", pa.string()),
            ("document", pa.string()),  # JSON string
        ]
    )

    def __init__(self, output_dir: str, part_name: str, buffer_size: int = 1000):
        """Initialize output collector.

        Args:
            output_dir: Output directory (local path or filesystem URI)
            part_name: File name (without extension) of this unit's part file
            buffer_size: Rows buffered before a row group is written
        """
        self.output_dir = output_dir
        self.filesystem, base_path = resolve_filesystem(output_dir)
        self.base_path = base_path.rstrip("/")
        self.path = f"{self.base_path}/{part_name}.parquet"
        self.buffer_size = buffer_size

        self._writer: pq.ParquetWriter | None = None
        self._keys: list[str] = []
        self._values: list[str] = []
        self.records_written = 0

    def collect(self, key: str, document: Document):
        self._keys.append(key)
        self._values.append(document.to_json())
        if len(self._keys) >= self.buffer_size:
            self.flush()

    def flush(self):
        """Write the buffered rows as one row group; a failed write drops them."""
        if not self._keys:
            return

        keys, values = self._keys, self._values
        self._keys = []
        self._values = []

        if self._writer is None:
            self.filesystem.create_dir(self.base_path, recursive=True)
            self._writer = pq.ParquetWriter(
                self.path,
                self.SCHEMA,
                filesystem=self.filesystem,
                compression="snappy",
                use_dictionary=False,
            )

        table = pa.table({"id": keys, "document": values}, schema=self.SCHEMA)
        self._writer.write_table(table)
        self.records_written += len(keys)

    def close(self):
        try:
            self.flush()
        finally:
            if self._writer is not None:
                self._writer.close()
                self._writer = None
        logger.debug(f"Wrote {self.records_written} documents to {self.path}")


class DistributedOutputSink(DocumentSink):
    """DocumentSink emitting (document id, document) pairs into the framework's output channel.

    There is no batching at this layer; the collector buffers on its own.
    """

    def __init__(self, collector: Any, counters: Counters):
        self.collector = collector
        self.counters = counters

    def write(self, documents: list[Document]):
        for document in documents:
            try:
                self.collector.collect(document.id, document)
            finally:
                self.counters.increment(IndexerCounters.OUTPUT_INDEX_DOCUMENTS)

    def close(self):
        self.collector.close()


def read_output_documents(output_dir: str) -> list[dict[str, Any]]:
    """Read every (id, document) row written under an output directory."""
    filesystem, path = resolve_filesystem(output_dir)
    table = pq.read_table(path, filesystem=filesystem)
    return table.to_pylist()
