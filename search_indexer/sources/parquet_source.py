"""
Parquet Table Source

Scans a table stored as a directory of Parquet files. Each file is one partition,
so each file gets its own indexing unit.
"""

from collections.abc import Iterator
from typing import Any

import pyarrow.fs as pafs
import pyarrow.parquet as pq

from search_indexer.framework import Partition, Row, RowSource, ScanSpec
from search_indexer.framework.filesystem import resolve_filesystem


class ParquetTableSource(RowSource):
    """RowSource reading rows from Parquet files under {warehouse_path}/{table_name}."""

    def __init__(
        self,
        table_name: str,
        warehouse_path: str,
        key_column: str = "row_key",
        batch_size: int = 1024,
    ):
        """Initialize Parquet table source.

        Args:
            table_name: Table to scan (a sub-directory of the warehouse)
            warehouse_path: Base directory (local path or filesystem URI)
            key_column: Column holding the row key
            batch_size: Rows read per Arrow record batch
        """
        self.table_name = table_name
        self.warehouse_path = warehouse_path.rstrip("/")
        self.key_column = key_column
        self.batch_size = batch_size

    @property
    def table_path(self) -> str:
        return f"{self.warehouse_path}/{self.table_name}"

    def partitions(self) -> list[Partition]:
        filesystem, path = resolve_filesystem(self.table_path)
        infos = filesystem.get_file_info(pafs.FileSelector(path, allow_not_found=True, recursive=False))
        files = sorted(
            info.path for info in infos if info.type == pafs.FileType.File and info.path.endswith(".parquet")
        )
        return [Partition(index=i, path=f) for i, f in enumerate(files)]

    def scan(self, partition: Partition, scan_spec: ScanSpec | None = None) -> Iterator[Row]:
        scan_spec = scan_spec or ScanSpec()
        filesystem, _ = resolve_filesystem(self.table_path)

        columns = None
        if scan_spec.columns is not None:
            columns = [self.key_column] + [c for c in scan_spec.columns if c != self.key_column]

        with filesystem.open_input_file(partition.path) as f:
            parquet_file = pq.ParquetFile(f)
            for batch in parquet_file.iter_batches(batch_size=self.batch_size, columns=columns):
                for record in batch.to_pylist():
                    row = self._to_row(record)
                    if scan_spec.includes(row.key):
                        yield row

    def _to_row(self, record: dict[str, Any]) -> Row:
        key = record.pop(self.key_column)
        if isinstance(key, bytes):
            key = key.decode("utf-8")
        return Row(key=str(key), columns={k: v for k, v in record.items() if v is not None})
