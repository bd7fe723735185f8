"""
Unit tests for ParquetTableSource
"""

from search_indexer.framework import RowSourceRegistry, ScanSpec
from search_indexer.sources import ParquetTableSource


class TestParquetTableSource:
    """Test ParquetTableSource functionality."""

    def test_partitions(self, parquet_table):
        """Test that each Parquet file is one partition, in file name order."""
        source = ParquetTableSource("webtable", str(parquet_table))
        partitions = source.partitions()

        assert [p.index for p in partitions] == [0, 1]
        assert partitions[0].path.endswith("part-0.parquet")
        assert partitions[1].name == "part-u-00001"

    def test_missing_table_has_no_partitions(self, tmp_path):
        """Test that an absent table directory yields no partitions."""
        assert ParquetTableSource("missing", str(tmp_path)).partitions() == []

    def test_scan(self, parquet_table):
        """Test that rows carry the key and drop null columns."""
        source = ParquetTableSource("webtable", str(parquet_table))
        rows = list(source.scan(source.partitions()[0]))

        assert [r.key for r in rows] == ["row-001", "row-002", "row-003"]
        assert rows[0].columns == {"content:title": "First", "stats:inlinks": 1}
        assert rows[2].columns == {"stats:inlinks": 3}

    def test_scan_range(self, parquet_table):
        """Test that the scan spec's row range applies (start inclusive, end exclusive)."""
        source = ParquetTableSource("webtable", str(parquet_table))
        scan_spec = ScanSpec(start_row="row-002", end_row="row-003")
        rows = list(source.scan(source.partitions()[0], scan_spec))
        assert [r.key for r in rows] == ["row-002"]

    def test_scan_columns(self, parquet_table):
        """Test that a column restriction keeps only the requested columns."""
        source = ParquetTableSource("webtable", str(parquet_table), batch_size=1)
        rows = list(source.scan(source.partitions()[1], ScanSpec(columns=["stats:inlinks"])))
        assert [r.columns for r in rows] == [{"stats:inlinks": 4}, {"stats:inlinks": 5}]

    def test_registered(self, parquet_table):
        """Test creation through the registry."""
        source = RowSourceRegistry.create(
            "ParquetTableSource", {"table_name": "webtable", "warehouse_path": str(parquet_table)}
        )
        assert isinstance(source, ParquetTableSource)
