"""
Shared fixtures for the search indexer tests
"""

from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq
import pytest

from .fakes import INDEXER_XML, FakeIndexClient, InMemoryRowSource, RecordingShardBuilder


@pytest.fixture(autouse=True)
def reset_fakes():
    FakeIndexClient.reset()
    RecordingShardBuilder.reset()
    InMemoryRowSource.tables = {}
    yield
    FakeIndexClient.reset()
    RecordingShardBuilder.reset()
    InMemoryRowSource.tables = {}


@pytest.fixture
def indexer_file(tmp_path: Path) -> Path:
    path = tmp_path / "webtable_indexer.xml"
    path.write_text(INDEXER_XML)
    return path


@pytest.fixture
def parquet_table(tmp_path: Path) -> Path:
    """A two-partition 'webtable' table; returns the warehouse directory."""
    table_dir = tmp_path / "warehouse" / "webtable"
    table_dir.mkdir(parents=True)

    pq.write_table(
        pa.table(
            {
                "row_key": ["row-001", "row-002", "row-003"],
                "content:title": ["First", "Second", None],
                "stats:inlinks": [1, 2, 3],
            }
        ),
        table_dir / "part-0.parquet",
    )
    pq.write_table(
        pa.table(
            {
                "row_key": ["row-004", "row-005"],
                "content:title": ["Fourth", "Fifth"],
                "stats:inlinks": [4, 5],
            }
        ),
        table_dir / "part-1.parquet",
    )
    return tmp_path / "warehouse"
