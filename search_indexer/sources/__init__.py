"""
Row sources package.

Sources are automatically registered when this package is imported.
"""

from search_indexer.framework import RowSourceRegistry

from .parquet_source import ParquetTableSource

# Register all sources with the framework
RowSourceRegistry.register("ParquetTableSource", ParquetTableSource)

__all__ = [
    "ParquetTableSource",
]
