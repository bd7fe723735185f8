"""
Indexing Framework: Distributed table-to-search-index pipeline

This package provides the indexing core: buffered writer, row processor, units,
metrics bridge and the executor. All public APIs are exported from this module.
"""

# Base classes
from .base import (
    DocumentSink,
    IndexClient,
    RowMapper,
    RowSource,
    ShardBuilder,
    ShardBuildParams,
)

# Config classes
from .config import (
    ComponentConfig,
    ExecutionMode,
    ExecutorConfig,
    IndexerConf,
    IndexingOptions,
    IndexingSpecification,
    PipelineConfig,
    RowReadMode,
)

# Counters and metrics
from .counters import Counters, IndexerCounters
from .metrics import MetricsBridge, MetricsRegistry, UnitMetrics
from .models import Document, Partition, Row, ScanSpec

# Processing
from .processor import RowProcessor

# Registry classes
from .registry import (
    IndexClientRegistry,
    RowMapperRegistry,
    RowSourceRegistry,
    ShardBuilderRegistry,
)
from .writer import BufferedDocumentWriter

# Units and executor
from .unit import IndexerUnit, RayIndexerUnit, UnitResult
from .dry_run import DryRunEvaluator
from .executor import Executor, JobResult, PipelineState

# Export all public APIs
__all__ = [
    # Base
    "RowSource",
    "RowMapper",
    "DocumentSink",
    "IndexClient",
    "ShardBuilder",
    "ShardBuildParams",
    # Models
    "Row",
    "Document",
    "Partition",
    "ScanSpec",
    # Config
    "ComponentConfig",
    "ExecutionMode",
    "ExecutorConfig",
    "IndexerConf",
    "IndexingOptions",
    "IndexingSpecification",
    "PipelineConfig",
    "RowReadMode",
    # Counters and metrics
    "Counters",
    "IndexerCounters",
    "MetricsBridge",
    "MetricsRegistry",
    "UnitMetrics",
    # Registry
    "RowSourceRegistry",
    "RowMapperRegistry",
    "IndexClientRegistry",
    "ShardBuilderRegistry",
    # Processing
    "BufferedDocumentWriter",
    "RowProcessor",
    "IndexerUnit",
    "RayIndexerUnit",
    "UnitResult",
    "DryRunEvaluator",
    "Executor",
    "JobResult",
    "PipelineState",
]
