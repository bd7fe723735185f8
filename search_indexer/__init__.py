"""Search Indexer.

Distributed indexing of table rows into a search index with Ray, either writing
straight to a live cluster or through an output directory for an external
shard build/merge stage.
"""

__version__ = "0.1.0"

from search_indexer.framework import (
    BufferedDocumentWriter,
    Executor,
    IndexingOptions,
    PipelineConfig,
    RowProcessor,
)

# Import sources, mappers, clients and builders to register them
from search_indexer import (  # noqa: E402
    builders,  # noqa: F401
    clients,  # noqa: F401
    mappers,  # noqa: F401
    sources,  # noqa: F401
)

__all__ = [
    "__version__",
    "BufferedDocumentWriter",
    "Executor",
    "IndexingOptions",
    "PipelineConfig",
    "RowProcessor",
]
