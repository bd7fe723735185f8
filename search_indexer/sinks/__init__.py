"""
Document sinks package.

Direct-write (live cluster), distributed-output (framework output stage) and
dry-run sinks. The active sink is chosen per unit from the execution mode.
"""

from .direct import DirectWriteSink
from .distributed import DistributedOutputSink, ParquetOutputCollector, read_output_documents
from .dry_run import DryRunSink

__all__ = [
    "DirectWriteSink",
    "DistributedOutputSink",
    "ParquetOutputCollector",
    "DryRunSink",
    "read_output_documents",
]
