"""
Dry run: map the table in-process and print documents without indexing them
"""

import logging
import time
from typing import TextIO

from ..sinks import DryRunSink
from .base import RowSource
from .counters import Counters, IndexerCounters
from .metrics import MetricsBridge, UnitMetrics
from .models import ScanSpec
from .processor import RowProcessor
from .unit import create_mapper, load_indexer_conf

logger = logging.getLogger(__name__)


class DryRunEvaluator:
    """Runs the row processor over every partition on the driver, printing documents.

    No job is submitted and nothing is written to an index or output directory.
    """

    def __init__(
        self,
        job_conf: dict[str, str],
        source: RowSource,
        scan_spec: ScanSpec | None = None,
        stream: TextIO | None = None,
    ):
        self.job_conf = job_conf
        self.source = source
        self.scan_spec = scan_spec
        self.stream = stream
        self.counters = Counters()

    def run(self) -> int:
        start = time.perf_counter()
        metrics = UnitMetrics()
        mapper = create_mapper(load_indexer_conf(self.job_conf), metrics)
        sink = DryRunSink(self.stream)
        processor = RowProcessor(mapper, sink, self.counters)

        try:
            for partition in self.source.partitions():
                for row in self.source.scan(partition, self.scan_spec):
                    processor.process(row)
        finally:
            sink.close()
            MetricsBridge(self.counters).publish(metrics)

        self.counters.increment(IndexerCounters.OUTPUT_INDEX_DOCUMENTS, sink.documents_written)
        logger.info(
            f"Dry run completed in {time.perf_counter() - start:.2f} secs: "
            f"{self.counters.get(IndexerCounters.INPUT_ROWS)} rows, {sink.documents_written} documents"
        )
        return 0
