"""
Unit: One distributed indexing unit per table partition

Provides IndexerUnit (in-process) and RayIndexerUnit (Ray Actor). A unit reads its
settings from the job configuration at setup, processes every row of its partition,
and at cleanup closes its sink and copies its metrics into its counters.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import ray

from ..errors import ConfigurationError
from ..sinks import DirectWriteSink, DistributedOutputSink, ParquetOutputCollector
from .base import DocumentSink, RowMapper, RowSource
from .config import (
    COLLECTION_PARAM,
    DEFAULT_BATCH_SIZE,
    DEFAULT_INDEX_CLIENT,
    INDEX_CLIENT_CONF_KEY,
    INDEX_CONFIGURATION_CONF_KEY,
    INDEX_DIRECT_WRITE_CONF_KEY,
    INDEX_NAME_CONF_KEY,
    MAPPER_PARAM_PREFIX,
    OUTPUT_DIR_CONF_KEY,
    TABLE_NAME_CONF_KEY,
    WRITER_BATCH_SIZE_CONF_KEY,
    ZK_HOST_PARAM,
    IndexerConf,
    RowReadMode,
    get_bool,
    get_index_connection_params,
    get_int,
)
from .counters import Counters, IndexerCounters
from .metrics import MetricsBridge, UnitMetrics
from .models import Partition, Row, ScanSpec
from .processor import RowProcessor
from .registry import IndexClientRegistry, RowMapperRegistry
from .writer import BufferedDocumentWriter

logger = logging.getLogger(__name__)


def load_indexer_conf(job_conf: dict[str, str]) -> IndexerConf:
    """Parse the indexer configuration from the job configuration.

    The row read mode is forced to NEVER, and mapper parameters from the job
    configuration are merged into the global params.

    Raises:
        ConfigurationError: If a required key is missing or the XML is invalid
    """
    for key in (INDEX_NAME_CONF_KEY, INDEX_CONFIGURATION_CONF_KEY, TABLE_NAME_CONF_KEY):
        if job_conf.get(key) is None:
            raise ConfigurationError(f"No configuration value supplied for {key}")

    indexer_conf = IndexerConf.from_xml(job_conf[INDEX_CONFIGURATION_CONF_KEY])
    if indexer_conf.row_read_mode != RowReadMode.NEVER:
        logger.warning(
            f"Changing row read mode from {indexer_conf.row_read_mode.value} to {RowReadMode.NEVER.value}"
        )
        indexer_conf = indexer_conf.with_row_read_mode(RowReadMode.NEVER)

    for key, value in job_conf.items():
        if key.startswith(MAPPER_PARAM_PREFIX):
            indexer_conf.global_params[key[len(MAPPER_PARAM_PREFIX) :]] = value
    return indexer_conf


def create_mapper(indexer_conf: IndexerConf, metrics: UnitMetrics) -> RowMapper:
    return RowMapperRegistry.create(indexer_conf.mapper, {"indexer_conf": indexer_conf, "metrics": metrics.legacy})


def create_sink(
    job_conf: dict[str, str],
    connection_params: dict[str, str],
    counters: Counters,
    metrics: UnitMetrics,
    part_name: str,
) -> DocumentSink:
    """Select the sink for a unit from the direct-write flag.

    Direct write: a BufferedDocumentWriter over a DirectWriteSink holding a live client.
    Otherwise: a DistributedOutputSink writing into the job's output directory.

    Raises:
        ConfigurationError: If the selected sink is missing required settings
    """
    if get_bool(job_conf, INDEX_DIRECT_WRITE_CONF_KEY):
        if not connection_params.get(ZK_HOST_PARAM):
            raise ConfigurationError(f"No index coordination endpoint defined ({ZK_HOST_PARAM})")
        if not connection_params.get(COLLECTION_PARAM):
            raise ConfigurationError(f"No collection name defined ({COLLECTION_PARAM})")

        client_class = IndexClientRegistry.get(job_conf.get(INDEX_CLIENT_CONF_KEY, DEFAULT_INDEX_CLIENT))
        client = client_class.from_connection_params(connection_params)
        batch_size = get_int(job_conf, WRITER_BATCH_SIZE_CONF_KEY, DEFAULT_BATCH_SIZE)
        return BufferedDocumentWriter(
            DirectWriteSink(client, job_conf[INDEX_NAME_CONF_KEY], registry=metrics.current),
            batch_size=batch_size,
            counters=counters,
        )

    output_dir = job_conf.get(OUTPUT_DIR_CONF_KEY)
    if not output_dir:
        raise ConfigurationError(f"No configuration value supplied for {OUTPUT_DIR_CONF_KEY}")
    return DistributedOutputSink(ParquetOutputCollector(output_dir, part_name), counters)


@dataclass
class UnitResult:
    """What a finished unit reports back to the executor."""

    unit_id: str
    partition: int
    counters: dict[str, dict[str, int]] = field(default_factory=dict)
    duration: float = 0.0


class IndexerUnit:
    """Indexes the rows of one partition.

    Lifecycle: setup() -> map() per row -> cleanup(). run() drives all three and
    guarantees cleanup() once setup() has succeeded.
    """

    def __init__(self, job_conf: dict[str, str], unit_id: str = "unit", progress_log_interval: int = 10000):
        """Initialize indexer unit.

        Args:
            job_conf: Job configuration shared by all units
            unit_id: Unit name (used in logs)
            progress_log_interval: Log progress every N rows
        """
        self.job_conf = dict(job_conf)
        self.unit_id = unit_id
        self.progress_log_interval = progress_log_interval

        self.counters = Counters()
        self.metrics = UnitMetrics()
        self.sink: DocumentSink | None = None
        self.processor: RowProcessor | None = None
        self._bridge = MetricsBridge(self.counters)
        self._last_heartbeat = time.monotonic()

        self.logger = logging.getLogger(f"IndexerUnit.{unit_id}")

    def setup(self):
        """Build the mapper, sink and processor from the job configuration.

        Raises:
            ConfigurationError: Before any row is processed, if configuration is missing
        """
        if self.logger.isEnabledFor(logging.DEBUG):
            dump = "\n".join(f"{k}={v}" for k, v in sorted(self.job_conf.items()))
            self.logger.debug(f"Unit configuration:\n{dump}")

        indexer_conf = load_indexer_conf(self.job_conf)
        connection_params = get_index_connection_params(self.job_conf)

        mapper = create_mapper(indexer_conf, self.metrics)
        self.sink = create_sink(self.job_conf, connection_params, self.counters, self.metrics, self.unit_id)
        self.processor = RowProcessor(mapper, self.sink, self.counters, heartbeat=self.heartbeat)
        self._last_heartbeat = time.monotonic()

    def map(self, row: Row):
        self.processor.process(row)

        rows = self.counters.get(IndexerCounters.INPUT_ROWS)
        if rows % self.progress_log_interval == 0:
            self.logger.info(
                f"Progress: {rows} rows processed, "
                f"{self.counters.get(IndexerCounters.OUTPUT_INDEX_DOCUMENTS)} documents emitted"
            )

    def heartbeat(self):
        self._last_heartbeat = time.monotonic()

    def cleanup(self):
        """Close the sink (final flush) and publish metrics into the counters."""
        try:
            if self.sink is not None:
                self.sink.close()
        finally:
            self._bridge.publish(self.metrics)

    def run(self, source: RowSource, partition: Partition, scan_spec: ScanSpec | None = None) -> UnitResult:
        """Index every row of a partition.

        Returns:
            UnitResult with this unit's counters

        Raises:
            ConfigurationError: If setup fails (no row is read)
            TransmissionError: If the index cluster rejects a batch
        """
        start = time.perf_counter()
        self.setup()
        try:
            for row in source.scan(partition, scan_spec):
                self.map(row)
        finally:
            self.cleanup()

        duration = time.perf_counter() - start
        self.logger.info(
            f"Finished partition {partition.index} in {duration:.2f}s: "
            f"{self.counters.get(IndexerCounters.INPUT_ROWS)} rows, "
            f"{self.counters.get(IndexerCounters.OUTPUT_INDEX_DOCUMENTS)} documents"
        )
        return UnitResult(
            unit_id=self.unit_id,
            partition=partition.index,
            counters=self.counters.to_dict(),
            duration=duration,
        )

    def get_progress(self) -> dict[str, Any]:
        """Rows processed so far and seconds since the last heartbeat."""
        return {
            "unit_id": self.unit_id,
            "rows": self.counters.get(IndexerCounters.INPUT_ROWS),
            "seconds_since_heartbeat": time.monotonic() - self._last_heartbeat,
        }


@ray.remote
class RayIndexerUnit(IndexerUnit):
    """Ray Actor hosting one IndexerUnit.

    Created with max_concurrency > 1 so get_progress() can be answered while run()
    is still executing.
    """

    pass
