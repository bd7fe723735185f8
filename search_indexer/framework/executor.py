"""
Executor: Configures, submits and finalizes an indexing job

Provides Executor, which picks the execution mode once per run, runs one indexing
unit per table partition (Ray Actors, or in-process) and then commits to the live
index or hands the output directory to the shard build/merge stage.
"""

import logging
import os
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TextIO

import ray

from ..errors import ConfigurationError, IndexerError, JobFailedError, OutputDirectoryExistsError
from .base import IndexClient, RowSource, ShardBuilder
from .config import (
    INDEX_CLIENT_CONF_KEY,
    INDEX_CONFIGURATION_CONF_KEY,
    INDEX_DIRECT_WRITE_CONF_KEY,
    INDEX_NAME_CONF_KEY,
    MAPPER_PARAM_PREFIX,
    OUTPUT_DIR_CONF_KEY,
    TABLE_NAME_CONF_KEY,
    WRITER_BATCH_SIZE_CONF_KEY,
    ExecutionMode,
    IndexingSpecification,
    PipelineConfig,
    configure_index_connection_params,
)
from .counters import Counters, IndexerCounters
from .dry_run import DryRunEvaluator
from .filesystem import delete_dir, path_exists
from .models import Partition
from .registry import IndexClientRegistry, RowSourceRegistry, ShardBuilderRegistry
from .unit import IndexerUnit, RayIndexerUnit, UnitResult


class PipelineState(str, Enum):
    """Lifecycle of one pipeline run."""

    CONFIGURING = "configuring"
    SUBMITTED = "submitted"
    DIRECT_FINALIZING = "direct_finalizing"
    DISTRIBUTED_FINALIZING = "distributed_finalizing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class JobResult:
    """Outcome of running all units of a job."""

    unit_results: list[UnitResult] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return not self.failures


class Executor:
    """Executor drives one indexing pipeline run from configuration to exit code."""

    def __init__(self, config: PipelineConfig, dry_run_stream: TextIO | None = None):
        """Initialize executor from configuration.

        Args:
            config: Pipeline configuration
            dry_run_stream: Where a dry run prints documents (stdout if None)
        """
        self.config = config
        self.options = config.options
        self.dry_run_stream = dry_run_stream

        self.run_id = uuid.uuid4().hex[:8]
        self.state: PipelineState | None = None
        self.counters = Counters()
        self.job_conf: dict[str, str] = {}
        self.spec: IndexingSpecification | None = None
        self.job_result: JobResult | None = None
        self._ray_started = False

        self.logger = logging.getLogger("Executor")

    def run(self) -> int:
        """Run the pipeline.

        Returns:
            0 on success, 1 on any failure
        """
        start = time.perf_counter()
        try:
            self._transition(PipelineState.CONFIGURING)
            self.configure()
            mode = self.options.execution_mode

            if mode is ExecutionMode.DRY_RUN:
                evaluator = DryRunEvaluator(
                    self.job_conf, self._create_source(), self.options.get_scan_spec(), self.dry_run_stream
                )
                exit_code = evaluator.run()
                self.counters.merge(evaluator.counters)
            else:
                self._log_worker_slots()
                handlers = {
                    ExecutionMode.DIRECT: self._run_direct,
                    ExecutionMode.DISTRIBUTED_OUTPUT: self._run_distributed,
                }
                exit_code = handlers[mode]()
        except IndexerError as e:
            self.logger.error(f"Indexing failed: {e}")
            self._transition(PipelineState.FAILED)
            self._goodbye(start)
            return 1

        self._transition(PipelineState.DONE if exit_code == 0 else PipelineState.FAILED)
        self._goodbye(start)
        return exit_code

    def configure(self):
        """Validate options, resolve the indexing specification and build the job configuration."""
        for key, value in self.config.index_client.params.items():
            self.options.connection_params.setdefault(key, str(value))

        self.options.evaluate()
        self.spec = self.options.get_indexing_specification()
        self.job_conf = self.build_job_configuration(self.spec)

    def build_job_configuration(self, spec: IndexingSpecification) -> dict[str, str]:
        """Per-run parameters every unit reads at setup."""
        mode = self.options.execution_mode
        job_conf = {
            INDEX_CONFIGURATION_CONF_KEY: spec.index_config_xml,
            INDEX_NAME_CONF_KEY: spec.indexer_name,
            TABLE_NAME_CONF_KEY: spec.table_name,
            INDEX_DIRECT_WRITE_CONF_KEY: "true" if mode is ExecutionMode.DIRECT else "false",
            WRITER_BATCH_SIZE_CONF_KEY: str(self.options.batch_size),
            INDEX_CLIENT_CONF_KEY: self.config.index_client.type,
        }
        configure_index_connection_params(job_conf, spec.connection_params)

        if mode is ExecutionMode.DISTRIBUTED_OUTPUT:
            job_conf[OUTPUT_DIR_CONF_KEY] = self.options.output_dir
        for key, value in self.options.mapper_params.items():
            job_conf[MAPPER_PARAM_PREFIX + key] = value
        return job_conf

    def _run_direct(self) -> int:
        source = self._create_source()

        self._transition(PipelineState.SUBMITTED)
        result = self.run_job(source)

        self._transition(PipelineState.DIRECT_FINALIZING)
        if not result.succeeded:
            raise JobFailedError(f"{len(result.failures)} unit(s) failed; not committing", result.failures)

        client = self._create_index_client()
        try:
            self.logger.info(f"Committing collection {self.options.collection}")
            client.commit(wait_flush=False, wait_searcher=False)
        finally:
            client.close()
        return 0

    def _run_distributed(self) -> int:
        shard_builder = self._create_shard_builder()
        source = self._create_source()
        self._prepare_output_dir()

        self._transition(PipelineState.SUBMITTED)
        result = self.run_job(source)

        self._transition(PipelineState.DISTRIBUTED_FINALIZING)
        if not result.succeeded:
            raise JobFailedError(f"{len(result.failures)} unit(s) failed", result.failures)

        exit_code = shard_builder.build(self.options.output_dir, self.options.get_shard_build_params())
        if exit_code != 0:
            self.logger.error(f"Shard build failed with exit code {exit_code}")
            return exit_code

        if self.options.generated_output_dir:
            self.logger.info(f"Deleting generated output directory {self.options.output_dir}")
            if not delete_dir(self.options.output_dir):
                self.logger.warning(f"Could not delete generated output directory {self.options.output_dir}")
        return 0

    def _prepare_output_dir(self):
        output_dir = self.options.output_dir
        if not path_exists(output_dir):
            return

        if not self.options.overwrite_output_dir:
            raise OutputDirectoryExistsError(
                f"Output directory '{output_dir}' already exists. Run with --overwrite-output-dir to "
                "overwrite it, or remove it manually"
            )

        self.logger.info(f"Removing existing output directory {output_dir}")
        if not delete_dir(output_dir):
            raise IndexerError(f"Deleting output directory '{output_dir}' failed")

    def run_job(self, source: RowSource) -> JobResult:
        """Run one unit per partition and merge their counters into the job counters."""
        partitions = source.partitions()
        opts = self.options
        self.logger.info(
            f"Using these parameters: reducers: {opts.reducers}, shards: {opts.shards}, "
            f"fanout: {opts.fanout}, maxSegments: {opts.max_segments}"
        )
        self.logger.info(
            f"Submitting {len(partitions)} unit(s) for table {self.spec.table_name} "
            f"({self.options.execution_mode.value} mode)"
        )

        if not partitions:
            self.logger.warning(f"Table {self.spec.table_name} has no partitions; nothing to index")
            result = JobResult()
        elif self.config.executor.use_ray:
            result = self._run_ray_units(source, partitions)
        else:
            result = self._run_local_units(source, partitions)

        for unit_result in result.unit_results:
            self.counters.merge(unit_result.counters)
        for unit_id, cause in result.failures.items():
            self.logger.error(f"Unit {unit_id} failed: {cause}")

        self.job_result = result
        return result

    def _run_local_units(self, source: RowSource, partitions: list[Partition]) -> JobResult:
        """Run units one after another in this process; the first failure fails the job.

        Any exception raised by a unit is recorded as that unit's failure.
        """
        result = JobResult()
        scan_spec = self.options.get_scan_spec()
        for partition in partitions:
            unit = IndexerUnit(self.job_conf, partition.name, self.config.executor.progress_log_interval)
            try:
                result.unit_results.append(unit.run(source, partition, scan_spec))
            except Exception as e:
                result.failures[partition.name] = f"{type(e).__name__}: {e}"
                break
        return result

    def _run_ray_units(self, source: RowSource, partitions: list[Partition]) -> JobResult:
        """Run one Ray Actor per partition and wait for all of them.

        Polls units while waiting; a unit without a heartbeat for unit_timeout_s is
        killed and counted as failed. Any failure kills the remaining units.
        """
        self._ensure_ray()
        cfg = self.config.executor
        scan_spec = self.options.get_scan_spec()

        pending = {}  # ObjectRef -> (partition, actor)
        for partition in partitions:
            unit = RayIndexerUnit.options(
                name=f"search_indexer_{self.run_id}_{partition.name}",
                num_cpus=cfg.unit_num_cpus,
                max_restarts=cfg.max_restarts,
                max_task_retries=cfg.max_task_retries,
                max_concurrency=2,
            ).remote(self.job_conf, partition.name, cfg.progress_log_interval)
            pending[unit.run.remote(source, partition, scan_spec)] = (partition, unit)

        result = JobResult()
        while pending and not result.failures:
            ready, _ = ray.wait(list(pending), num_returns=1, timeout=cfg.poll_interval_s)
            for ref in ready:
                partition, unit = pending.pop(ref)
                try:
                    result.unit_results.append(ray.get(ref))
                except ray.exceptions.RayError as e:
                    result.failures[partition.name] = str(e)
                ray.kill(unit)

            if not ready:
                self._check_liveness(pending, result)

        for partition, unit in pending.values():
            self.logger.info(f"Killing unit {partition.name}")
            ray.kill(unit)
        return result

    def _check_liveness(self, pending: dict, result: JobResult):
        timeout = self.config.executor.unit_timeout_s
        total_rows = 0
        for ref, (partition, unit) in list(pending.items()):
            try:
                progress = ray.get(unit.get_progress.remote(), timeout=self.config.executor.poll_interval_s)
            except (ray.exceptions.GetTimeoutError, ray.exceptions.RayError):
                continue

            total_rows += progress["rows"]
            if timeout is not None and progress["seconds_since_heartbeat"] > timeout:
                self.logger.error(f"Unit {partition.name} reported no progress for {timeout}s; killing it")
                ray.kill(unit)
                del pending[ref]
                result.failures[partition.name] = f"no progress for {timeout}s"

        self.logger.info(
            f"Progress: {len(result.unit_results)} unit(s) done, {len(pending)} running, "
            f"{total_rows} rows in running units"
        )

    def _ensure_ray(self):
        if ray.is_initialized():
            return
        # In distributed clusters, Ray is already initialized.
        if self.config.executor.num_cpus is not None:
            ray.init(num_cpus=self.config.executor.num_cpus, ignore_reinit_error=True)
        else:
            ray.init(ignore_reinit_error=True)
        self._ray_started = True

    def _log_worker_slots(self):
        if self.config.executor.use_ray:
            self._ensure_ray()
            slots = int(ray.cluster_resources().get("CPU", 0))
        else:
            slots = os.cpu_count() or 1
        self.logger.info(f"Cluster reports {slots} worker slots")

    def _create_source(self) -> RowSource:
        params = dict(self.config.source.params)
        params.setdefault("table_name", self.spec.table_name)
        return RowSourceRegistry.create(self.config.source.type, params)

    def _create_index_client(self) -> IndexClient:
        client_class = IndexClientRegistry.get(self.config.index_client.type)
        return client_class.from_connection_params(self.spec.connection_params)

    def _create_shard_builder(self) -> ShardBuilder:
        if self.config.shard_builder is None:
            raise ConfigurationError("Distributed-output mode requires a 'shard_builder' configuration")
        return ShardBuilderRegistry.create(self.config.shard_builder.type, self.config.shard_builder.params)

    def _transition(self, state: PipelineState):
        self.logger.debug(f"State {self.state.value if self.state else 'init'} -> {state.value}")
        self.state = state

    def _goodbye(self, start: float):
        elapsed = time.perf_counter() - start
        self.logger.info(
            f"Indexing {self.state.value} in {elapsed:.2f} secs: "
            f"{self.counters.get(IndexerCounters.INPUT_ROWS)} rows, "
            f"{self.counters.get(IndexerCounters.OUTPUT_INDEX_DOCUMENTS)} documents"
        )

    def shutdown(self):
        """Shutdown Ray if this executor started it."""
        if self._ray_started and ray.is_initialized():
            ray.shutdown()
            self._ray_started = False
