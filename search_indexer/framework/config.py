"""
Configuration Management

Job-configuration keys shared by the executor and the distributed units, the XML
indexer configuration, and the YAML-based pipeline configuration.
"""

import logging
import os
import tempfile
import uuid
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from ..errors import ConfigurationError
from .base import ShardBuildParams
from .models import ScanSpec

logger = logging.getLogger(__name__)

# Keys of the job configuration handed to every distributed unit
INDEX_NAME_CONF_KEY = "search_indexer.indexname"
INDEX_CONFIGURATION_CONF_KEY = "search_indexer.configuration"
INDEX_CONNECTION_PARAMS_CONF_KEY = "search_indexer.index.connectionparams"
INDEX_DIRECT_WRITE_CONF_KEY = "search_indexer.directwrite"
TABLE_NAME_CONF_KEY = "search_indexer.table.name"
WRITER_BATCH_SIZE_CONF_KEY = "search_indexer.writer.batchsize"
OUTPUT_DIR_CONF_KEY = "search_indexer.output.dir"
MAPPER_PARAM_PREFIX = "search_indexer.mapper.param."
INDEX_CLIENT_CONF_KEY = "search_indexer.index.client"

DEFAULT_INDEX_CLIENT = "HttpIndexClient"

DEFAULT_BATCH_SIZE = 100

# Connection parameter names
ZK_HOST_PARAM = "index.zk_host"
COLLECTION_PARAM = "index.collection"

_CONF_KEYVALUE_SEPARATOR = "="
_CONF_VALUE_SEPARATOR = ";"


def configure_index_connection_params(conf: dict[str, str], connection_params: dict[str, str]):
    """Serialize connection parameters into the job configuration as k=v;k=v."""
    conf[INDEX_CONNECTION_PARAMS_CONF_KEY] = _CONF_VALUE_SEPARATOR.join(
        f"{k}{_CONF_KEYVALUE_SEPARATOR}{v}" for k, v in connection_params.items()
    )


def get_index_connection_params(conf: dict[str, str]) -> dict[str, str]:
    """Read connection parameters back from the job configuration.

    Returns:
        Connection parameters, or an empty dict (with a warning) when none are set

    Raises:
        ConfigurationError: If an entry is not a key=value pair
    """
    value = conf.get(INDEX_CONNECTION_PARAMS_CONF_KEY)
    if value is None:
        logger.warning("No connection parameters found in configuration")
        return {}

    params = {}
    for entry in value.split(_CONF_VALUE_SEPARATOR):
        if not entry:
            continue
        key, sep, val = entry.partition(_CONF_KEYVALUE_SEPARATOR)
        if not sep:
            raise ConfigurationError(f"Invalid connection parameter entry '{entry}' (expected key=value)")
        params[key] = val
    return params


def get_bool(conf: dict[str, str], key: str, default: bool = False) -> bool:
    value = conf.get(key)
    if value is None:
        return default
    return value.strip().lower() == "true"


def get_int(conf: dict[str, str], key: str, default: int) -> int:
    value = conf.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"Configuration value for {key} is not an integer: {value!r}") from e


class RowReadMode(str, Enum):
    """Whether the mapper may re-read a row from the table on update."""

    NEVER = "never"
    DYNAMIC = "dynamic"


@dataclass(frozen=True)
class FieldDefinition:
    """One column-to-field mapping rule.

    A value of "family:*" collects every column of the family into one multi-valued field.
    """

    name: str
    value: str
    type: str = "string"

    @property
    def is_wildcard(self) -> bool:
        return self.value.endswith(":*")


@dataclass
class IndexerConf:
    """Indexer configuration parsed from its XML document."""

    table: str | None = None
    mapper: str = "FieldRowMapper"
    unique_key_field: str = "id"
    row_read_mode: RowReadMode = RowReadMode.DYNAMIC
    fields: list[FieldDefinition] = field(default_factory=list)
    global_params: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_xml(cls, xml: str) -> "IndexerConf":
        """Parse an indexer XML document.

        Example:
            <indexer table="webtable" unique-key-field="id">
              <field name="title" value="content:title" type="string"/>
              <param name="language" value="en"/>
            </indexer>

        Raises:
            ConfigurationError: If the document is malformed
        """
        try:
            root = ET.fromstring(xml)
        except ET.ParseError as e:
            raise ConfigurationError(f"Invalid indexer configuration XML: {e}") from e

        if root.tag != "indexer":
            raise ConfigurationError(f"Expected <indexer> root element, got <{root.tag}>")

        try:
            row_read_mode = RowReadMode(root.get("row-read-mode", RowReadMode.DYNAMIC.value).lower())
        except ValueError as e:
            raise ConfigurationError(f"Unknown row-read-mode '{root.get('row-read-mode')}'") from e

        fields = []
        for el in root.findall("field"):
            name, value = el.get("name"), el.get("value")
            if not name or not value:
                raise ConfigurationError("<field> requires both 'name' and 'value' attributes")
            fields.append(FieldDefinition(name=name, value=value, type=el.get("type", "string")))

        global_params = {}
        for el in root.findall("param"):
            if el.get("name") is None:
                raise ConfigurationError("<param> requires a 'name' attribute")
            global_params[el.get("name")] = el.get("value", "")

        return cls(
            table=root.get("table"),
            mapper=root.get("mapper", "FieldRowMapper"),
            unique_key_field=root.get("unique-key-field", "id"),
            row_read_mode=row_read_mode,
            fields=fields,
            global_params=global_params,
        )

    def with_row_read_mode(self, mode: RowReadMode) -> "IndexerConf":
        return replace(self, row_read_mode=mode, global_params=dict(self.global_params))


@dataclass(frozen=True)
class IndexingSpecification:
    """Resolved configuration for one run, shared by every distributed unit."""

    indexer_name: str
    table_name: str
    index_config_xml: str
    connection_params: dict[str, str] = field(default_factory=dict)


class ExecutionMode(str, Enum):
    """How documents reach the search index; chosen once per run."""

    DIRECT = "direct"
    DISTRIBUTED_OUTPUT = "distributed-output"
    DRY_RUN = "dry-run"


@dataclass
class IndexingOptions:
    """Run options for one indexing pipeline run."""

    indexer_file: str | None = None
    indexer_name: str | None = None
    table_name: str | None = None
    connection_params: dict[str, str] = field(default_factory=dict)
    mapper_params: dict[str, str] = field(default_factory=dict)
    dry_run: bool = False
    direct_write: bool = False
    output_dir: str | None = None
    overwrite_output_dir: bool = False
    reducers: int = -1  # -1 lets the shard builder use the cluster's capacity
    shards: int | None = None
    fanout: int | None = None
    max_segments: int = 1
    zk_host: str | None = None
    collection: str | None = None
    batch_size: int = DEFAULT_BATCH_SIZE
    start_row: str | None = None
    end_row: str | None = None
    columns: list[str] | None = None
    tmp_dir: str | None = None
    verbose: bool = False
    generated_output_dir: bool = field(default=False, init=False)

    @property
    def execution_mode(self) -> ExecutionMode:
        if self.dry_run:
            return ExecutionMode.DRY_RUN
        if self.direct_write:
            return ExecutionMode.DIRECT
        return ExecutionMode.DISTRIBUTED_OUTPUT

    def evaluate(self):
        """Validate the options and fill in derived values.

        Generates an output directory for distributed-output runs that did not supply one.

        Raises:
            ConfigurationError: If the options are inconsistent
        """
        if not self.indexer_file:
            raise ConfigurationError("An indexer configuration file is required")
        if self.batch_size < 1:
            raise ConfigurationError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.max_segments < 1:
            raise ConfigurationError(f"max_segments must be >= 1, got {self.max_segments}")
        if self.shards is not None and self.shards < 1:
            raise ConfigurationError(f"shards must be >= 1, got {self.shards}")
        if self.fanout is not None and self.fanout < 2:
            raise ConfigurationError(f"fanout must be >= 2, got {self.fanout}")

        if self.zk_host:
            self.connection_params[ZK_HOST_PARAM] = self.zk_host
        else:
            self.zk_host = self.connection_params.get(ZK_HOST_PARAM)
        if self.collection:
            self.connection_params[COLLECTION_PARAM] = self.collection
        else:
            self.collection = self.connection_params.get(COLLECTION_PARAM)

        mode = self.execution_mode
        if mode is ExecutionMode.DIRECT:
            if not self.zk_host:
                raise ConfigurationError("Direct write requires a coordination endpoint (--zk-host)")
            if not self.collection:
                raise ConfigurationError("Direct write requires a collection name (--collection)")
            if self.output_dir:
                logger.warning(f"Ignoring output directory {self.output_dir} in direct write mode")
        elif mode is ExecutionMode.DISTRIBUTED_OUTPUT and not self.output_dir:
            base = self.tmp_dir or tempfile.gettempdir()
            self.output_dir = os.path.join(base, f"search-indexer-{uuid.uuid4().hex[:12]}")
            self.generated_output_dir = True
            logger.info(f"Using generated output directory {self.output_dir}")

    def get_indexing_specification(self) -> IndexingSpecification:
        """Resolve the indexing specification from the indexer file and overrides.

        Raises:
            ConfigurationError: If the indexer file cannot be read or no table is named
        """
        path = Path(self.indexer_file)
        try:
            xml = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot read indexer configuration {path}: {e}") from e

        indexer_conf = IndexerConf.from_xml(xml)
        table_name = self.table_name or indexer_conf.table
        if not table_name:
            raise ConfigurationError("No table name given and none defined in the indexer configuration")

        return IndexingSpecification(
            indexer_name=self.indexer_name or path.stem,
            table_name=table_name,
            index_config_xml=xml,
            connection_params=dict(self.connection_params),
        )

    def get_scan_spec(self) -> ScanSpec:
        return ScanSpec(start_row=self.start_row, end_row=self.end_row, columns=self.columns)

    def get_shard_build_params(self) -> ShardBuildParams:
        return ShardBuildParams(
            reducers=self.reducers,
            shards=self.shards,
            fanout=self.fanout,
            max_segments=self.max_segments,
        )


@dataclass
class ComponentConfig:
    """Configuration for a pluggable component (source, client, builder)."""

    type: str
    params: dict[str, Any] = field(default_factory=dict)


@dataclass
class ExecutorConfig:
    """Configuration for executor."""

    use_ray: bool = True
    # Only used for local development; in a Ray cluster resources are managed by the cluster.
    num_cpus: int | None = None
    unit_num_cpus: float = 1
    max_restarts: int = 0
    max_task_retries: int = 0
    unit_timeout_s: float | None = 600.0  # no heartbeat for this long fails the unit
    poll_interval_s: float = 5.0
    progress_log_interval: int = 10000


@dataclass
class PipelineConfig:
    """Complete pipeline configuration."""

    options: IndexingOptions
    source: ComponentConfig
    index_client: ComponentConfig = field(default_factory=lambda: ComponentConfig(type="HttpIndexClient"))
    shard_builder: ComponentConfig | None = None
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)

    @classmethod
    def from_yaml(cls, config_path: str) -> "PipelineConfig":
        """Load configuration from YAML file.

        A relative indexer config path is resolved against the YAML file's directory.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            PipelineConfig instance
        """
        with open(config_path) as f:
            config_dict = yaml.safe_load(f) or {}

        config = cls.from_dict(config_dict)

        indexer_file = config.options.indexer_file
        if indexer_file and not os.path.isabs(indexer_file):
            candidate = Path(config_path).parent / indexer_file
            if candidate.exists():
                config.options.indexer_file = str(candidate)
        return config

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "PipelineConfig":
        if "source" not in config_dict:
            raise ConfigurationError("Pipeline configuration requires a 'source' section")

        indexer = config_dict.get("indexer", {})
        options = IndexingOptions(
            indexer_file=indexer.get("config"),
            indexer_name=indexer.get("name"),
            table_name=indexer.get("table"),
            connection_params={str(k): str(v) for k, v in indexer.get("connection_params", {}).items()},
            mapper_params={str(k): str(v) for k, v in indexer.get("mapper_params", {}).items()},
            **config_dict.get("options", {}),
        )

        shard_builder = config_dict.get("shard_builder")
        return cls(
            options=options,
            source=ComponentConfig(**config_dict["source"]),
            index_client=ComponentConfig(**config_dict.get("index_client", {"type": "HttpIndexClient"})),
            shard_builder=ComponentConfig(**shard_builder) if shard_builder else None,
            executor=ExecutorConfig(**config_dict.get("executor", {})),
        )
