"""
Field Row Mapper

Maps row columns to document fields using the <field> rules of the indexer
configuration. Values that cannot be converted are dropped and counted; they never
fail the unit.
"""

import logging
from typing import Any

from search_indexer.errors import ConfigurationError
from search_indexer.framework import Document, IndexerConf, MetricsRegistry, Row, RowMapper

logger = logging.getLogger(__name__)

METRIC_GROUP = "search_indexer"
STATIC_FIELD_PREFIX = "field."


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "1", "yes"):
        return True
    if text in ("false", "0", "no"):
        return False
    raise ValueError(f"Not a boolean: {value!r}")


CONVERTERS = {
    "string": str,
    "int": int,
    "long": int,
    "float": float,
    "double": float,
    "boolean": _to_bool,
}


class FieldRowMapper(RowMapper):
    """Column-to-field mapper driven by IndexerConf.fields.

    The row key becomes the document id. Global params named "field.<name>" add a
    constant field to every document.
    """

    def __init__(self, indexer_conf: IndexerConf, metrics: MetricsRegistry | None = None):
        """Initialize field mapper.

        Args:
            indexer_conf: Parsed indexer configuration
            metrics: Registry receiving mapper metrics (a private one if None)

        Raises:
            ConfigurationError: If a field uses an unknown type
        """
        for definition in indexer_conf.fields:
            if definition.type not in CONVERTERS:
                raise ConfigurationError(
                    f"Unknown type '{definition.type}' for field '{definition.name}'. "
                    f"Supported: {list(CONVERTERS.keys())}"
                )

        self.indexer_conf = indexer_conf
        self.static_fields = {
            k[len(STATIC_FIELD_PREFIX) :]: v
            for k, v in indexer_conf.global_params.items()
            if k.startswith(STATIC_FIELD_PREFIX)
        }

        metrics = metrics if metrics is not None else MetricsRegistry()
        self._map_timer = metrics.timer(METRIC_GROUP, "FieldRowMapper", "map time")
        self._documents = metrics.meter(METRIC_GROUP, "FieldRowMapper", "documents")
        self._field_errors = metrics.counter(METRIC_GROUP, "FieldRowMapper", "field conversion errors")
        self._empty_rows = metrics.counter(METRIC_GROUP, "FieldRowMapper", "rows without fields")
        self._fields_per_document = metrics.histogram(METRIC_GROUP, "FieldRowMapper", "fields per document")

    def map(self, row: Row) -> list[Document]:
        with self._map_timer.time():
            fields: dict[str, Any] = {}
            for definition in self.indexer_conf.fields:
                if definition.is_wildcard:
                    prefix = definition.value[:-1]
                    raw = [v for col, v in sorted(row.columns.items()) if col.startswith(prefix)]
                else:
                    raw = row.columns.get(definition.value)
                if raw is None or raw == []:
                    continue

                value = self._convert(raw, definition.type, row.key, definition.name)
                if value is not None:
                    fields[definition.name] = value

            if not fields:
                self._empty_rows.inc()
                return []

            fields.update(self.static_fields)
            self._documents.mark()
            self._fields_per_document.update(len(fields))
            return [Document(id=row.key, fields=fields, id_field=self.indexer_conf.unique_key_field)]

    def _convert(self, raw: Any, type_name: str, row_key: str, field_name: str) -> Any:
        converter = CONVERTERS[type_name]
        values = raw if isinstance(raw, list) else [raw]
        converted = []
        for value in values:
            if isinstance(value, bytes):
                value = value.decode("utf-8", errors="replace")
            try:
                converted.append(converter(value))
            except (TypeError, ValueError) as e:
                self._field_errors.inc()
                logger.debug(f"Dropping value of field {field_name} in row {row_key}: {e}")

        if not converted:
            return None
        return converted if isinstance(raw, list) else converted[0]
