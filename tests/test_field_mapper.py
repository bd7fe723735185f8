"""
Unit tests for FieldRowMapper
"""

import pytest

from search_indexer.errors import ConfigurationError
from search_indexer.framework import IndexerConf, MetricsRegistry, Row
from search_indexer.framework.config import FieldDefinition
from search_indexer.mappers import FieldRowMapper
from search_indexer.mappers.field_mapper import METRIC_GROUP


def _conf(*fields: FieldDefinition, **kwargs) -> IndexerConf:
    return IndexerConf(table="webtable", fields=list(fields), **kwargs)


class TestFieldRowMapper:
    """Test FieldRowMapper functionality."""

    def test_maps_columns_to_fields(self):
        """Test typed conversion of single-valued fields."""
        mapper = FieldRowMapper(
            _conf(
                FieldDefinition("title", "content:title"),
                FieldDefinition("inlinks", "stats:inlinks", "int"),
                FieldDefinition("score", "stats:score", "double"),
                FieldDefinition("live", "stats:live", "boolean"),
            )
        )
        row = Row(
            key="row-1",
            columns={"content:title": b"Hello", "stats:inlinks": "12", "stats:score": "0.5", "stats:live": "yes"},
        )

        documents = mapper.map(row)

        assert len(documents) == 1
        doc = documents[0]
        assert doc.id == "row-1"
        assert doc.fields == {"title": "Hello", "inlinks": 12, "score": 0.5, "live": True}
        assert doc.to_dict()["id"] == "row-1"

    def test_wildcard_collects_family(self):
        """Test that 'family:*' gathers every column of the family in column order."""
        mapper = FieldRowMapper(_conf(FieldDefinition("tags", "tags:*")))
        row = Row(key="row-1", columns={"tags:b": "beta", "tags:a": "alpha", "content:title": "x"})

        assert mapper.map(row)[0].fields == {"tags": ["alpha", "beta"]}

    def test_unique_key_field(self):
        """Test that the configured unique key field names the id."""
        mapper = FieldRowMapper(_conf(FieldDefinition("title", "content:title"), unique_key_field="doc_id"))
        doc = mapper.map(Row(key="row-1", columns={"content:title": "x"}))[0]
        assert doc.to_dict() == {"doc_id": "row-1", "title": "x"}

    def test_static_fields(self):
        """Test that 'field.<name>' params add constant fields."""
        mapper = FieldRowMapper(
            _conf(FieldDefinition("title", "content:title"), global_params={"field.source": "crawl", "other": "x"})
        )
        doc = mapper.map(Row(key="row-1", columns={"content:title": "x"}))[0]
        assert doc.fields == {"title": "x", "source": "crawl"}

    def test_row_without_fields(self):
        """Test that a row with no mapped columns produces no document."""
        metrics = MetricsRegistry()
        mapper = FieldRowMapper(_conf(FieldDefinition("title", "content:title")), metrics=metrics)

        assert mapper.map(Row(key="row-1", columns={"other:x": "1"})) == []
        assert metrics.counter(METRIC_GROUP, "FieldRowMapper", "rows without fields").count == 1

    def test_conversion_error_is_counted_not_raised(self):
        """Test that an unconvertible value is dropped and counted."""
        metrics = MetricsRegistry()
        mapper = FieldRowMapper(
            _conf(FieldDefinition("title", "content:title"), FieldDefinition("inlinks", "stats:inlinks", "int")),
            metrics=metrics,
        )

        documents = mapper.map(Row(key="row-1", columns={"content:title": "x", "stats:inlinks": "many"}))

        assert documents[0].fields == {"title": "x"}
        assert metrics.counter(METRIC_GROUP, "FieldRowMapper", "field conversion errors").count == 1

    def test_records_metrics(self):
        """Test the documents meter, fields histogram and map timer."""
        metrics = MetricsRegistry()
        mapper = FieldRowMapper(_conf(FieldDefinition("title", "content:title")), metrics=metrics)

        mapper.map(Row(key="row-1", columns={"content:title": "x"}))
        mapper.map(Row(key="row-2", columns={"content:title": "y"}))

        assert metrics.meter(METRIC_GROUP, "FieldRowMapper", "documents").count == 2
        assert metrics.histogram(METRIC_GROUP, "FieldRowMapper", "fields per document").sum == 2
        assert metrics.timer(METRIC_GROUP, "FieldRowMapper", "map time").count == 2

    def test_unknown_type(self):
        """Test that an unknown field type fails construction."""
        with pytest.raises(ConfigurationError):
            FieldRowMapper(_conf(FieldDefinition("title", "content:title", "geo")))
