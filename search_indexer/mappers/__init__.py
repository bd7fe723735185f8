"""
Row mappers package.

Mappers are automatically registered when this package is imported.
"""

from search_indexer.framework import RowMapperRegistry

from .field_mapper import FieldRowMapper

# Register all mappers with the framework
RowMapperRegistry.register("FieldRowMapper", FieldRowMapper)

__all__ = [
    "FieldRowMapper",
]
