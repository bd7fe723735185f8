"""
Registry: Component registries for dynamic instantiation

Provides registries for row sources, row mappers, index clients and shard builders.
Component packages register their classes when they are imported.
"""

from typing import Any


class ComponentRegistry:
    """Name -> class registry; each subclass keeps its own table."""

    _components: dict[str, type] = {}
    _kind = "Component"

    @classmethod
    def register(cls, name: str, component_class: type):
        """Register a component class.

        Args:
            name: Component type name (used in config)
            component_class: Class to register
        """
        cls._components[name] = component_class

    @classmethod
    def create(cls, name: str, params: dict[str, Any] | None = None) -> Any:
        """Create a component instance from registry.

        Args:
            name: Component type name
            params: Parameters for component initialization

        Returns:
            Component instance

        Raises:
            ValueError: If name not found in registry
        """
        if name not in cls._components:
            raise ValueError(f"{cls._kind} '{name}' not found in registry. Available: {list(cls._components.keys())}")

        params = params or {}
        return cls._components[name](**params)

    @classmethod
    def get(cls, name: str) -> type:
        if name not in cls._components:
            raise ValueError(f"{cls._kind} '{name}' not found in registry. Available: {list(cls._components.keys())}")
        return cls._components[name]

    @classmethod
    def list_names(cls) -> list[str]:
        return list(cls._components.keys())


class RowSourceRegistry(ComponentRegistry):
    """Registry for table scan sources."""

    _components: dict[str, type] = {}
    _kind = "RowSource"


class RowMapperRegistry(ComponentRegistry):
    """Registry for row-to-document mappers."""

    _components: dict[str, type] = {}
    _kind = "RowMapper"


class IndexClientRegistry(ComponentRegistry):
    """Registry for search cluster clients."""

    _components: dict[str, type] = {}
    _kind = "IndexClient"


class ShardBuilderRegistry(ComponentRegistry):
    """Registry for shard build/merge stages."""

    _components: dict[str, type] = {}
    _kind = "ShardBuilder"
