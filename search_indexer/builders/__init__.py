"""
Shard builders package.

Builders are automatically registered when this package is imported.
"""

from search_indexer.framework import ShardBuilderRegistry

from .command_builder import CommandShardBuilder

# Register all builders with the framework
ShardBuilderRegistry.register("CommandShardBuilder", CommandShardBuilder)

__all__ = [
    "CommandShardBuilder",
]
