"""
Index clients package.

Clients are automatically registered when this package is imported.
"""

from search_indexer.framework import IndexClientRegistry

from .http_client import HttpIndexClient

# Register all clients with the framework
IndexClientRegistry.register("HttpIndexClient", HttpIndexClient)

__all__ = [
    "HttpIndexClient",
]
