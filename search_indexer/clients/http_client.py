"""
HTTP Index Client

Talks to the index cluster's JSON update endpoint with requests. The coordination
endpoint is the cluster's HTTP address (scheme optional).
"""

import logging
from typing import Any

import requests

from search_indexer.errors import ConfigurationError, map_request_error
from search_indexer.framework import Document, IndexClient
from search_indexer.framework.config import COLLECTION_PARAM, ZK_HOST_PARAM

logger = logging.getLogger(__name__)

TIMEOUT_PARAM = "index.timeout"


class HttpIndexClient(IndexClient):
    """IndexClient posting JSON documents to {endpoint}/{collection}/update."""

    def __init__(
        self,
        zk_host: str,
        collection: str,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ):
        """Initialize HTTP index client.

        Args:
            zk_host: Coordination endpoint of the cluster (e.g. "search01:8983/solr")
            collection: Target collection
            timeout: Request timeout in seconds
            session: Optional requests session (a new one if None)
        """
        if not zk_host:
            raise ConfigurationError("No index coordination endpoint defined")
        if not collection:
            raise ConfigurationError("No collection name defined")

        base_url = zk_host if zk_host.startswith(("http://", "https://")) else f"http://{zk_host}"
        self.base_url = base_url.rstrip("/")
        self.collection = collection
        self.timeout = float(timeout)
        self.session = session or requests.Session()

    @classmethod
    def from_connection_params(cls, connection_params: dict[str, str]) -> "HttpIndexClient":
        return cls(
            zk_host=connection_params.get(ZK_HOST_PARAM),
            collection=connection_params.get(COLLECTION_PARAM),
            timeout=float(connection_params.get(TIMEOUT_PARAM, 30.0)),
        )

    @property
    def update_url(self) -> str:
        return f"{self.base_url}/{self.collection}/update"

    def add(self, documents: list[Document]):
        """Send all documents as one update request.

        Raises:
            TransmissionError: If the cluster rejects the request or cannot be reached
        """
        if not documents:
            return
        self._post(params={"commit": "false"}, payload=[d.to_dict() for d in documents])

    def commit(self, wait_flush: bool = True, wait_searcher: bool = True):
        """Commit pending documents (never optimizes)."""
        self._post(
            params={
                "commit": "true",
                "optimize": "false",
                "waitFlush": str(wait_flush).lower(),
                "waitSearcher": str(wait_searcher).lower(),
            },
            payload=None,
        )

    def _post(self, params: dict[str, str], payload: Any):
        try:
            response = self.session.post(self.update_url, params=params, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise map_request_error(e) from e

    def close(self):
        self.session.close()
