"""
Direct-Write Sink

Sends each batch straight to a live index cluster.
"""

import time

from prometheus_client import CollectorRegistry, Counter, Histogram

from ..framework.base import DocumentSink, IndexClient
from ..framework.models import Document


class DirectWriteSink(DocumentSink):
    """DocumentSink backed by a live IndexClient connection."""

    def __init__(self, client: IndexClient, index_name: str, registry: CollectorRegistry | None = None):
        """Initialize direct-write sink.

        Args:
            client: Connection to the index cluster; closed by close()
            index_name: Indexer name, used as a metrics label
            registry: Prometheus registry receiving write metrics (a private one if None)
        """
        self.client = client
        self.index_name = index_name
        registry = registry if registry is not None else CollectorRegistry()

        self._writes = Counter(
            "sink_writes_total",
            "Batches sent to the index cluster",
            ["index", "outcome"],
            registry=registry,
        )
        self._latency = Histogram(
            "sink_write_latency_seconds",
            "Latency of batch writes to the index cluster",
            ["index"],
            registry=registry,
        )

    def write(self, documents: list[Document]):
        """Send the batch as a single request."""
        if not documents:
            return

        start = time.perf_counter()
        try:
            self.client.add(documents)
        except Exception:
            self._writes.labels(self.index_name, "failure").inc()
            raise
        else:
            self._writes.labels(self.index_name, "success").inc()
        finally:
            self._latency.labels(self.index_name).observe(time.perf_counter() - start)

    def close(self):
        self.client.close()
