"""
Writer: Buffered, metered document writer

Collects documents into batches and hands each full batch to the wrapped sink in a
single call.
"""

import logging

from .base import DocumentSink
from .counters import Counters, IndexerCounters
from .models import Document

logger = logging.getLogger(__name__)


class BufferedDocumentWriter(DocumentSink):
    """Buffers documents and flushes them to a sink in batches.

    Usage:
        writer = BufferedDocumentWriter(DirectWriteSink(client, "webtable"), batch_size=100)
        for document in documents:
            writer.add(document)
        writer.close()  # final flush, then closes the sink

    Errors raised by the sink propagate to whichever call triggered the flush. The
    writer never retries; a batch that failed is dropped, not re-queued.
    """

    def __init__(self, sink: DocumentSink, batch_size: int = 100, counters: Counters | None = None):
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")

        self.sink = sink
        self.batch_size = batch_size
        self.counters = counters if counters is not None else Counters()
        self._batch: list[Document] = []

    def add(self, document: Document):
        """Append a document, flushing once the batch is full."""
        self._batch.append(document)
        if len(self._batch) >= self.batch_size:
            self.flush()

    def write(self, documents: list[Document]):
        for document in documents:
            self.add(document)

    def flush(self):
        """Transmit the current batch in one sink call.

        Counters are incremented and the batch is cleared whether or not the sink
        accepted it.
        """
        if not self._batch:
            return

        batch = self._batch
        self._batch = []
        try:
            self.sink.write(batch)
        finally:
            self.counters.increment(IndexerCounters.OUTPUT_INDEX_DOCUMENT_BATCHES)
            self.counters.increment(IndexerCounters.OUTPUT_INDEX_DOCUMENTS, len(batch))

    def close(self):
        """Flush the remaining partial batch and close the sink."""
        try:
            self.flush()
        finally:
            self.sink.close()

    @property
    def pending(self) -> int:
        return len(self._batch)
