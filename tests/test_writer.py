"""
Unit tests for the buffered document writer

Tests batching, counters, close semantics and error propagation.
"""

import pytest

from search_indexer.errors import TransmissionError
from search_indexer.framework import BufferedDocumentWriter, Counters, Document, IndexerCounters

from .fakes import RecordingSink


def _docs(n: int) -> list[Document]:
    return [Document(id=f"D{i}", fields={"title": f"doc {i}"}) for i in range(1, n + 1)]


class TestBufferedDocumentWriter:
    """Test BufferedDocumentWriter functionality."""

    def test_rejects_non_positive_batch_size(self):
        """Test that a batch size below 1 is refused."""
        with pytest.raises(ValueError):
            BufferedDocumentWriter(RecordingSink(), batch_size=0)

    def test_batches_in_submission_order(self):
        """Test that five documents with capacity 2 go out as {D1,D2},{D3,D4},{D5}."""
        sink = RecordingSink()
        counters = Counters()
        writer = BufferedDocumentWriter(sink, batch_size=2, counters=counters)

        for doc in _docs(5):
            writer.add(doc)
        assert [[d.id for d in b] for b in sink.batches] == [["D1", "D2"], ["D3", "D4"]]
        assert writer.pending == 1

        writer.close()

        assert [[d.id for d in b] for b in sink.batches] == [["D1", "D2"], ["D3", "D4"], ["D5"]]
        assert counters.get(IndexerCounters.OUTPUT_INDEX_DOCUMENTS) == 5
        assert counters.get(IndexerCounters.OUTPUT_INDEX_DOCUMENT_BATCHES) == 3
        assert sink.close_count == 1

    @pytest.mark.parametrize("count,capacity", [(1, 1), (7, 3), (9, 3), (10, 100)])
    def test_flush_count_is_ceiling(self, count, capacity):
        """Test that N documents produce ceil(N / C) batches and every document once."""
        sink = RecordingSink()
        counters = Counters()
        writer = BufferedDocumentWriter(sink, batch_size=capacity, counters=counters)

        writer.write(_docs(count))
        writer.close()

        expected_batches = -(-count // capacity)
        assert sink.calls == expected_batches
        assert [d.id for d in sink.documents] == [f"D{i}" for i in range(1, count + 1)]
        assert counters.get(IndexerCounters.OUTPUT_INDEX_DOCUMENT_BATCHES) == expected_batches
        assert counters.get(IndexerCounters.OUTPUT_INDEX_DOCUMENTS) == count

    def test_close_without_documents(self):
        """Test that closing an empty writer sends nothing but still closes the sink."""
        sink = RecordingSink()
        counters = Counters()
        writer = BufferedDocumentWriter(sink, batch_size=3, counters=counters)

        writer.close()

        assert sink.calls == 0
        assert sink.close_count == 1
        assert counters.get(IndexerCounters.OUTPUT_INDEX_DOCUMENT_BATCHES) == 0

    def test_flush_of_empty_batch_is_noop(self):
        """Test that flush() with nothing buffered does not call the sink."""
        sink = RecordingSink()
        writer = BufferedDocumentWriter(sink, batch_size=3)
        writer.flush()
        assert sink.calls == 0

    def test_failed_flush_propagates_and_drops_batch(self):
        """Test that a rejected batch raises from add() and is not retried."""
        sink = RecordingSink(fail_on_call=1)
        counters = Counters()
        writer = BufferedDocumentWriter(sink, batch_size=2, counters=counters)

        writer.add(Document(id="D1"))
        with pytest.raises(TransmissionError):
            writer.add(Document(id="D2"))

        assert writer.pending == 0
        assert sink.batches == []
        assert counters.get(IndexerCounters.OUTPUT_INDEX_DOCUMENT_BATCHES) == 1
        assert counters.get(IndexerCounters.OUTPUT_INDEX_DOCUMENTS) == 2

        writer.add(Document(id="D3"))
        writer.close()
        assert [[d.id for d in b] for b in sink.batches] == [["D3"]]

    def test_failed_final_flush_still_closes_sink(self):
        """Test that close() closes the sink even when the final flush fails."""
        sink = RecordingSink(fail_on_call=1)
        writer = BufferedDocumentWriter(sink, batch_size=10)
        writer.add(Document(id="D1"))

        with pytest.raises(TransmissionError):
            writer.close()
        assert sink.close_count == 1

    def test_default_counters(self):
        """Test that a writer without counters keeps its own."""
        writer = BufferedDocumentWriter(RecordingSink(), batch_size=1)
        writer.add(Document(id="D1"))
        assert writer.counters.get(IndexerCounters.OUTPUT_INDEX_DOCUMENTS) == 1
