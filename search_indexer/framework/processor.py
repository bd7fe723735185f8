"""
Processor: Converts scanned rows into documents for the active sink
"""

from collections.abc import Callable

from .base import DocumentSink, RowMapper
from .counters import Counters, IndexerCounters
from .models import Row


class RowProcessor:
    """Maps each row and hands the resulting documents to a sink.

    Sink errors are not caught here: a rejected batch means the index cluster is
    unreachable or refusing writes, and the unit has to fail.
    """

    def __init__(
        self,
        mapper: RowMapper,
        sink: DocumentSink,
        counters: Counters,
        heartbeat: Callable[[], None] | None = None,
    ):
        """Initialize row processor.

        Args:
            mapper: Row-to-document mapper
            sink: Destination for produced documents
            counters: Unit counters
            heartbeat: Called once per row so the framework knows the unit is alive
        """
        self.mapper = mapper
        self.sink = sink
        self.counters = counters
        self.heartbeat = heartbeat

    def process(self, row: Row) -> int:
        """Process one row.

        Returns:
            Number of documents handed to the sink
        """
        if self.heartbeat is not None:
            self.heartbeat()
        self.counters.increment(IndexerCounters.INPUT_ROWS)

        documents = self.mapper.map(row)
        if documents:
            self.sink.write(documents)
        return len(documents)
