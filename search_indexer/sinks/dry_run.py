"""
Dry-run sink: prints documents instead of indexing them
"""

import sys
from typing import TextIO

from ..framework.base import DocumentSink
from ..framework.models import Document


class DryRunSink(DocumentSink):
    """Writes each document as one JSON line to a text stream."""

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream if stream is not None else sys.stdout
        self.documents_written = 0

    def write(self, documents: list[Document]):
        for document in documents:
            self.stream.write(document.to_json() + "\n")
            self.documents_written += 1

    def close(self):
        self.stream.flush()
