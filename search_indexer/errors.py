"""
Custom exceptions for the search indexer.

Setup problems, transmission failures and output-location conflicts each get their
own type so the executor can turn them into a logged cause and a non-zero exit code.
"""

import requests


class IndexerError(Exception):
    """Base error for the indexing pipeline."""

    pass


class ConfigurationError(IndexerError):
    """Missing or invalid configuration, raised before any row is processed."""

    pass


class TransmissionError(IndexerError):
    """The index cluster rejected a batch or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class OutputDirectoryExistsError(IndexerError):
    """The output directory already exists and overwriting was not requested."""

    pass


class JobFailedError(IndexerError):
    """One or more distributed units failed."""

    def __init__(self, message: str, failures: dict[str, str] | None = None):
        super().__init__(message)
        self.failures = failures or {}


def map_request_error(e: Exception) -> TransmissionError:
    """Map a requests exception to a TransmissionError."""
    if isinstance(e, requests.HTTPError) and e.response is not None:
        return TransmissionError(
            f"Index cluster rejected request ({e.response.status_code}): {e.response.text[:500]}",
            status_code=e.response.status_code,
        )
    if isinstance(e, requests.Timeout):
        return TransmissionError(f"Index cluster request timed out: {e}")
    if isinstance(e, requests.ConnectionError):
        return TransmissionError(f"Index cluster unreachable: {e}")
    return TransmissionError(str(e))
