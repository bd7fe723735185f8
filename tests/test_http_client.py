"""
Unit tests for HttpIndexClient

Uses a stub session in place of requests.Session; no network access.
"""

import pytest
import requests

from search_indexer.clients import HttpIndexClient
from search_indexer.errors import ConfigurationError, TransmissionError
from search_indexer.framework import Document, IndexClientRegistry


class StubResponse:
    def __init__(self, status_code: int = 200, text: str = ""):
        self.status_code = status_code
        self.text = text

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)


class StubSession:
    """Records posts and answers with a fixed response or exception."""

    def __init__(self, response: StubResponse | None = None, error: Exception | None = None):
        self.response = response or StubResponse()
        self.error = error
        self.posts = []
        self.closed = False

    def post(self, url, params=None, json=None, timeout=None):
        self.posts.append({"url": url, "params": params, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


class TestHttpIndexClient:
    """Test HttpIndexClient functionality."""

    def test_update_url(self):
        """Test that a scheme is added to a bare endpoint."""
        client = HttpIndexClient("search01:8983/solr/", "web", session=StubSession())
        assert client.update_url == "http://search01:8983/solr/web/update"

        client = HttpIndexClient("https://search01/solr", "web", session=StubSession())
        assert client.update_url == "https://search01/solr/web/update"

    @pytest.mark.parametrize("zk_host,collection", [(None, "web"), ("search01:8983", None), ("", "")])
    def test_requires_endpoint_and_collection(self, zk_host, collection):
        """Test that missing connection settings are rejected."""
        with pytest.raises(ConfigurationError):
            HttpIndexClient(zk_host, collection, session=StubSession())

    def test_add_posts_one_request(self):
        """Test that all documents are sent in a single uncommitted update."""
        session = StubSession()
        client = HttpIndexClient("search01:8983/solr", "web", timeout=5, session=session)

        client.add([Document(id="D1", fields={"title": "one"}), Document(id="D2")])

        assert len(session.posts) == 1
        post = session.posts[0]
        assert post["params"] == {"commit": "false"}
        assert post["json"] == [{"id": "D1", "title": "one"}, {"id": "D2"}]
        assert post["timeout"] == 5.0

    def test_add_nothing(self):
        """Test that an empty add makes no request."""
        session = StubSession()
        HttpIndexClient("search01:8983", "web", session=session).add([])
        assert session.posts == []

    def test_commit_without_waiting(self):
        """Test commit parameters; the collection is never optimized."""
        session = StubSession()
        HttpIndexClient("search01:8983", "web", session=session).commit(wait_flush=False, wait_searcher=False)

        assert session.posts[0]["params"] == {
            "commit": "true",
            "optimize": "false",
            "waitFlush": "false",
            "waitSearcher": "false",
        }

    def test_rejected_request(self):
        """Test that an HTTP error becomes a TransmissionError with the status."""
        session = StubSession(response=StubResponse(503, "overloaded"))
        client = HttpIndexClient("search01:8983", "web", session=session)

        with pytest.raises(TransmissionError) as exc_info:
            client.add([Document(id="D1")])
        assert exc_info.value.status_code == 503
        assert "overloaded" in str(exc_info.value)

    def test_unreachable_cluster(self):
        """Test that a connection failure becomes a TransmissionError."""
        session = StubSession(error=requests.ConnectionError("refused"))
        client = HttpIndexClient("search01:8983", "web", session=session)

        with pytest.raises(TransmissionError, match="unreachable"):
            client.commit()

    def test_from_connection_params(self):
        """Test construction from the job's connection parameters."""
        client = IndexClientRegistry.get("HttpIndexClient").from_connection_params(
            {"index.zk_host": "search01:8983", "index.collection": "web", "index.timeout": "12"}
        )
        assert client.collection == "web"
        assert client.timeout == 12.0
        client.close()

    def test_close(self):
        """Test that close releases the session."""
        session = StubSession()
        HttpIndexClient("search01:8983", "web", session=session).close()
        assert session.closed
