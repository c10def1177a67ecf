"""Unit tests for the API client."""

import io
import json
from unittest.mock import patch
from urllib.parse import parse_qs

import httpx
import pytest

from pydbx.api import DbxClient
from pydbx.exceptions import (
    DbxAPIError,
    DbxAuthenticationError,
    DbxConfigError,
    DbxDownloadError,
    DbxNetworkError,
    DbxNotFoundError,
    DbxPermissionError,
    DbxRateLimitError,
    DbxUploadError,
)

API = "https://api.test/1"
CONTENT = "https://content.test/1"


def make_client(handler, **kwargs):
    """Build a client whose requests are answered by ``handler``."""
    return DbxClient(
        access_token="test_token",
        api_url=API,
        content_url=CONTENT,
        root="auto",
        retry_delay=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def form(request: httpx.Request) -> dict:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


class TestDbxClient:
    """Tests for DbxClient initialization."""

    def test_init_with_token(self):
        client = DbxClient(access_token="tok", api_url=API + "/")
        assert client.access_token == "tok"
        assert client.api_url == API

    def test_init_without_token_raises_error(self):
        """Test that a missing token is a configuration error."""
        with patch("pydbx.api.config") as mock_config:
            mock_config.access_token = None
            with pytest.raises(DbxConfigError, match="Access token not configured"):
                DbxClient(access_token=None)

    def test_authorization_header(self):
        """Test that the bearer token is sent with every request."""
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"path": "/", "is_dir": True})

        make_client(handler).metadata("/")
        assert seen["auth"] == "Bearer test_token"

    def test_context_manager_closes(self):
        client = make_client(lambda r: httpx.Response(200, json={"path": "/"}))
        with client:
            client.metadata("/")
            assert client._client is not None
        assert client._client is None


class TestMetadata:
    """Tests for metadata and list."""

    def test_metadata_request(self):
        """Test the metadata URL and parameters."""
        seen = {}

        def handler(request):
            seen["url"] = request.url
            return httpx.Response(
                200, json={"path": "/Photos", "is_dir": True, "rev": "1"}
            )

        entry = make_client(handler).metadata("/photos")

        assert seen["url"].path == "/1/metadata/auto/photos"
        assert seen["url"].params["list"] == "false"
        assert seen["url"].params["include_deleted"] == "true"
        assert entry.path == "/Photos"
        assert entry.is_dir

    def test_path_is_quoted(self):
        seen = {}

        def handler(request):
            seen["raw"] = request.url.raw_path
            return httpx.Response(200, json={"path": "/My Files"})

        make_client(handler).metadata("/My Files")
        assert seen["raw"].startswith(b"/1/metadata/auto/My%20Files")

    def test_list_returns_children(self):
        seen = {}

        def handler(request):
            seen["params"] = request.url.params
            return httpx.Response(
                200,
                json={
                    "path": "/Photos",
                    "is_dir": True,
                    "contents": [{"path": "/Photos/a.jpg", "bytes": 5}],
                },
            )

        listing = make_client(handler).list("/Photos")

        assert seen["params"]["list"] == "true"
        assert seen["params"]["file_limit"] == "25000"
        assert [c.path for c in listing.children] == ["/Photos/a.jpg"]

    def test_not_found(self):
        def handler(request):
            return httpx.Response(404, json={"error": "Path '/x' not found"})

        with pytest.raises(DbxNotFoundError, match="not found"):
            make_client(handler).metadata("/x")

    def test_unauthorized(self):
        def handler(request):
            return httpx.Response(401, json={"error": "Bad token"})

        with pytest.raises(DbxAuthenticationError, match="Bad token"):
            make_client(handler).metadata("/")

    def test_forbidden(self):
        def handler(request):
            return httpx.Response(403, json={})

        with pytest.raises(DbxPermissionError):
            make_client(handler).metadata("/")

    def test_html_reply_is_authentication_error(self):
        def handler(request):
            return httpx.Response(
                200, content=b"<html></html>", headers={"Content-Type": "text/html"}
            )

        with pytest.raises(DbxAuthenticationError, match="HTML"):
            make_client(handler).metadata("/")


class TestRetries:
    """Tests for retry behavior."""

    @patch("pydbx.api.time.sleep")
    def test_metadata_retries_server_errors(self, mock_sleep):
        """Test that a read is retried after a 5xx reply."""
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(500, json={"error": "oops"})
            return httpx.Response(200, json={"path": "/"})

        entry = make_client(handler).metadata("/")

        assert entry.path == "/"
        assert len(calls) == 3
        assert mock_sleep.call_count == 2

    @patch("pydbx.api.time.sleep")
    def test_rate_limit_exhausts_retries(self, mock_sleep):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(429, headers={"Retry-After": "2"})

        with pytest.raises(DbxRateLimitError):
            make_client(handler, max_retries=2).metadata("/")

        assert len(calls) == 3
        mock_sleep.assert_called_with(2.0)

    @patch("pydbx.api.time.sleep")
    def test_network_error_is_retried_then_raised(self, mock_sleep):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(DbxNetworkError, match="Network error"):
            make_client(handler, max_retries=1).metadata("/")
        assert mock_sleep.call_count == 1

    @patch("pydbx.api.time.sleep")
    def test_file_operations_are_not_retried(self, mock_sleep):
        """Test that mutating calls fail on the first 5xx reply."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, json={"error": "oops"})

        with pytest.raises(DbxAPIError, match="status 500: oops"):
            make_client(handler).create_folder("/New")

        assert len(calls) == 1
        mock_sleep.assert_not_called()


class TestFileOperations:
    """Tests for copy, move, create_folder and delete."""

    @pytest.mark.parametrize("method,endpoint", [("copy", "copy"), ("move", "move")])
    def test_copy_and_move(self, method, endpoint):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["form"] = form(request)
            return httpx.Response(200, json={"path": "/b.txt", "bytes": 3})

        entry = getattr(make_client(handler), method)("/a.txt", "/b.txt")

        assert seen["path"] == f"/1/fileops/{endpoint}"
        assert seen["form"] == {
            "root": "auto",
            "from_path": "/a.txt",
            "to_path": "/b.txt",
        }
        assert entry.path == "/b.txt"

    def test_create_folder(self):
        seen = {}

        def handler(request):
            seen["form"] = form(request)
            return httpx.Response(200, json={"path": "/New", "is_dir": True})

        entry = make_client(handler).create_folder("/New")
        assert seen["form"] == {"root": "auto", "path": "/New"}
        assert entry.is_dir

    def test_delete(self):
        def handler(request):
            assert request.url.path == "/1/fileops/delete"
            return httpx.Response(200, json={"path": "/old", "is_deleted": True})

        assert make_client(handler).delete("/old").is_deleted


class TestContentOperations:
    """Tests for get_file, put_file and the chunked upload calls."""

    def test_get_file_streams_content(self):
        """Test that content lands in the sink and metadata is parsed."""
        meta = {"path": "/a.txt", "bytes": 11, "rev": "7"}

        def handler(request):
            assert request.url.host == "content.test"
            assert request.url.path == "/1/files/auto/a.txt"
            return httpx.Response(
                200,
                content=b"hello world",
                headers={"x-dropbox-metadata": json.dumps(meta)},
            )

        sink = io.BytesIO()
        entry = make_client(handler).get_file("/a.txt", sink)

        assert sink.getvalue() == b"hello world"
        assert entry is not None
        assert entry.rev == "7"

    def test_get_file_without_metadata_header(self):
        sink = io.BytesIO()
        client = make_client(lambda r: httpx.Response(200, content=b"x"))
        assert client.get_file("/a.txt", sink) is None

    def test_get_file_not_found(self):
        def handler(request):
            return httpx.Response(404, json={"error": "File not found"})

        with pytest.raises(DbxNotFoundError):
            make_client(handler).get_file("/a.txt", io.BytesIO())

    def test_get_file_server_error(self):
        def handler(request):
            return httpx.Response(500, json={"error": "boom"})

        with pytest.raises(DbxDownloadError, match="boom"):
            make_client(handler).get_file("/a.txt", io.BytesIO())

    def test_put_file(self):
        seen = {}

        def handler(request):
            seen["url"] = request.url
            seen["body"] = request.read()
            return httpx.Response(200, json={"path": "/a.txt", "bytes": 5})

        entry = make_client(handler).put_file("/a.txt", io.BytesIO(b"hello"), size=5)

        assert seen["url"].path == "/1/files_put/auto/a.txt"
        assert seen["url"].params["overwrite"] == "true"
        assert seen["body"] == b"hello"
        assert entry.bytes == 5

    def test_put_file_failure_is_upload_error(self):
        def handler(request):
            return httpx.Response(400, json={"error": "Bad path"})

        with pytest.raises(DbxUploadError, match="Bad path"):
            make_client(handler).put_file("/a.txt", io.BytesIO(b"x"))

    def test_put_file_auth_failure_propagates(self):
        def handler(request):
            return httpx.Response(401, json={"error": "expired"})

        with pytest.raises(DbxAuthenticationError):
            make_client(handler).put_file("/a.txt", io.BytesIO(b"x"))

    def test_chunked_upload_and_commit(self):
        """Test the session parameters of the chunked upload calls."""
        seen = []

        def handler(request):
            seen.append(request)
            if request.url.path == "/1/chunked_upload":
                return httpx.Response(200, json={"upload_id": "U1", "offset": 8})
            return httpx.Response(200, json={"path": "/big.bin", "bytes": 8})

        client = make_client(handler)
        reply = client.chunked_upload(b"12345678")
        entry = client.commit_chunked_upload("/big.bin", "U1")

        assert reply == {"upload_id": "U1", "offset": 8}
        assert seen[0].url.params["offset"] == "0"
        assert "upload_id" not in seen[0].url.params
        assert seen[1].url.path == "/1/commit_chunked_upload/auto/big.bin"
        assert form(seen[1]) == {"upload_id": "U1", "overwrite": "true"}
        assert entry.path == "/big.bin"

    def test_chunked_upload_continues_session(self):
        seen = {}

        def handler(request):
            seen["params"] = request.url.params
            return httpx.Response(200, json={"upload_id": "U1", "offset": 12})

        make_client(handler).chunked_upload(b"abcd", upload_id="U1", offset=8)
        assert seen["params"]["upload_id"] == "U1"
        assert seen["params"]["offset"] == "8"
