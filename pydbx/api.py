"""API client for the remote file store."""

from __future__ import annotations

import json
import random
import time
from typing import IO, Any, Iterator
from urllib.parse import quote

import httpx

from .config import config
from .exceptions import (
    DbxAPIError,
    DbxAuthenticationError,
    DbxConfigError,
    DbxDownloadError,
    DbxInvalidResponseError,
    DbxNetworkError,
    DbxNotFoundError,
    DbxPermissionError,
    DbxRateLimitError,
    DbxUploadError,
)
from .models import FolderListing, RemoteEntry
from .utils import DEFAULT_MAX_RETRIES, DEFAULT_READ_SIZE, DEFAULT_RETRY_DELAY

# Maximum number of children returned by a single listing
FILE_LIMIT = 25000


class DbxClient:
    """Client for the remote store's v1-style REST API.

    Metadata reads are retried on rate limits, 5xx replies and network errors.
    Content transfers and mutating file operations are never retried.
    """

    supports_chunked_upload = True

    def __init__(
        self,
        access_token: str | None = None,
        api_url: str | None = None,
        content_url: str | None = None,
        root: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the API client.

        Args:
            access_token: OAuth2 bearer token (uses config if not provided)
            api_url: Base URL for metadata and file operations
            content_url: Base URL for content transfers
            root: Access root ("auto", "dropbox" or "sandbox")
            max_retries: Maximum retry attempts for metadata reads (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (default: 30.0)
            transport: Optional httpx transport (used by tests)
        """
        self.access_token = access_token or config.access_token
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.content_url = (content_url or config.content_url).rstrip("/")
        self.root = root or config.root
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._transport = transport

        if not self.access_token:
            raise DbxConfigError(
                "Access token not configured. "
                "Please set the PYDBX_ACCESS_TOKEN environment variable."
            )

        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> DbxClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # =========================
    # Request plumbing
    # =========================

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Exponential backoff with +/- 25% jitter."""
        base_delay = self.retry_delay * (2**attempt)
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    @staticmethod
    def _error_text(response: httpx.Response) -> str | None:
        """Extract the server's error message from a reply body."""
        try:
            if response.content:
                error_data = response.json()
                if isinstance(error_data, dict):
                    msg = error_data.get("error") or error_data.get("message")
                    if isinstance(msg, dict):
                        msg = json.dumps(msg)
                    return msg
        except ValueError:
            pass
        return None

    def _handle_http_error(
        self, e: httpx.HTTPStatusError, attempt: int, retry: bool
    ) -> tuple[DbxAPIError, bool]:
        """Map an HTTP error to our exception taxonomy.

        Args:
            e: The HTTP error exception
            attempt: Current attempt number
            retry: Whether the request is eligible for retries at all

        Returns:
            Tuple of (exception to raise, should_retry)
        """
        status_code = e.response.status_code
        server_msg = self._error_text(e.response)

        if status_code == 401:
            raise DbxAuthenticationError(
                server_msg or "Invalid access token or unauthorized access"
            ) from e
        elif status_code == 403:
            raise DbxPermissionError(
                server_msg or "Access forbidden - check your permissions"
            ) from e
        elif status_code == 404:
            raise DbxNotFoundError(server_msg or "Resource not found") from e
        elif status_code in (429, 503):
            error: DbxAPIError = DbxRateLimitError(
                server_msg or "Rate limit exceeded - please try again later"
            )
            return (error, retry and attempt < self.max_retries)
        else:
            error_msg = f"API request failed with status {status_code}"
            if server_msg:
                error_msg = f"{error_msg}: {server_msg}"
            error = DbxAPIError(error_msg)
            should_retry = (
                retry and 500 <= status_code < 600 and attempt < self.max_retries
            )
            return (error, should_retry)

    @staticmethod
    def _parse_json(response: httpx.Response) -> Any:
        content_type = response.headers.get("Content-Type", "")
        if not response.content:
            return {}
        if "json" not in content_type and "javascript" not in content_type:
            if "text/html" in content_type:
                raise DbxAuthenticationError(
                    "Invalid access token - server returned HTML instead of JSON"
                )
            raise DbxInvalidResponseError(f"Unexpected response type: {content_type}")
        try:
            return response.json()
        except ValueError as e:
            raise DbxInvalidResponseError("Invalid JSON response from server") from e

    def _request(
        self,
        method: str,
        endpoint: str,
        base_url: str | None = None,
        retry: bool = True,
        **kwargs: Any,
    ) -> Any:
        """Make an API request.

        Args:
            method: HTTP method
            endpoint: Endpoint path below ``base_url``
            base_url: API or content base URL (default: API)
            retry: Retry on rate limits, 5xx and network errors
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data

        Raises:
            DbxAPIError: If the request fails
        """
        url = f"{base_url or self.api_url}/{endpoint.lstrip('/')}"
        client = self._get_client()
        last_exception: DbxAPIError | None = None

        for attempt in range(self.max_retries + 1):
            try:
                response = client.request(method, url, **kwargs)
                response.raise_for_status()
                return self._parse_json(response)
            except httpx.HTTPStatusError as e:
                error, should_retry = self._handle_http_error(e, attempt, retry)
                last_exception = error
                if should_retry:
                    retry_after = e.response.headers.get("Retry-After")
                    if retry_after and retry_after.isdigit():
                        delay = float(retry_after)
                    else:
                        delay = self._calculate_retry_delay(attempt)
                    time.sleep(delay)
                    continue
                raise error from e
            except httpx.RequestError as e:
                error = DbxNetworkError(f"Network error: {e}")
                last_exception = error
                if retry and attempt < self.max_retries:
                    time.sleep(self._calculate_retry_delay(attempt))
                    continue
                raise error from e

        if last_exception:
            raise last_exception
        raise DbxAPIError("Request failed after all retry attempts")

    def _root_path(self, path: str) -> str:
        """Build the ``{root}{path}`` URL segment."""
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.root}{quote(path)}"

    # =========================
    # Metadata Operations
    # =========================

    def metadata(self, path: str) -> RemoteEntry:
        """Get the metadata of a single node.

        Args:
            path: Remote path

        Returns:
            The node's RemoteEntry, carrying the store's canonical path

        Raises:
            DbxNotFoundError: If the path does not exist
        """
        data = self._request(
            "GET",
            f"/metadata/{self._root_path(path)}",
            params={"list": "false", "include_deleted": "true"},
        )
        return RemoteEntry.from_api_response(data)

    def list(self, path: str) -> FolderListing:
        """List a node and its direct children (soft-deleted ones included).

        Args:
            path: Remote path

        Returns:
            FolderListing for the node
        """
        data = self._request(
            "GET",
            f"/metadata/{self._root_path(path)}",
            params={
                "list": "true",
                "include_deleted": "true",
                "file_limit": FILE_LIMIT,
            },
        )
        return FolderListing.from_api_response(data)

    # =========================
    # File Operations
    # =========================

    def copy(self, from_path: str, to_path: str) -> RemoteEntry:
        """Copy a file or folder; returns the new node's metadata."""
        data = self._request(
            "POST",
            "/fileops/copy",
            retry=False,
            data={"root": self.root, "from_path": from_path, "to_path": to_path},
        )
        return RemoteEntry.from_api_response(data)

    def move(self, from_path: str, to_path: str) -> RemoteEntry:
        """Move a file or folder; returns the moved node's metadata."""
        data = self._request(
            "POST",
            "/fileops/move",
            retry=False,
            data={"root": self.root, "from_path": from_path, "to_path": to_path},
        )
        return RemoteEntry.from_api_response(data)

    def create_folder(self, path: str) -> RemoteEntry:
        """Create a folder (parents are created as needed)."""
        data = self._request(
            "POST",
            "/fileops/create_folder",
            retry=False,
            data={"root": self.root, "path": path},
        )
        return RemoteEntry.from_api_response(data)

    def delete(self, path: str) -> RemoteEntry:
        """Delete a file or folder (folders are removed recursively)."""
        data = self._request(
            "POST",
            "/fileops/delete",
            retry=False,
            data={"root": self.root, "path": path},
        )
        return RemoteEntry.from_api_response(data)

    # =========================
    # Content Operations
    # =========================

    def get_file(self, path: str, sink: IO[bytes]) -> RemoteEntry | None:
        """Stream a remote file's content into ``sink``.

        Args:
            path: Remote file path
            sink: Writable binary file object

        Returns:
            The file's metadata from the reply header, if present

        Raises:
            DbxNotFoundError: If the file does not exist
            DbxDownloadError: If the download fails
        """
        url = f"{self.content_url}/files/{self._root_path(path)}"
        client = self._get_client()

        try:
            with client.stream("GET", url) as response:
                if response.status_code >= 400:
                    response.read()
                    server_msg = self._error_text(response)
                    if response.status_code == 404:
                        raise DbxNotFoundError(server_msg or f"Not found: {path}")
                    if response.status_code == 401:
                        raise DbxAuthenticationError(
                            server_msg or "Invalid access token"
                        )
                    raise DbxDownloadError(
                        f"Download failed with status {response.status_code}"
                        + (f": {server_msg}" if server_msg else "")
                    )
                for chunk in response.iter_bytes(chunk_size=DEFAULT_READ_SIZE):
                    if chunk:
                        sink.write(chunk)
                header = response.headers.get("x-dropbox-metadata")
        except httpx.RequestError as e:
            raise DbxNetworkError(f"Network error during download: {e}") from e

        if header:
            try:
                return RemoteEntry.from_api_response(json.loads(header))
            except ValueError:
                return None
        return None

    @staticmethod
    def _iter_reader(reader: IO[bytes]) -> Iterator[bytes]:
        while True:
            block = reader.read(DEFAULT_READ_SIZE)
            if not block:
                break
            yield block

    def put_file(
        self,
        path: str,
        reader: IO[bytes],
        overwrite: bool = True,
        size: int | None = None,
    ) -> RemoteEntry:
        """Upload a whole file in a single request.

        Args:
            path: Remote destination path
            reader: Readable binary file object
            overwrite: Replace an existing file instead of renaming
            size: Content length, if known

        Returns:
            The uploaded file's metadata

        Raises:
            DbxUploadError: If the upload is rejected
        """
        headers = {"Content-Type": "application/octet-stream"}
        if size is not None:
            headers["Content-Length"] = str(size)
        try:
            data = self._request(
                "PUT",
                f"/files_put/{self._root_path(path)}",
                base_url=self.content_url,
                retry=False,
                params={"overwrite": str(overwrite).lower()},
                content=self._iter_reader(reader),
                headers=headers,
            )
        except (DbxAuthenticationError, DbxUploadError):
            raise
        except DbxAPIError as e:
            raise DbxUploadError(str(e)) from e
        return RemoteEntry.from_api_response(data)

    def chunked_upload(
        self,
        data: bytes,
        upload_id: str | None = None,
        offset: int = 0,
    ) -> dict[str, Any]:
        """Send one chunk of a chunked upload.

        Args:
            data: Chunk content
            upload_id: Session handle (None for the first chunk)
            offset: Bytes already committed to the session

        Returns:
            Dictionary with ``upload_id`` and the new ``offset``
        """
        params: dict[str, Any] = {"offset": offset}
        if upload_id:
            params["upload_id"] = upload_id
        return self._request(
            "PUT",
            "/chunked_upload",
            base_url=self.content_url,
            retry=False,
            params=params,
            content=data,
            headers={"Content-Type": "application/octet-stream"},
        )

    def commit_chunked_upload(
        self, path: str, upload_id: str, overwrite: bool = True
    ) -> RemoteEntry:
        """Finish a chunked upload, storing the session's data at ``path``."""
        data = self._request(
            "POST",
            f"/commit_chunked_upload/{self._root_path(path)}",
            base_url=self.content_url,
            retry=False,
            data={"upload_id": upload_id, "overwrite": str(overwrite).lower()},
        )
        return RemoteEntry.from_api_response(data)
