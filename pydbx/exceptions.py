"""Exceptions raised by pydbx."""


class DbxAPIError(Exception):
    """Base exception for all pydbx errors."""


class DbxConfigError(DbxAPIError):
    """Raised when the client is missing configuration (e.g. access token)."""


class DbxAuthenticationError(DbxAPIError):
    """Raised when the access token is rejected by the server."""


class DbxPermissionError(DbxAPIError):
    """Raised when the server refuses access to a resource."""


class DbxNotFoundError(DbxAPIError):
    """Raised when a remote path does not exist."""


class DbxRateLimitError(DbxAPIError):
    """Raised when the server asks us to slow down."""


class DbxNetworkError(DbxAPIError):
    """Raised on transport-level failures (DNS, connection reset, timeout)."""


class DbxInvalidResponseError(DbxAPIError):
    """Raised when the server reply cannot be interpreted."""


class DbxUploadError(DbxAPIError):
    """Raised when an upload fails. Carries the server's error text."""


class DbxDownloadError(DbxAPIError):
    """Raised when a download fails."""


class DbxFileNotFoundError(DbxAPIError):
    """Raised when a local file to upload does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File not found: {path}")


class DbxNotADirectoryError(DbxAPIError):
    """Raised when a remote path expected to be a directory is a file."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Not a directory: {path}")


class DbxFormatError(DbxAPIError):
    """Raised for an invalid listing format template."""


class SyncUsageError(DbxAPIError):
    """Raised for invalid sync arguments, before any remote call is made."""
