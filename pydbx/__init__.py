"""pydbx - command-line client and tree sync for a Dropbox-style file store."""

from .api import DbxClient
from .exceptions import (
    DbxAPIError,
    DbxAuthenticationError,
    DbxConfigError,
    DbxDownloadError,
    DbxFileNotFoundError,
    DbxFormatError,
    DbxInvalidResponseError,
    DbxNetworkError,
    DbxNotADirectoryError,
    DbxNotFoundError,
    DbxPermissionError,
    DbxRateLimitError,
    DbxUploadError,
    SyncUsageError,
)
from .models import FolderListing, RemoteEntry

__version__ = "0.1.0"

__all__ = [
    "DbxClient",
    "DbxAPIError",
    "DbxAuthenticationError",
    "DbxConfigError",
    "DbxDownloadError",
    "DbxFileNotFoundError",
    "DbxFormatError",
    "DbxInvalidResponseError",
    "DbxNetworkError",
    "DbxNotADirectoryError",
    "DbxNotFoundError",
    "DbxPermissionError",
    "DbxRateLimitError",
    "DbxUploadError",
    "SyncUsageError",
    "FolderListing",
    "RemoteEntry",
    "__version__",
]
