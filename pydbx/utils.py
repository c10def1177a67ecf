"""Utility functions for pydbx."""

from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import Optional

# =============================================================================
# Constants for file operations
# =============================================================================

# Files at or above this size go through the chunked upload protocol (10 MiB)
DEFAULT_CHUNKED_UPLOAD_THRESHOLD: int = 10 * 1024 * 1024

# Bytes sent per chunked upload call (4 MiB)
DEFAULT_CHUNK_SIZE: int = 4 * 1024 * 1024

# Sub-read size used to fill a chunk buffer (64 KiB)
DEFAULT_READ_SIZE: int = 64 * 1024

# Retry configuration for metadata reads
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds

# Prefix marking a command-line path as remote
REMOTE_PREFIX: str = "dropbox:"

# Suffix of the temporary sibling a download is written to
TEMP_SUFFIX: str = ".pydbx-tmp"

# Process exit codes
EXIT_OK: int = 0
EXIT_FATAL: int = 1
EXIT_USAGE: int = 2
EXIT_DEGRADED: int = 3


# =============================================================================
# Timestamp utilities
# =============================================================================


def parse_rfc2822_timestamp(timestamp_str: Optional[str]) -> Optional[int]:
    """Parse an RFC-2822 timestamp into epoch seconds.

    Args:
        timestamp_str: Timestamp such as "Sat, 21 Aug 2010 22:31:20 +0000"

    Returns:
        Epoch seconds, or None if the value is missing or unparseable

    Examples:
        >>> parse_rfc2822_timestamp("Sat, 21 Aug 2010 22:31:20 +0000")
        1282429880
        >>> parse_rfc2822_timestamp("garbage") is None
        True
    """
    if not timestamp_str:
        return None
    try:
        dt = parsedate_to_datetime(timestamp_str)
    except (TypeError, ValueError, IndexError):
        return None
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def format_rfc2822_timestamp(epoch: float) -> str:
    """Format epoch seconds as an RFC-2822 timestamp in UTC.

    Examples:
        >>> format_rfc2822_timestamp(1282429880)
        'Sat, 21 Aug 2010 22:31:20 +0000'
    """
    dt = datetime.fromtimestamp(int(epoch), tz=timezone.utc)
    return format_datetime(dt)


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"


# =============================================================================
# Remote path utilities
# =============================================================================


def is_remote_path(value: str) -> bool:
    """Check whether a command-line path carries the remote prefix.

    Examples:
        >>> is_remote_path("dropbox:/Photos")
        True
        >>> is_remote_path("./Photos")
        False
    """
    return value.startswith(REMOTE_PREFIX)


def normalize_remote_path(value: str) -> str:
    """Normalize a remote path: strip the prefix, force a leading slash, and
    drop trailing slashes (the root stays "/").

    Examples:
        >>> normalize_remote_path("dropbox:Photos/")
        '/Photos'
        >>> normalize_remote_path("dropbox:")
        '/'
        >>> normalize_remote_path("/a//b")
        '/a/b'
    """
    if is_remote_path(value):
        value = value[len(REMOTE_PREFIX) :]
    parts = [p for p in value.split("/") if p]
    return "/" + "/".join(parts)


def join_remote(base: str, relative_path: str) -> str:
    """Join a remote base path and a relative path.

    Examples:
        >>> join_remote("/", "a/b.txt")
        '/a/b.txt'
        >>> join_remote("/Photos", "a/b.txt")
        '/Photos/a/b.txt'
    """
    if not relative_path:
        return base
    return base.rstrip("/") + "/" + relative_path.lstrip("/")


def relative_remote_path(base: str, path: str) -> str:
    """Return ``path`` relative to ``base``, matching case-insensitively.

    The remote store is case-insensitive, so a listing may return a different
    case than the base we resolved.

    Examples:
        >>> relative_remote_path("/Photos", "/photos/2020/a.jpg")
        '2020/a.jpg'
        >>> relative_remote_path("/", "/a.txt")
        'a.txt'
    """
    base = base.rstrip("/")
    if base and path.lower().startswith(base.lower() + "/"):
        return path[len(base) + 1 :]
    if path.lower() == base.lower():
        return ""
    return path.lstrip("/")


def path_key(relative_path: str) -> str:
    """Key used to join the two trees: the remote store ignores case."""
    return relative_path.lower()


def is_descendant(path: str, ancestor: str) -> bool:
    """Check whether ``path`` lies strictly below ``ancestor``.

    The check is anchored on a "/" boundary, so "/Public/foobar" is not a
    descendant of "/Public/foo".

    Examples:
        >>> is_descendant("/Public/foo/x.txt", "/Public/foo")
        True
        >>> is_descendant("/Public/foobar", "/Public/foo")
        False
    """
    ancestor = ancestor.rstrip("/").lower()
    return path.lower().startswith(ancestor + "/")


def parent_paths(relative_path: str) -> list[str]:
    """Return every ancestor of a relative path, nearest last.

    Examples:
        >>> parent_paths("a/b/c.txt")
        ['a', 'a/b']
        >>> parent_paths("c.txt")
        []
    """
    parts = relative_path.split("/")[:-1]
    return ["/".join(parts[: i + 1]) for i in range(len(parts))]
