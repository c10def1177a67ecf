"""Data models for remote store API responses."""

from dataclasses import dataclass, field
from typing import Any, Optional

from .utils import format_size, parse_rfc2822_timestamp


@dataclass
class RemoteEntry:
    """One node of the remote hierarchy, as returned by a metadata call."""

    path: str
    """Canonical path, with the case recorded by the store"""

    is_dir: bool = False
    bytes: int = 0
    """Size in bytes (meaningless for directories)"""

    modified: Optional[str] = None
    """Server modification time (RFC-2822)"""

    client_mtime: Optional[str] = None
    """Modification time set by the uploading client (RFC-2822)"""

    rev: Optional[str] = None
    is_deleted: bool = False
    mime_type: Optional[str] = None
    icon: Optional[str] = None
    thumb_exists: bool = False
    size: Optional[str] = None
    """Human-readable size as reported by the server"""

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "RemoteEntry":
        """Create a RemoteEntry from a metadata dictionary."""
        return cls(
            path=data.get("path", ""),
            is_dir=bool(data.get("is_dir", False)),
            bytes=int(data.get("bytes") or 0),
            modified=data.get("modified"),
            client_mtime=data.get("client_mtime"),
            rev=data.get("rev"),
            is_deleted=bool(data.get("is_deleted", False)),
            mime_type=data.get("mime_type"),
            icon=data.get("icon"),
            thumb_exists=bool(data.get("thumb_exists", False)),
            size=data.get("size"),
        )

    @property
    def name(self) -> str:
        """Last path component ("/" for the root)."""
        stripped = self.path.rstrip("/")
        return stripped.rsplit("/", 1)[-1] if stripped else "/"

    @property
    def modified_epoch(self) -> Optional[int]:
        """Server modification time as epoch seconds."""
        return parse_rfc2822_timestamp(self.modified)

    @property
    def client_mtime_epoch(self) -> Optional[int]:
        return parse_rfc2822_timestamp(self.client_mtime)

    @property
    def human_size(self) -> str:
        return self.size or format_size(self.bytes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary for JSON output."""
        return {
            "path": self.path,
            "is_dir": self.is_dir,
            "bytes": self.bytes,
            "size": self.human_size,
            "modified": self.modified,
            "client_mtime": self.client_mtime,
            "rev": self.rev,
            "is_deleted": self.is_deleted,
            "mime_type": self.mime_type,
            "icon": self.icon,
            "thumb_exists": self.thumb_exists,
        }


@dataclass
class FolderListing:
    """Metadata of a node together with its direct children."""

    entry: RemoteEntry
    children: list[RemoteEntry] = field(default_factory=list)

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "FolderListing":
        """Create a FolderListing from a ``list=true`` metadata response."""
        return cls(
            entry=RemoteEntry.from_api_response(data),
            children=[
                RemoteEntry.from_api_response(child)
                for child in data.get("contents") or []
            ],
        )

    @property
    def path(self) -> str:
        """Canonical path of the listed node."""
        return self.entry.path

    @property
    def is_dir(self) -> bool:
        return self.entry.is_dir

    @property
    def is_deleted(self) -> bool:
        return self.entry.is_deleted
