"""Sync directions."""

from enum import Enum


class SyncDirection(str, Enum):
    """Which side of a sync is the source of truth."""

    DOWNLOAD = "download"
    """Remote tree is mirrored onto the local tree"""

    UPLOAD = "upload"
    """Local tree is mirrored onto the remote tree"""

    @property
    def is_download(self) -> bool:
        return self == SyncDirection.DOWNLOAD

    @property
    def is_upload(self) -> bool:
        return self == SyncDirection.UPLOAD
