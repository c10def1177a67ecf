"""Entry comparison logic for sync operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from ..models import RemoteEntry
from ..utils import path_key

if TYPE_CHECKING:
    from .scanner import LocalFileState


class SyncAction(str, Enum):
    """Actions that can be taken during sync."""

    SKIP = "skip"
    """Nothing to do"""

    CREATE_DIRECTORY = "create_directory"
    """Create a directory on the destination side"""

    DOWNLOAD = "download"
    """Download remote file to local"""

    UPLOAD = "upload"
    """Upload local file to remote"""

    DELETE = "delete"
    """Delete an item missing on the source side"""


@dataclass(frozen=True)
class SyncDecision:
    """Represents a decision about how to sync one item."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    relative_path: str
    """Relative path of the item"""

    local_path: Optional[Path] = None
    remote_path: Optional[str] = None
    remote_entry: Optional[RemoteEntry] = None
    local_state: Optional[LocalFileState] = None
    is_dir: bool = False


class EntryComparator:
    """Decides the action for one relative path present in either tree.

    Modification times are compared at whole-second resolution, which is what
    the remote store records.
    """

    def compare_download(
        self,
        relative_path: str,
        remote: RemoteEntry,
        local: Optional[LocalFileState],
        local_path: Path,
    ) -> SyncDecision:
        """Decide what to do with a remote entry when mirroring remote to local.

        Args:
            relative_path: Relative path of the entry
            remote: Remote entry
            local: Local state at the same relative path (if it exists)
            local_path: Absolute local destination

        Returns:
            SyncDecision with SKIP, CREATE_DIRECTORY or DOWNLOAD
        """

        def decide(action: SyncAction, reason: str) -> SyncDecision:
            return SyncDecision(
                action=action,
                reason=reason,
                relative_path=relative_path,
                local_path=local_path,
                remote_path=remote.path,
                remote_entry=remote,
                local_state=local,
                is_dir=remote.is_dir,
            )

        if remote.is_dir:
            if local is not None and local.is_dir:
                return decide(SyncAction.SKIP, "Local directory exists")
            return decide(SyncAction.CREATE_DIRECTORY, "New remote directory")

        if local is None:
            return decide(SyncAction.DOWNLOAD, "New remote file")

        if local.size != remote.bytes:
            return decide(
                SyncAction.DOWNLOAD,
                f"Size differs (remote {remote.bytes} vs local {local.size})",
            )

        remote_mtime = remote.modified_epoch
        if remote_mtime is not None and remote_mtime > int(local.mtime):
            return decide(SyncAction.DOWNLOAD, "Remote file is newer")

        return decide(SyncAction.SKIP, "Up to date")

    def compare_upload(
        self,
        relative_path: str,
        local: LocalFileState,
        remote: Optional[RemoteEntry],
        remote_path: str,
        materialized: set[str],
    ) -> SyncDecision:
        """Decide what to do with a local node when mirroring local to remote.

        Args:
            relative_path: Relative path of the node
            local: Local state
            remote: Remote entry at the same relative path (if it exists)
            remote_path: Absolute remote destination
            materialized: Keys of relative paths already present remotely
                because of an upload or folder creation earlier in this pass

        Returns:
            SyncDecision with SKIP, CREATE_DIRECTORY or UPLOAD
        """

        def decide(action: SyncAction, reason: str) -> SyncDecision:
            return SyncDecision(
                action=action,
                reason=reason,
                relative_path=relative_path,
                local_path=local.path,
                remote_path=remote.path if remote is not None else remote_path,
                remote_entry=remote,
                local_state=local,
                is_dir=local.is_dir,
            )

        if local.is_dir:
            if remote is not None and remote.is_dir:
                return decide(SyncAction.SKIP, "Remote folder exists")
            if path_key(relative_path) in materialized:
                return decide(SyncAction.SKIP, "Remote folder already created")
            return decide(SyncAction.CREATE_DIRECTORY, "New local directory")

        if remote is None:
            return decide(SyncAction.UPLOAD, "New local file")

        if remote.bytes != local.size:
            return decide(
                SyncAction.UPLOAD,
                f"Size differs (local {local.size} vs remote {remote.bytes})",
            )

        remote_mtime = remote.modified_epoch
        if remote_mtime is None or remote_mtime < int(local.mtime):
            return decide(SyncAction.UPLOAD, "Local file is newer")

        return decide(SyncAction.SKIP, "Up to date")
