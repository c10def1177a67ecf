"""Sync pair: which local directory is synced with which remote directory."""

from dataclasses import dataclass
from pathlib import Path

from ..exceptions import SyncUsageError
from ..utils import REMOTE_PREFIX, is_remote_path, normalize_remote_path
from .modes import SyncDirection


@dataclass
class SyncPair:
    """A local directory, a remote directory and the direction between them."""

    local: Path
    remote: str
    direction: SyncDirection

    def __post_init__(self) -> None:
        if isinstance(self.local, str):
            self.local = Path(self.local)
        if isinstance(self.direction, str):
            self.direction = SyncDirection(self.direction)
        self.remote = normalize_remote_path(self.remote)

    @classmethod
    def from_args(cls, source: str, destination: str) -> "SyncPair":
        """Build a sync pair from two command-line paths.

        Exactly one of the two must carry the remote prefix. A remote source
        means download, a remote destination means upload.

        Args:
            source: Source path
            destination: Destination path

        Returns:
            SyncPair instance

        Raises:
            SyncUsageError: If neither or both paths are remote

        Examples:
            >>> SyncPair.from_args("dropbox:/Photos", "/tmp/photos").direction
            <SyncDirection.DOWNLOAD: 'download'>
        """
        source_remote = is_remote_path(source)
        destination_remote = is_remote_path(destination)

        if source_remote and destination_remote:
            raise SyncUsageError(
                f"Both paths are remote; exactly one must start with '{REMOTE_PREFIX}'"
            )
        if not source_remote and not destination_remote:
            raise SyncUsageError(
                f"Neither path is remote; one must start with '{REMOTE_PREFIX}'"
            )

        if source_remote:
            return cls(
                local=Path(destination),
                remote=source,
                direction=SyncDirection.DOWNLOAD,
            )
        return cls(
            local=Path(source),
            remote=destination,
            direction=SyncDirection.UPLOAD,
        )

    def validate_local(self) -> None:
        """Ensure the local side is an existing directory.

        Raises:
            SyncUsageError: If the local directory is missing or not a directory
        """
        if not self.local.exists():
            raise SyncUsageError(f"Local directory does not exist: {self.local}")
        if not self.local.is_dir():
            raise SyncUsageError(f"Local path is not a directory: {self.local}")

    def describe(self) -> str:
        """Human-readable "source -> destination" summary."""
        if self.direction.is_download:
            return f"{REMOTE_PREFIX}{self.remote} -> {self.local}"
        return f"{self.local} -> {REMOTE_PREFIX}{self.remote}"
