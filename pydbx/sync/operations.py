"""File-level mutations used by the sync engine and the single-file commands."""

import logging
import os
from pathlib import Path
from typing import Optional

from ..api import DbxClient
from ..exceptions import DbxDownloadError
from ..models import RemoteEntry
from ..utils import TEMP_SUFFIX
from .transfer import ChunkedTransferEngine

logger = logging.getLogger(__name__)


def temp_path_for(local_path: Path) -> Path:
    """Temporary sibling a download is written to before the final rename."""
    return local_path.with_name(local_path.name + TEMP_SUFFIX)


class SyncOperations:
    """Unified operations for download/upload/create/delete with common interface."""

    def __init__(self, client: DbxClient, transfer: ChunkedTransferEngine):
        """Initialize sync operations.

        Args:
            client: Remote store client
            transfer: Engine used for uploads
        """
        self.client = client
        self.transfer = transfer

    def download_file(
        self,
        remote_path: str,
        local_path: Path,
        mtime: Optional[int] = None,
    ) -> Optional[RemoteEntry]:
        """Download a remote file to local storage.

        The content is written to a temporary sibling, stamped with the remote
        modification time and renamed into place, so ``local_path`` is never
        left half written.

        Args:
            remote_path: Remote file path
            local_path: Local destination
            mtime: Modification time to set (default: from the reply metadata)

        Returns:
            Remote metadata from the reply, if the server sent any

        Raises:
            DbxDownloadError: If writing, stamping or renaming fails
            DbxAPIError: If the server refuses the download
        """
        tmp_path = temp_path_for(local_path)
        try:
            entry = self._fetch(remote_path, tmp_path, mtime)
            try:
                os.replace(tmp_path, local_path)
            except OSError as e:
                raise DbxDownloadError(
                    f"Failed to rename {tmp_path} to {local_path}: {e}"
                ) from e
        except BaseException:
            # Never leave a partial download behind
            if tmp_path.exists():
                tmp_path.unlink()
            raise

        logger.debug(f"Downloaded {remote_path} -> {local_path}")
        return entry

    def _fetch(
        self, remote_path: str, tmp_path: Path, mtime: Optional[int]
    ) -> Optional[RemoteEntry]:
        try:
            with open(tmp_path, "wb") as sink:
                entry = self.client.get_file(remote_path, sink)
        except OSError as e:
            raise DbxDownloadError(f"Failed to write {tmp_path}: {e}") from e

        if mtime is None and entry is not None:
            mtime = entry.modified_epoch

        try:
            if mtime is not None:
                os.utime(tmp_path, (mtime, mtime))
        except OSError as e:
            raise DbxDownloadError(
                f"Failed to set modification time on {tmp_path}: {e}"
            ) from e
        return entry

    def upload_file(self, local_path: Path, remote_path: str) -> RemoteEntry:
        """Upload a local file, overwriting the remote path."""
        return self.transfer.upload(local_path, remote_path)

    def create_local_directory(self, local_path: Path) -> None:
        local_path.mkdir(parents=True, exist_ok=True)

    def create_remote_folder(self, remote_path: str) -> RemoteEntry:
        return self.client.create_folder(remote_path)

    def delete_local(self, local_path: Path, is_dir: bool) -> None:
        """Delete a local file or an (empty) local directory."""
        if is_dir:
            local_path.rmdir()
        else:
            local_path.unlink()

    def delete_remote(self, remote_path: str) -> RemoteEntry:
        """Delete a remote file or folder (folders recursively)."""
        return self.client.delete(remote_path)
