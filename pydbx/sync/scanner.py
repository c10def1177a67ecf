"""Tree walkers for the local and remote sides of a sync."""

from __future__ import annotations

import logging
import stat
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Hashable, Optional

from ..api import DbxClient
from ..exceptions import DbxNotADirectoryError
from ..models import RemoteEntry
from ..utils import TEMP_SUFFIX
from .identity import StableIdentity, default_identity

if TYPE_CHECKING:
    from .report import SyncReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LocalFileState:
    """Snapshot of one filesystem node below the sync root."""

    path: Path
    """Absolute path"""

    relative_path: str
    """Path relative to the sync root (forward slashes on all platforms)"""

    is_dir: bool
    size: int
    mtime: float
    """Last modification time (Unix timestamp)"""

    identity_key: Hashable
    """Stable identity, see :mod:`pydbx.sync.identity`"""

    @classmethod
    def from_path(
        cls,
        path: Path,
        base_path: Path,
        identity: Optional[StableIdentity] = None,
    ) -> LocalFileState:
        """Create a LocalFileState from a path.

        Args:
            path: Absolute path of the node
            base_path: Sync root used to compute the relative path
            identity: Identity capability (default: inode with path fallback)

        Returns:
            LocalFileState instance
        """
        identity = identity or default_identity()
        st = path.stat()
        return cls(
            path=path,
            relative_path=path.relative_to(base_path).as_posix(),
            is_dir=stat.S_ISDIR(st.st_mode),
            size=st.st_size,
            mtime=st.st_mtime,
            identity_key=identity.key(path, st),
        )


class LocalTreeWalker:
    """Walks a local directory in post-order.

    Every descendant is produced before its parent, so a caller deleting in
    walk order never removes a directory before its content. The root itself
    is not produced. Leftover download temp files are skipped.

    Examples:
        >>> walker = LocalTreeWalker()
        >>> for state in walker.walk(Path("/sync/folder")):
        ...     print(state.relative_path)
    """

    def __init__(self, identity: Optional[StableIdentity] = None):
        self.identity = identity or default_identity()

    def walk(self, root: Path) -> Iterator[LocalFileState]:
        """Yield every node below ``root`` in post-order."""
        yield from self._walk(root, root)

    def _walk(self, directory: Path, root: Path) -> Iterator[LocalFileState]:
        try:
            items = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            logger.warning(f"Cannot read directory {directory}: {e}")
            return

        for item in items:
            if item.name.endswith(TEMP_SUFFIX):
                logger.debug(f"Skipping temp file: {item}")
                continue

            # Symlinked directories are not followed
            if item.is_dir() and not item.is_symlink():
                yield from self._walk(item, root)

            try:
                state = LocalFileState.from_path(item, root, self.identity)
            except OSError as e:
                logger.warning(f"Cannot stat {item}: {e}")
                continue
            if state.is_dir and item.is_symlink():
                logger.debug(f"Skipping symlinked directory: {item}")
                continue
            yield state


class RemoteTreeWalker:
    """Walks a remote directory depth-first.

    For each directory, every child is produced before descending into any
    child directory; sub-directories are then visited in listing order.
    Soft-deleted entries are filtered out. A soft-deleted directory is
    reported on the run's report and not descended into.
    """

    def __init__(self, client: DbxClient):
        self.client = client

    def walk(
        self, path: str, report: Optional[SyncReport] = None
    ) -> Iterator[RemoteEntry]:
        """Yield every live entry below ``path``.

        Args:
            path: Remote directory to walk
            report: Report to degrade when a deleted subtree is met

        Raises:
            DbxNotADirectoryError: If a walked node is not a directory
            DbxAPIError: If a listing fails
        """
        listing = self.client.list(path)

        if not listing.is_dir:
            raise DbxNotADirectoryError(listing.path or path)

        if listing.is_deleted:
            message = f"Remote directory {listing.path or path} is deleted, skipping"
            if report is not None:
                report.degrade(message)
            else:
                logger.warning(message)
            return

        children = [child for child in listing.children if not child.is_deleted]
        logger.debug(f"Listed {listing.path}: {len(children)} live entries")

        yield from children

        for child in children:
            if child.is_dir:
                yield from self.walk(child.path, report)
