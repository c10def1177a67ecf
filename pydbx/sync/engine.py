"""Core sync engine for executing sync operations."""

import logging
from pathlib import Path
from typing import Hashable, Optional, cast

from ..api import DbxClient
from ..exceptions import (
    DbxAPIError,
    DbxAuthenticationError,
    DbxNotADirectoryError,
    DbxNotFoundError,
)
from ..models import RemoteEntry
from ..output import OutputFormatter
from ..utils import (
    REMOTE_PREFIX,
    join_remote,
    normalize_remote_path,
    parent_paths,
    path_key,
    relative_remote_path,
)
from .comparator import EntryComparator, SyncAction, SyncDecision
from .identity import StableIdentity
from .modes import SyncDirection
from .operations import SyncOperations
from .options import SyncOptions
from .pair import SyncPair
from .planner import DeletionPlanner
from .report import SyncReport
from .scanner import LocalFileState, LocalTreeWalker, RemoteTreeWalker
from .transfer import ChunkedTransferEngine

logger = logging.getLogger(__name__)


class SyncEngine:
    """Core sync engine that orchestrates one-shot tree synchronization.

    Each run walks the source tree, compares every entry with the
    destination, carries out the resulting actions one at a time and, when
    deletion is requested, plans and executes deletions only after all
    transfers are done.
    """

    def __init__(
        self,
        client: DbxClient,
        options: Optional[SyncOptions] = None,
        output: Optional[OutputFormatter] = None,
        identity: Optional[StableIdentity] = None,
        transfer: Optional[ChunkedTransferEngine] = None,
    ):
        """Initialize sync engine.

        Args:
            client: Remote store client
            options: Run flags (dry-run, delete, verbose, debug)
            output: Output formatter for action lines and warnings
            identity: Local identity capability used for move detection
            transfer: Upload engine (default: built from client and options)
        """
        self.client = client
        self.options = options or SyncOptions()
        self.output = output or OutputFormatter()
        self.transfer = transfer or ChunkedTransferEngine(
            client, self.output, verbose=self.options.verbose
        )
        self.operations = SyncOperations(client, self.transfer)
        self.comparator = EntryComparator()
        self.planner = DeletionPlanner()
        self.remote_walker = RemoteTreeWalker(client)
        self.local_walker = LocalTreeWalker(identity)

    # =========================
    # Entry points
    # =========================

    def sync(self, source: str, destination: str) -> SyncReport:
        """Sync between two command-line paths, one carrying the remote prefix.

        Raises:
            SyncUsageError: If neither or both paths are remote, or the local
                directory is missing
        """
        return self.sync_pair(SyncPair.from_args(source, destination))

    def sync_pair(self, pair: SyncPair) -> SyncReport:
        """Sync a single sync pair.

        Examples:
            >>> engine = SyncEngine(client, SyncOptions(dry_run=True))
            >>> pair = SyncPair.from_args("dropbox:/Photos", "/tmp/photos")
            >>> report = engine.sync_pair(pair)
            >>> print(report.stats["download"])
        """
        pair.validate_local()
        logger.debug(f"Syncing {pair.describe()} with {self.options}")

        if pair.direction == SyncDirection.DOWNLOAD:
            report = self.sync_download(pair.remote, pair.local)
        else:
            report = self.sync_upload(pair.local, pair.remote)

        if self.options.verbose:
            self._display_summary(report)
        return report

    # =========================
    # Remote -> local
    # =========================

    def sync_download(self, remote: str, local: Path) -> SyncReport:
        """Mirror a remote directory onto a local directory.

        Args:
            remote: Remote directory (any case)
            local: Existing local directory

        Returns:
            SyncReport of the run
        """
        report = SyncReport(output=self.output)
        base, root = self._resolve_remote_root(remote)
        if root is None:
            raise DbxNotFoundError(f"Remote directory not found: {remote}")
        if root.is_deleted:
            report.degrade(f"Remote directory {base} is deleted, skipping")
            return report

        remote_keys: set[str] = set()
        identity_map: dict[Hashable, RemoteEntry] = {}

        for entry in self.remote_walker.walk(base, report):
            relative_path = relative_remote_path(base, entry.path)
            if not relative_path:
                continue
            remote_keys.add(path_key(relative_path))

            local_path = local / relative_path
            local_state = self._stat_local(local_path, local)
            decision = self.comparator.compare_download(
                relative_path, entry, local_state, local_path
            )
            if not self._execute(decision, SyncDirection.DOWNLOAD, report):
                continue

            if decision.action != SyncAction.SKIP:
                local_state = self._stat_local(local_path, local)
            if local_state is not None:
                identity_map[local_state.identity_key] = entry

        if self.options.delete:
            decisions = self.planner.plan_local(
                self.local_walker.walk(local), remote_keys, identity_map
            )
            for decision in decisions:
                self._execute(decision, SyncDirection.DOWNLOAD, report)

        return report

    # =========================
    # Local -> remote
    # =========================

    def sync_upload(self, local: Path, remote: str) -> SyncReport:
        """Mirror a local directory onto a remote directory.

        The remote directory is created on demand if it does not exist.

        Args:
            local: Existing local directory
            remote: Remote directory (any case)

        Returns:
            SyncReport of the run
        """
        report = SyncReport(output=self.output)
        base, root = self._resolve_remote_root(remote)
        resolved = root is not None and not root.is_deleted

        remote_entries: list[RemoteEntry] = []
        if resolved:
            remote_entries = list(self.remote_walker.walk(base, report))
        remote_map = {
            path_key(relative_remote_path(base, entry.path)): entry
            for entry in remote_entries
        }

        matched: set[str] = set()
        materialized: set[str] = set()

        for state in self.local_walker.walk(local):
            key = path_key(state.relative_path)
            matched.add(key)
            decision = self.comparator.compare_upload(
                state.relative_path,
                state,
                remote_map.get(key),
                join_remote(base, state.relative_path),
                materialized,
            )
            if not self._execute(decision, SyncDirection.UPLOAD, report):
                continue
            if decision.action in (SyncAction.UPLOAD, SyncAction.CREATE_DIRECTORY):
                for parent in parent_paths(state.relative_path):
                    materialized.add(path_key(parent))
                if state.is_dir:
                    materialized.add(key)

        if not resolved and not materialized:
            self._execute(
                SyncDecision(
                    action=SyncAction.CREATE_DIRECTORY,
                    reason="Remote directory does not exist",
                    relative_path="",
                    local_path=local,
                    remote_path=base,
                    is_dir=True,
                ),
                SyncDirection.UPLOAD,
                report,
            )

        if self.options.delete and remote_entries:
            decisions = self.planner.plan_remote(remote_entries, matched, base)
            for decision in decisions:
                self._execute(decision, SyncDirection.UPLOAD, report)

        return report

    # =========================
    # Helpers
    # =========================

    def _resolve_remote_root(
        self, remote: str
    ) -> tuple[str, Optional[RemoteEntry]]:
        """Resolve a remote directory to the store's canonical path.

        Returns:
            Canonical path and the root's metadata. The metadata is None if
            the directory does not exist; a soft-deleted root is returned
            as is.

        Raises:
            DbxNotADirectoryError: If the path is a file
            DbxAPIError: For any failure other than "not found"
        """
        path = normalize_remote_path(remote)
        try:
            entry = self.client.metadata(path)
        except DbxNotFoundError:
            logger.debug(f"Remote root {path} not found")
            return path, None
        if entry.is_deleted:
            logger.debug(f"Remote root {path} is deleted")
            return entry.path or path, entry
        if not entry.is_dir:
            raise DbxNotADirectoryError(entry.path or path)
        canonical = entry.path or path
        if canonical != path:
            logger.debug(f"Resolved remote root {path} -> {canonical}")
        return canonical, entry

    def _stat_local(self, local_path: Path, root: Path) -> Optional[LocalFileState]:
        try:
            return LocalFileState.from_path(
                local_path, root, self.local_walker.identity
            )
        except OSError:
            return None

    def _describe(self, decision: SyncDecision, direction: SyncDirection) -> str:
        """Action line shown for a decision, identical in live and dry runs."""
        remote = f"{REMOTE_PREFIX}{decision.remote_path}"
        local = str(decision.local_path)
        action = decision.action

        if action == SyncAction.DOWNLOAD:
            return f"download {remote} -> {local}"
        if action == SyncAction.UPLOAD:
            return f"upload {local} -> {remote}"
        if action == SyncAction.CREATE_DIRECTORY:
            return f"mkdir {local if direction.is_download else remote}"
        if action == SyncAction.DELETE:
            return f"remove {local if direction.is_download else remote}"
        target = local if direction.is_download else remote
        return f"skip {target} ({decision.reason})"

    def _execute(
        self,
        decision: SyncDecision,
        direction: SyncDirection,
        report: SyncReport,
    ) -> bool:
        """Carry out one decision.

        Per-item failures are reported as warnings and degrade the run.
        Authentication failures propagate and abort the run.

        Only decisions that were carried out (or skipped, or previewed in a
        dry run) are counted in the report.

        Returns:
            True if the decision was carried out (or skipped, or dry-run)
        """
        if decision.action == SyncAction.SKIP:
            if self.options.verbose:
                self.output.info(self._describe(decision, direction))
            report.record(decision)
            return True

        self.output.info(self._describe(decision, direction))
        if self.options.dry_run:
            report.record(decision)
            return True

        try:
            self._apply(decision, direction)
        except DbxAuthenticationError:
            raise
        except (DbxAPIError, OSError) as e:
            target = (
                decision.local_path
                if direction.is_download
                else f"{REMOTE_PREFIX}{decision.remote_path}"
            )
            report.fail(
                decision.relative_path,
                f"{decision.action.value} failed for {target}: {e}",
            )
            return False
        report.record(decision)
        return True

    def _apply(self, decision: SyncDecision, direction: SyncDirection) -> None:
        action = decision.action
        local_path = cast(Path, decision.local_path)
        remote_path = cast(str, decision.remote_path)

        if action == SyncAction.DOWNLOAD:
            entry = decision.remote_entry
            mtime = entry.modified_epoch if entry is not None else None
            self.operations.download_file(remote_path, local_path, mtime=mtime)
        elif action == SyncAction.UPLOAD:
            self.operations.upload_file(local_path, remote_path)
        elif action == SyncAction.CREATE_DIRECTORY:
            if direction.is_download:
                self.operations.create_local_directory(local_path)
            else:
                self.operations.create_remote_folder(remote_path)
        elif action == SyncAction.DELETE:
            if direction.is_download:
                self.operations.delete_local(local_path, decision.is_dir)
            else:
                self.operations.delete_remote(remote_path)

    def _display_summary(self, report: SyncReport) -> None:
        """Display sync summary to user."""
        stats = report.stats
        prefix = "Dry run:" if self.options.dry_run else "Sync complete:"
        parts = [
            f"{stats[SyncAction.DOWNLOAD.value]} download(s)",
            f"{stats[SyncAction.UPLOAD.value]} upload(s)",
            f"{stats[SyncAction.CREATE_DIRECTORY.value]} mkdir(s)",
            f"{stats[SyncAction.DELETE.value]} removal(s)",
            f"{stats[SyncAction.SKIP.value]} skipped",
        ]
        self.output.info(f"{prefix} {', '.join(parts)}")
        if report.failed:
            self.output.warning(f"{len(report.failed)} item(s) failed")
