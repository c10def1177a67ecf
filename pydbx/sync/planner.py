"""Move-aware deletion planning.

A local rename looks like "delete old path + create new path" unless object
identity is tracked. During a download pass the engine records, for every
local path it wrote or found up to date, the identity of the local object
and the remote entry it represents. A local node missing from the remote
tree whose identity is in that table is the same object living under a
stale name: it is kept. Everything else missing from the source is an
orphan.

Plans are lists of decisions in execution order. They are only executed
after the whole transfer pass has completed.
"""

import logging
from collections.abc import Iterable
from typing import Hashable

from ..models import RemoteEntry
from ..utils import is_descendant, parent_paths, path_key, relative_remote_path
from .comparator import SyncAction, SyncDecision
from .scanner import LocalFileState

logger = logging.getLogger(__name__)


class DeletionPlanner:
    """Plans deletions for both sync directions."""

    def plan_local(
        self,
        local_states: Iterable[LocalFileState],
        remote_keys: set[str],
        identity_map: dict[Hashable, RemoteEntry],
    ) -> list[SyncDecision]:
        """Plan local deletions after a download pass.

        Args:
            local_states: Local tree in post-order (children before parents)
            remote_keys: Keys of every relative path seen in the remote walk
            identity_map: Identity key -> remote entry, for every local object
                written or found up to date during the download pass

        Returns:
            SKIP decisions for moved objects and DELETE decisions for orphans,
            children before parents
        """
        decisions: list[SyncDecision] = []
        # Keys of directories holding something that stays
        holding: set[str] = set()

        def keep(relative_path: str) -> None:
            for parent in parent_paths(relative_path):
                holding.add(path_key(parent))

        for state in local_states:
            key = path_key(state.relative_path)

            if key in remote_keys:
                keep(state.relative_path)
                continue

            if state.is_dir and key in holding:
                logger.debug(f"Keeping {state.relative_path}: not empty after sync")
                keep(state.relative_path)
                continue

            moved_from = identity_map.get(state.identity_key)
            if moved_from is not None:
                decisions.append(
                    SyncDecision(
                        action=SyncAction.SKIP,
                        reason=f"Same object as {moved_from.path}",
                        relative_path=state.relative_path,
                        local_path=state.path,
                        remote_path=moved_from.path,
                        remote_entry=moved_from,
                        local_state=state,
                        is_dir=state.is_dir,
                    )
                )
                keep(state.relative_path)
                continue

            decisions.append(
                SyncDecision(
                    action=SyncAction.DELETE,
                    reason="Missing on remote",
                    relative_path=state.relative_path,
                    local_path=state.path,
                    local_state=state,
                    is_dir=state.is_dir,
                )
            )

        return decisions

    def plan_remote(
        self,
        remote_entries: Iterable[RemoteEntry],
        matched_keys: set[str],
        remote_base: str,
    ) -> list[SyncDecision]:
        """Plan remote deletions after an upload pass.

        Args:
            remote_entries: Remote tree in walk order (parents before children)
            matched_keys: Keys of every relative path seen in the local walk
            remote_base: Canonical remote root of the sync

        Returns:
            DELETE decisions; descendants of an already scheduled directory
            are left out since deleting the directory removes them
        """
        decisions: list[SyncDecision] = []
        scheduled: list[str] = []

        for entry in remote_entries:
            relative_path = relative_remote_path(remote_base, entry.path)
            if path_key(relative_path) in matched_keys:
                continue
            if any(is_descendant(entry.path, parent) for parent in scheduled):
                continue

            scheduled.append(entry.path)
            decisions.append(
                SyncDecision(
                    action=SyncAction.DELETE,
                    reason="Missing locally",
                    relative_path=relative_path,
                    remote_path=entry.path,
                    remote_entry=entry,
                    is_dir=entry.is_dir,
                )
            )

        return decisions
