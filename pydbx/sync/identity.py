"""Stable identity of local filesystem objects.

A local rename keeps the object's identity, so the deletion planner can tell
a moved file from an orphan. Where the filesystem exposes no device/inode
pair, the path itself is used: renames then look like delete + create, which
only reduces move detection, it does not make a sync incorrect.
"""

import os
from pathlib import Path
from typing import Hashable, Protocol


class StableIdentity(Protocol):
    """Maps a filesystem object to a key that survives renames within a run."""

    def key(self, path: Path, stat_result: os.stat_result) -> Hashable:
        ...


class InodeIdentity:
    """Identity from ``(st_dev, st_ino)``, falling back to the path."""

    def key(self, path: Path, stat_result: os.stat_result) -> Hashable:
        if stat_result.st_ino:
            return (stat_result.st_dev, stat_result.st_ino)
        return str(path)


class PathIdentity:
    """Identity from the absolute path only (no move detection)."""

    def key(self, path: Path, stat_result: os.stat_result) -> Hashable:
        return str(path)


def default_identity() -> StableIdentity:
    return InodeIdentity()
