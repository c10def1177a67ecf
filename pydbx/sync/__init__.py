"""Sync engine for pydbx - one-shot mirroring between a local and a remote tree."""

from .comparator import EntryComparator, SyncAction, SyncDecision
from .engine import SyncEngine
from .identity import InodeIdentity, PathIdentity, StableIdentity, default_identity
from .modes import SyncDirection
from .operations import SyncOperations
from .options import SyncOptions
from .pair import SyncPair
from .planner import DeletionPlanner
from .report import SyncReport
from .scanner import LocalFileState, LocalTreeWalker, RemoteTreeWalker
from .transfer import (
    ChunkedTransferEngine,
    TransferSession,
    TransferState,
    render_progress_bar,
)

__all__ = [
    "SyncEngine",
    "SyncDirection",
    "SyncOptions",
    "SyncPair",
    "SyncReport",
    "SyncOperations",
    "EntryComparator",
    "SyncAction",
    "SyncDecision",
    "DeletionPlanner",
    "LocalFileState",
    "LocalTreeWalker",
    "RemoteTreeWalker",
    "StableIdentity",
    "InodeIdentity",
    "PathIdentity",
    "default_identity",
    "ChunkedTransferEngine",
    "TransferSession",
    "TransferState",
    "render_progress_bar",
]
