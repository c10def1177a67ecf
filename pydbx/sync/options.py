"""Per-run sync settings."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SyncOptions:
    """Flags controlling one sync invocation.

    Passed explicitly to every component that needs them.
    """

    dry_run: bool = False
    """Report actions without touching the local or remote tree"""

    delete: bool = False
    """Remove items on the destination that are missing on the source"""

    verbose: bool = False
    """Report skipped items and draw upload progress bars"""

    debug: bool = False
    """Enable debug logging"""
