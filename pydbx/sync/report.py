"""Accumulated outcome of one sync run."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..output import OutputFormatter
from ..utils import EXIT_DEGRADED, EXIT_OK
from .comparator import SyncAction, SyncDecision

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    """Counters, decisions and exit status of a sync run.

    Owned by the orchestrator and passed explicitly to the components that
    can degrade the run.
    """

    output: Optional[OutputFormatter] = None
    decisions: list[SyncDecision] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    stats: dict[str, int] = field(
        default_factory=lambda: {action.value: 0 for action in SyncAction}
    )

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)

    @property
    def exit_status(self) -> int:
        return EXIT_DEGRADED if self.degraded else EXIT_OK

    def degrade(self, message: str) -> None:
        """Record a per-item problem and mark the run as degraded."""
        logger.debug(f"Degraded: {message}")
        self.warnings.append(message)
        if self.output is not None:
            self.output.warning(f"Warning: {message}")

    def fail(self, relative_path: str, message: str) -> None:
        """Record a failed item."""
        self.failed.append(relative_path)
        self.degrade(message)

    def record(self, decision: SyncDecision) -> None:
        """Count a decision that was carried out (or would be, in dry-run).

        Failed decisions are not counted; they are listed in ``failed``.
        """
        self.decisions.append(decision)
        self.stats[decision.action.value] += 1

    @property
    def transfers(self) -> int:
        """Number of download/upload decisions."""
        return (
            self.stats[SyncAction.DOWNLOAD.value]
            + self.stats[SyncAction.UPLOAD.value]
        )

    def to_dict(self) -> dict:
        return {
            "stats": dict(self.stats),
            "failed": list(self.failed),
            "warnings": list(self.warnings),
            "exit_status": self.exit_status,
        }
