"""Sync operation models."""
from enum import Enum
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class SyncOperationOptions:
    """Options shared by the rebase and fast-forward merge workflows."""
    force: bool = False  # Skip interactive confirmation
    dry_run: bool = False  # Read-only preview, no mutation
    repo_root: Optional[str] = None  # Explicit repository root override


class SyncOutcome(Enum):
    """How a sync workflow finished."""
    COMPLETED = "completed"
    UP_TO_DATE = "up-to-date"
    NOTHING_TO_MERGE = "nothing-to-merge"
    DRY_RUN = "dry-run"
    CANCELLED = "cancelled"


@dataclass
class SyncResult:
    """Result of a rebase or fast-forward merge."""
    operation: str  # "rebase" or "merge"
    outcome: SyncOutcome
    target: str
    commits: List[str] = field(default_factory=list)
    used_wip_commit: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.outcome is SyncOutcome.COMPLETED
