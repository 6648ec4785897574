"""Worktree data models."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Worktree:
    """Information about a git worktree."""

    path: str
    branch: str  # "HEAD" when detached
    commit: str
    bare: bool = False
    detached: bool = False
    locked: bool = False
    lock_reason: Optional[str] = None
    prunable: bool = False
    is_main: bool = False  # First entry of `git worktree list` is the primary checkout

    def __str__(self) -> str:
        """String representation of worktree."""
        flags = []
        if self.is_main:
            flags.append("main")
        if self.detached:
            flags.append("detached")
        if self.locked:
            flags.append("locked")
        if self.prunable:
            flags.append("prunable")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        return f"{self.branch} @ {self.path}{suffix}"


@dataclass
class WorktreeStatus:
    """File status counts of a worktree, from `git status --porcelain`."""

    modified: int = 0
    staged: int = 0
    deleted: int = 0
    untracked: int = 0
    files: List[str] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.files)


@dataclass
class RemovalOptions:
    """Options for batch worktree removal."""

    force: bool = False
    remove_branch: bool = False
    dry_run: bool = False
    main_branch: Optional[str] = None  # Trunk used for the merged-into-trunk check


@dataclass
class RemovalSuccess:
    worktree: Worktree
    branch_deleted: bool = False
    message: str = ""


@dataclass
class RemovalFailure:
    worktree: Worktree
    error: Exception


@dataclass
class RemovalSkip:
    worktree: Worktree
    reason: str


@dataclass
class RemovalResult:
    """Outcome of a batch removal, partitioned per worktree."""

    successes: List[RemovalSuccess] = field(default_factory=list)
    failures: List[RemovalFailure] = field(default_factory=list)
    skipped: List[RemovalSkip] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.failures and not self.skipped
