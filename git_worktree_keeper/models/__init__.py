"""Data models for git-worktree-keeper."""

from .worktree import (
    Worktree,
    WorktreeStatus,
    RemovalOptions,
    RemovalResult,
    RemovalSuccess,
    RemovalFailure,
    RemovalSkip,
)
from .remote import RemoteBranchStatus, SafetyVerdict, DeletionSafety
from .sync import SyncOperationOptions, SyncOutcome, SyncResult

__all__ = [
    "Worktree",
    "WorktreeStatus",
    "RemovalOptions",
    "RemovalResult",
    "RemovalSuccess",
    "RemovalFailure",
    "RemovalSkip",
    "RemoteBranchStatus",
    "SafetyVerdict",
    "DeletionSafety",
    "SyncOperationOptions",
    "SyncOutcome",
    "SyncResult",
]
