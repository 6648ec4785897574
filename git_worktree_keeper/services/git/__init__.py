"""Git-related services for git-worktree-keeper."""

from .runner import GitRunner
from .worktrees import WorktreeService, parse_worktree_list
from .remote_status import RemoteStatusChecker
from .sync import SyncEngine

__all__ = [
    "GitRunner",
    "WorktreeService",
    "parse_worktree_list",
    "RemoteStatusChecker",
    "SyncEngine",
]
