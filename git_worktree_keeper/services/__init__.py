"""Services for git-worktree-keeper."""

from .conflict_resolver import (
    AgentConflictResolver,
    ConflictResolver,
    FailFastResolver,
    build_conflict_resolver,
)
from .git import GitRunner, RemoteStatusChecker, SyncEngine, WorktreeService

__all__ = [
    "AgentConflictResolver",
    "ConflictResolver",
    "FailFastResolver",
    "build_conflict_resolver",
    "GitRunner",
    "RemoteStatusChecker",
    "SyncEngine",
    "WorktreeService",
]
