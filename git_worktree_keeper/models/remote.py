"""Remote branch status models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass
class RemoteBranchStatus:
    """Point-in-time comparison of a local branch with its remote copy."""

    exists: bool = False
    remote_ahead: bool = False
    local_ahead: bool = False
    network_error: bool = False
    error_message: Optional[str] = None

    def __post_init__(self):
        if self.remote_ahead and self.local_ahead:
            raise ValueError("remote_ahead and local_ahead are mutually exclusive")
        if not self.exists and (self.remote_ahead or self.local_ahead):
            raise ValueError("ahead flags require an existing remote branch")


class SafetyVerdict(Enum):
    """Rows of the branch deletion safety table."""
    NETWORK_ERROR = "network-error"
    REMOTE_UP_TO_DATE = "remote-up-to-date"  # Same commit or remote ahead
    LOCAL_AHEAD = "local-ahead"
    MERGED_NO_REMOTE = "merged-no-remote"
    UNMERGED_NO_REMOTE = "unmerged-no-remote"


SAFE_VERDICTS = {SafetyVerdict.REMOTE_UP_TO_DATE, SafetyVerdict.MERGED_NO_REMOTE}


@dataclass
class DeletionSafety:
    """Whether deleting a branch could lose commits, and why."""

    branch: str
    verdict: SafetyVerdict
    reason: str
    status: RemoteBranchStatus

    @property
    def is_safe(self) -> bool:
        return self.verdict in SAFE_VERDICTS
