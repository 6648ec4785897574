"""Configuration handling for git-worktree-keeper"""

from dataclasses import dataclass, field, fields
from typing import Optional, List

from git_worktree_keeper.constants import (
    DEFAULT_AGENT_COMMAND,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_MAIN_BRANCH,
    DEFAULT_REMOTE,
    NETWORK_COMMAND_TIMEOUT,
)


@dataclass
class Config:
    """Configuration for git-worktree-keeper with validation."""

    # Branches
    main_branch: str = DEFAULT_MAIN_BRANCH
    protected_branches: List[str] = field(default_factory=lambda: ["main", "master"])
    remote_name: str = DEFAULT_REMOTE

    # Subprocess timeouts (seconds)
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    network_timeout: float = NETWORK_COMMAND_TIMEOUT

    # Batch removal
    sequential: bool = True  # Concurrent removal only when explicitly enabled
    workers: Optional[int] = None  # None = auto-detect

    # Conflict resolution agent
    agent_command: str = DEFAULT_AGENT_COMMAND
    enable_agent: bool = True

    # Execution modes
    dry_run: bool = False
    force: bool = False
    verbose: bool = False
    debug: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_main_branch()
        self._validate_protected_branches()
        self._validate_remote_name()
        self._validate_timeouts()
        self._validate_workers()

    def _validate_main_branch(self):
        """Validate main_branch is not empty."""
        if not self.main_branch or not self.main_branch.strip():
            raise ValueError("main_branch cannot be empty")
        self.main_branch = self.main_branch.strip()

    def _validate_protected_branches(self):
        """Validate protected_branches list."""
        if not isinstance(self.protected_branches, list):
            raise ValueError("protected_branches must be a list")

        # Ensure main_branch is in protected_branches
        if self.main_branch not in self.protected_branches:
            self.protected_branches.append(self.main_branch)

    def _validate_remote_name(self):
        """Validate remote_name is not empty."""
        if not self.remote_name or not self.remote_name.strip():
            raise ValueError("remote_name cannot be empty")

    def _validate_timeouts(self):
        """Validate timeouts are positive."""
        if self.command_timeout <= 0:
            raise ValueError(f"command_timeout must be positive, got {self.command_timeout}")
        if self.network_timeout <= 0:
            raise ValueError(f"network_timeout must be positive, got {self.network_timeout}")

    def _validate_workers(self):
        """Validate workers is positive when given."""
        if self.workers is not None and self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers}")

    def is_protected(self, branch_name: str) -> bool:
        """Check whether a branch must never be deleted."""
        return branch_name in self.protected_branches

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def get(self, key: str, default=None):
        """Get config value by key."""
        return getattr(self, key, default)

    @classmethod
    def from_dict(cls, config_dict: dict) -> "Config":
        """Create Config from dictionary, ignoring unknown keys."""
        known_fields = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in config_dict.items() if k in known_fields}
        return cls(**filtered)
