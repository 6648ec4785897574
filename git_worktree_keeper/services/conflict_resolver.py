"""Delegated resolution of rebase conflicts."""

import shlex
import shutil
import subprocess
from abc import ABC, abstractmethod
from typing import List, Sequence, Union, TYPE_CHECKING

from rich.console import Console

from git_worktree_keeper.constants import DEFAULT_AGENT_COMMAND
from git_worktree_keeper.logging_config import get_logger

if TYPE_CHECKING:
    from git_worktree_keeper.config import Config

console = Console()
logger = get_logger(__name__)

CONFLICT_SYSTEM_PROMPT = (
    "Please help resolve the git rebase conflicts in this repository. "
    "Analyze the conflicted files, understand the changes from both branches, "
    "fix the conflicts, then run 'git add .' to stage the resolved files, "
    "and finally run 'git rebase --continue' to continue the rebase process. "
    "Once the issue is resolved, tell the user they can use /exit to continue with the process."
)

CONFLICT_USER_PROMPT = "Help me with this rebase please."

# git reset and git checkout are left out: they can discard the user's work
CONFLICT_ALLOWED_TOOLS = [
    "Bash(git status:*)",
    "Bash(git diff:*)",
    "Bash(git log:*)",
    "Bash(git add:*)",
    "Bash(git rebase:*)",
]


class ConflictResolver(ABC):
    """Something that may be able to finish a rebase stopped on conflicts.

    Callers never trust the return value alone: after `attempt_resolve`
    they re-check the repository for conflicts and an in-progress rebase.
    """

    @abstractmethod
    def is_available(self) -> bool:
        """Whether this resolver can be used at all."""

    @abstractmethod
    def attempt_resolve(self, worktree_path: str, conflicted_files: Sequence[str]) -> bool:
        """Try to resolve the conflicts and continue the rebase.

        Returns:
            True if the resolver ran to completion
        """


class FailFastResolver(ConflictResolver):
    """Resolver that is never available; conflicts fail immediately."""

    def is_available(self) -> bool:
        return False

    def attempt_resolve(self, worktree_path: str, conflicted_files: Sequence[str]) -> bool:
        return False


class AgentConflictResolver(ConflictResolver):
    """Hand the conflicted worktree to an AI coding agent CLI."""

    def __init__(self, command: str = DEFAULT_AGENT_COMMAND, headless: bool = False):
        """Initialize the resolver.

        Args:
            command: Agent executable, optionally with extra arguments
            headless: Run the agent non-interactively instead of in this terminal
        """
        self.command = shlex.split(command) if command else []
        self.headless = headless

    def is_available(self) -> bool:
        return bool(self.command) and shutil.which(self.command[0]) is not None

    def build_command(self, worktree_path: str) -> List[str]:
        """Build the agent invocation for a worktree."""
        cmd = [*self.command]
        if self.headless:
            cmd.append("-p")
        cmd.append(CONFLICT_USER_PROMPT)
        cmd.extend(["--append-system-prompt", CONFLICT_SYSTEM_PROMPT])
        cmd.extend(["--add-dir", worktree_path])
        cmd.append("--allowedTools")
        cmd.extend(CONFLICT_ALLOWED_TOOLS)
        return cmd

    def attempt_resolve(self, worktree_path: str, conflicted_files: Sequence[str]) -> bool:
        if not self.is_available():
            logger.debug(f"Agent command {self.command[:1]} not found, skipping conflict resolution")
            return False

        logger.info(f"Launching agent to resolve conflicts in {len(conflicted_files)} file(s)...")
        console.print(
            f"[cyan]Starting {self.command[0]} to resolve conflicts "
            f"in {len(conflicted_files)} file(s)...[/cyan]\n"
        )

        try:
            result = subprocess.run(self.build_command(worktree_path), cwd=worktree_path, check=False)
        except OSError as e:
            logger.error(f"Failed to launch agent {self.command[0]}: {e}")
            return False

        if result.returncode != 0:
            logger.warning(f"Agent exited with code {result.returncode}")
            return False
        return True


def build_conflict_resolver(config: Union["Config", dict, None] = None) -> ConflictResolver:
    """Pick the resolver described by the config."""
    if config is None or config.get("enable_agent", True):
        command = config.get("agent_command", DEFAULT_AGENT_COMMAND) if config else DEFAULT_AGENT_COMMAND
        return AgentConflictResolver(command)
    return FailFastResolver()
