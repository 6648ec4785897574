"""Remote branch status and deletion safety checks."""

from typing import Optional, Union, TYPE_CHECKING

from git_worktree_keeper.constants import DEFAULT_REMOTE
from git_worktree_keeper.exceptions import (
    CommandFailedError,
    NetworkError,
    RemovalBlockedError,
)
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.remote import DeletionSafety, RemoteBranchStatus, SafetyVerdict
from git_worktree_keeper.services.git.runner import GitRunner

if TYPE_CHECKING:
    from git_worktree_keeper.config import Config

logger = get_logger(__name__)


class RemoteStatusChecker:
    """Decide whether deleting a branch could lose commits.

    The checker compares the local tip with the tip the remote advertises
    right now. Nothing is cached: every call re-queries the remote.
    """

    def __init__(
        self,
        runner: Optional[GitRunner] = None,
        remote_name: str = DEFAULT_REMOTE,
    ):
        self.runner = runner or GitRunner()
        self.remote_name = remote_name

    @classmethod
    def from_config(cls, config: Union["Config", dict], runner: Optional[GitRunner] = None):
        return cls(runner or GitRunner.from_config(config), config.get("remote_name", DEFAULT_REMOTE))

    def _network_failure(self, error: CommandFailedError) -> RemoteBranchStatus:
        logger.warning(f"Network error while checking remote {self.remote_name}: {error.stderr}")
        return RemoteBranchStatus(
            exists=False,
            network_error=True,
            error_message=error.stderr or str(error),
        )

    def check(self, branch_name: str, cwd: str) -> RemoteBranchStatus:
        """Compare a local branch with its copy on the remote.

        Args:
            branch_name: Local branch to check
            cwd: Any directory inside the repository

        Returns:
            RemoteBranchStatus for this point in time
        """
        # Refresh the remote-tracking ref so the remote tip is available locally
        try:
            self.runner.run(["fetch", self.remote_name, branch_name], cwd, network=True)
        except NetworkError as e:
            return self._network_failure(e)
        except CommandFailedError as e:
            # Branch missing on the remote is expected here
            logger.debug(f"Fetch of {branch_name} failed (branch may not exist remotely): {e.stderr}")

        try:
            output = self.runner.run(
                ["ls-remote", "--heads", self.remote_name, branch_name], cwd, network=True
            )
        except NetworkError as e:
            return self._network_failure(e)

        remote_commit = self._parse_ls_remote(output, branch_name)
        if not remote_commit:
            logger.debug(f"Branch {branch_name} does not exist on {self.remote_name}")
            return RemoteBranchStatus(exists=False)

        local_commit = self.runner.run(["rev-parse", f"refs/heads/{branch_name}"], cwd).strip()
        if local_commit == remote_commit:
            return RemoteBranchStatus(exists=True)

        try:
            self.runner.run(["merge-base", "--is-ancestor", local_commit, remote_commit], cwd)
        except CommandFailedError as e:
            # Not an ancestor, or the remote commit is unknown locally: treat as unpushed work
            logger.debug(f"Local {branch_name} is not contained in {self.remote_name}: {e}")
            return RemoteBranchStatus(exists=True, local_ahead=True)

        return RemoteBranchStatus(exists=True, remote_ahead=True)

    @staticmethod
    def _parse_ls_remote(output: str, branch_name: str) -> Optional[str]:
        """Find the commit advertised for refs/heads/<branch_name>."""
        wanted = f"refs/heads/{branch_name}"
        for line in output.splitlines():
            parts = line.strip().split()
            if len(parts) == 2 and parts[1] == wanted:
                return parts[0]
        return None

    def is_branch_merged(self, branch_name: str, main_branch: str, cwd: str) -> bool:
        """Check whether the branch tip is an ancestor of trunk.

        Any failure counts as "not merged".
        """
        try:
            self.runner.run(["merge-base", "--is-ancestor", branch_name, main_branch], cwd)
            return True
        except CommandFailedError as e:
            logger.debug(f"{branch_name} is not merged into {main_branch}: {e}")
            return False

    def assess_branch_deletion(self, branch_name: str, main_branch: str, cwd: str) -> DeletionSafety:
        """Apply the deletion safety table to a branch.

        1. Network error -> block (cannot verify)
        2. Remote ahead of or equal to local -> allow
        3. Local ahead of remote -> block (unpushed commits)
        4. No remote copy, merged into trunk -> allow
        5. No remote copy, not merged -> block
        """
        status = self.check(branch_name, cwd)

        if status.network_error:
            return DeletionSafety(
                branch=branch_name,
                verdict=SafetyVerdict.NETWORK_ERROR,
                reason=(
                    "Cannot verify remote branch status due to network error.\n"
                    f"Error: {status.error_message or 'Unknown network error'}\n"
                    f"Unable to determine if branch '{branch_name}' is safely backed up. "
                    "Use --force to proceed without verification."
                ),
                status=status,
            )

        if status.exists and status.local_ahead:
            return DeletionSafety(
                branch=branch_name,
                verdict=SafetyVerdict.LOCAL_AHEAD,
                reason=(
                    f"Branch '{branch_name}' has unpushed commits that would be lost.\n"
                    f"Push them first: git push {self.remote_name} {branch_name}"
                ),
                status=status,
            )

        if status.exists:
            return DeletionSafety(
                branch=branch_name,
                verdict=SafetyVerdict.REMOTE_UP_TO_DATE,
                reason=f"All commits of '{branch_name}' exist on {self.remote_name}",
                status=status,
            )

        if self.is_branch_merged(branch_name, main_branch, cwd):
            return DeletionSafety(
                branch=branch_name,
                verdict=SafetyVerdict.MERGED_NO_REMOTE,
                reason=f"Branch '{branch_name}' is merged into '{main_branch}'",
                status=status,
            )

        return DeletionSafety(
            branch=branch_name,
            verdict=SafetyVerdict.UNMERGED_NO_REMOTE,
            reason=(
                f"Branch '{branch_name}' has not been pushed to remote and is not merged "
                f"into '{main_branch}'. Deleting it would result in data loss.\n"
                f"Push it first: git push -u {self.remote_name} {branch_name}"
            ),
            status=status,
        )

    def ensure_branch_deletable(self, branch_name: str, main_branch: str, cwd: str) -> DeletionSafety:
        """Like assess_branch_deletion, but raise RemovalBlockedError when unsafe."""
        safety = self.assess_branch_deletion(branch_name, main_branch, cwd)
        if not safety.is_safe:
            raise RemovalBlockedError(branch_name, safety)
        return safety
