"""Custom exceptions for git-worktree-keeper"""

from enum import Enum
from typing import List, Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from git_worktree_keeper.models.remote import DeletionSafety
    from git_worktree_keeper.models.worktree import Worktree


class ErrorKind(Enum):
    """Closed set of failure kinds callers can match on."""
    COMMAND_FAILED = "command-failed"
    BRANCH_NOT_FOUND = "branch-not-found"
    NOT_FAST_FORWARDABLE = "not-fast-forwardable"
    CONFLICT_DETECTED = "conflict-detected"
    REMOVAL_BLOCKED = "removal-blocked"
    AMBIGUOUS_IDENTIFIER = "ambiguous-identifier"
    NETWORK_ERROR = "network-error"
    WORKTREE_NOT_FOUND = "worktree-not-found"
    UNEXPECTED_BRANCH = "unexpected-branch"
    REBASE_FAILED = "rebase-failed"
    MERGE_FAILED = "merge-failed"


# Phrases git prints when the remote cannot be reached at all
NETWORK_ERROR_PHRASES = (
    "could not resolve host",
    "could not resolve hostname",
    "connection refused",
    "connection timed out",
    "operation timed out",
    "network is unreachable",
    "unable to access",
    "connection reset",
    "could not read from remote repository",
)

BRANCH_NOT_FOUND_PHRASES = (
    "couldn't find remote ref",
    "not a valid ref",
    "unknown revision",
    "not a valid object name",
    "does not exist",
    "not found",
)

CONFLICT_PHRASES = (
    "conflict",
    "could not apply",
)

NOT_FAST_FORWARD_PHRASES = (
    "not possible to fast-forward",
    "not possible to fast forward",
)


class WorktreeKeeperError(Exception):
    """Base exception for all git-worktree-keeper errors."""

    kind = ErrorKind.COMMAND_FAILED


class GitOperationError(WorktreeKeeperError):
    """Exception raised for errors in Git operations."""

    def __init__(self, operation: str, branch: Optional[str] = None, message: Optional[str] = None):
        self.operation = operation
        self.branch = branch
        self.message = message

        error_msg = f"Git operation '{operation}' failed"
        if branch:
            error_msg += f" for branch '{branch}'"
        if message:
            error_msg += f": {message}"

        super().__init__(error_msg)


class CommandFailedError(WorktreeKeeperError):
    """A git subprocess exited non-zero (or timed out)."""

    kind = ErrorKind.COMMAND_FAILED

    def __init__(
        self,
        args: Sequence[str],
        exit_code: int,
        stderr: str = "",
        stdout: str = "",
        cwd: Optional[str] = None,
    ):
        self.command_args = list(args)
        self.exit_code = exit_code
        self.stderr = (stderr or "").strip()
        self.stdout = stdout or ""
        self.cwd = cwd

        command = "git " + " ".join(self.command_args)
        if self.stderr:
            error_msg = f"'{command}' failed (exit {exit_code}): {self.stderr}"
        else:
            error_msg = f"'{command}' failed with exit code {exit_code}"

        super().__init__(error_msg)


class NetworkError(CommandFailedError):
    """A git command failed because the remote could not be reached."""

    kind = ErrorKind.NETWORK_ERROR


class BranchNotFoundError(GitOperationError):
    """Exception raised when a branch is not found."""

    kind = ErrorKind.BRANCH_NOT_FOUND

    def __init__(self, branch: str, message: Optional[str] = None):
        self.operation = "find_branch"
        self.branch = branch
        self.message = message or f'Branch "{branch}" does not exist'
        WorktreeKeeperError.__init__(self, self.message)


class NotFastForwardableError(GitOperationError):
    """Trunk has moved past the merge-base of the branch being merged."""

    kind = ErrorKind.NOT_FAST_FORWARDABLE

    def __init__(self, main_branch: str, branch: str, merge_base: str, main_head: str):
        self.operation = "fast_forward_merge"
        self.branch = branch
        self.main_branch = main_branch
        self.merge_base = merge_base
        self.main_head = main_head
        self.message = (
            "Cannot perform fast-forward merge.\n"
            f"The {main_branch} branch has moved forward since this branch was created.\n"
            f"Merge base: {merge_base}\n"
            f"Main HEAD:  {main_head}\n\n"
            "To fix this:\n"
            f"  1. Rebase the branch on {main_branch} first: git rebase {main_branch}\n"
            "  2. Then run the merge again"
        )
        WorktreeKeeperError.__init__(self, self.message)


class ConflictDetectedError(GitOperationError):
    """A rebase stopped on conflicts that were not resolved."""

    kind = ErrorKind.CONFLICT_DETECTED

    def __init__(self, conflicted_files: List[str], extra: Optional[str] = None):
        self.operation = "rebase"
        self.branch = None
        self.conflicted_files = list(conflicted_files)
        file_list = "\n".join(f"  • {path}" for path in self.conflicted_files)
        self.message = (
            "Rebase failed - merge conflicts detected in:\n"
            f"{file_list}\n\n"
            "To resolve manually:\n"
            "  1. Fix conflicts in the files above\n"
            "  2. Stage resolved files: git add <files>\n"
            "  3. Continue rebase: git rebase --continue\n"
            "  4. Or abort rebase: git rebase --abort"
        )
        if extra:
            self.message += f"\n\n{extra}"
        WorktreeKeeperError.__init__(self, self.message)


class RebaseFailedError(GitOperationError):
    """A rebase failed for a reason other than conflicts."""

    kind = ErrorKind.REBASE_FAILED

    def __init__(self, target: str, cause: Exception):
        self.operation = "rebase"
        self.branch = target
        self.cause = cause
        self.message = (
            f"Rebase onto {target} failed: {cause}\n"
            "Run: git status for more details\n"
            "Or: git rebase --abort to cancel the rebase"
        )
        WorktreeKeeperError.__init__(self, self.message)


class MergeFailedError(GitOperationError):
    """A fast-forward-only merge was rejected by git."""

    kind = ErrorKind.MERGE_FAILED

    def __init__(self, branch: str, main_branch: str, cause: Exception):
        self.operation = "merge"
        self.branch = branch
        self.cause = cause
        self.message = (
            f"Fast-forward merge failed: {cause}\n\n"
            "To recover:\n"
            "  1. Check merge status: git status\n"
            "  2. Abort merge if needed: git merge --abort\n"
            f"  3. Verify branch is rebased: git rebase {main_branch}\n"
            "  4. Try the merge again"
        )
        WorktreeKeeperError.__init__(self, self.message)


class WorktreeNotFoundError(WorktreeKeeperError):
    """No worktree matched the requested branch or identifier."""

    kind = ErrorKind.WORKTREE_NOT_FOUND


class UnexpectedBranchError(GitOperationError):
    """The trunk worktree has a different branch checked out."""

    kind = ErrorKind.UNEXPECTED_BRANCH

    def __init__(self, expected: str, found: str, path: str):
        self.operation = "verify_branch"
        self.branch = expected
        self.found = found
        self.path = path
        self.message = (
            f"Expected {expected} branch but found: {found}\n"
            f"At location: {path}\n"
            "This indicates the main worktree detection failed."
        )
        WorktreeKeeperError.__init__(self, self.message)


class RemovalBlockedError(WorktreeKeeperError):
    """Deleting a branch would risk losing commits."""

    kind = ErrorKind.REMOVAL_BLOCKED

    def __init__(self, branch: str, safety: "DeletionSafety"):
        self.branch = branch
        self.safety = safety
        self.verdict = safety.verdict
        super().__init__(safety.reason)


class AmbiguousIdentifierError(WorktreeKeeperError):
    """An identifier matched more than one worktree."""

    kind = ErrorKind.AMBIGUOUS_IDENTIFIER

    def __init__(self, identifier: str, matches: List["Worktree"]):
        self.identifier = identifier
        self.matches = list(matches)
        paths = "\n".join(f"  {wt.branch} @ {wt.path}" for wt in self.matches)
        super().__init__(f"Identifier '{identifier}' matches {len(self.matches)} worktrees:\n{paths}")


def _contains_any(text: str, phrases: Sequence[str]) -> bool:
    return any(phrase in text for phrase in phrases)


def classify_command_error(error: CommandFailedError) -> ErrorKind:
    """Translate a raw command failure into an ErrorKind.

    This is the only place stderr text is pattern-matched; everything else
    matches on the returned enum member.

    Args:
        error: The failed command

    Returns:
        The ErrorKind that best describes the failure
    """
    text = f"{error.stderr}\n{error.stdout}".lower()

    if _contains_any(text, NETWORK_ERROR_PHRASES):
        return ErrorKind.NETWORK_ERROR
    if _contains_any(text, NOT_FAST_FORWARD_PHRASES):
        return ErrorKind.NOT_FAST_FORWARDABLE
    if _contains_any(text, CONFLICT_PHRASES):
        return ErrorKind.CONFLICT_DETECTED
    if _contains_any(text, BRANCH_NOT_FOUND_PHRASES):
        return ErrorKind.BRANCH_NOT_FOUND
    return ErrorKind.COMMAND_FAILED


def command_failed(
    args: Sequence[str],
    exit_code: int,
    stderr: str = "",
    stdout: str = "",
    cwd: Optional[str] = None,
) -> CommandFailedError:
    """Build the error for a failed git command, as a NetworkError when the remote was unreachable."""
    error = CommandFailedError(args, exit_code, stderr, stdout, cwd=cwd)
    if classify_command_error(error) is ErrorKind.NETWORK_ERROR:
        return NetworkError(args, exit_code, stderr, stdout, cwd=cwd)
    return error
