"""Worktree registry service for git-worktree-keeper."""

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Optional, Sequence, Union

from git_worktree_keeper.config import Config
from git_worktree_keeper.constants import DEFAULT_MAIN_BRANCH, DEFAULT_REMOTE, REFS_HEADS_PREFIX
from git_worktree_keeper.exceptions import (
    AmbiguousIdentifierError,
    RemovalBlockedError,
    WorktreeNotFoundError,
)
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.worktree import (
    RemovalFailure,
    RemovalOptions,
    RemovalResult,
    RemovalSkip,
    RemovalSuccess,
    Worktree,
    WorktreeStatus,
)
from git_worktree_keeper.services.git.remote_status import RemoteStatusChecker
from git_worktree_keeper.services.git.runner import GitRunner
from git_worktree_keeper.utils.branch_names import (
    extract_issue_number,
    extract_issue_number_from_path,
    extract_pr_number,
    extract_pr_number_from_path,
    issue_matches,
)
from git_worktree_keeper.utils.threading import get_optimal_worker_count

logger = get_logger(__name__)

RemovalOutcome = Union[RemovalSuccess, RemovalFailure, RemovalSkip]


def _build_worktree(record: Dict[str, Any], default_branch: Optional[str], is_main: bool) -> Worktree:
    bare = record.get("bare", False)
    detached = record.get("detached", False)
    branch = record.get("branch")

    if bare:
        # Bare entries carry no branch line
        branch = default_branch or DEFAULT_MAIN_BRANCH
    elif detached or not branch:
        branch = "HEAD"
        detached = True

    return Worktree(
        path=record["path"],
        branch=branch,
        commit=record.get("HEAD", ""),
        bare=bare,
        detached=detached,
        locked=record.get("locked", False),
        lock_reason=record.get("lock_reason"),
        prunable=record.get("prunable", False),
        is_main=is_main,
    )


def parse_worktree_list(output: str, default_branch: Optional[str] = None) -> List[Worktree]:
    """Parse `git worktree list --porcelain` output.

    Format:
        worktree /path/to/worktree
        HEAD commit_sha
        branch refs/heads/branch-name   (or "detached", or "bare")
        locked optional reason
        (blank line between worktrees)

    A record starts at each "worktree" line and collects attribute lines
    until the next one, so missing blank lines are tolerated.

    Args:
        output: Porcelain output
        default_branch: Branch name assumed for bare entries (falls back to "main")

    Returns:
        Worktrees in listing order; the first one is the main worktree
    """
    worktrees: List[Worktree] = []
    current: Optional[Dict[str, Any]] = None

    for line in output.splitlines():
        if not line.strip():
            continue

        # Paths may start or end with spaces, so the line is never stripped
        if line.startswith("worktree "):
            if current is not None:
                worktrees.append(_build_worktree(current, default_branch, is_main=not worktrees))
            current = {"path": line[len("worktree "):]}
            continue

        if current is None:
            # Attribute line before any worktree marker
            continue

        keyword, _, value = line.partition(" ")
        if keyword == "HEAD":
            current["HEAD"] = value
        elif keyword == "branch":
            if value.startswith(REFS_HEADS_PREFIX):
                current["branch"] = value[len(REFS_HEADS_PREFIX):]
            else:
                current["branch"] = value
        elif keyword == "bare":
            current["bare"] = True
        elif keyword == "detached":
            current["detached"] = True
        elif keyword == "locked":
            current["locked"] = True
            if value:
                current["lock_reason"] = value
        elif keyword == "prunable":
            current["prunable"] = True

    if current is not None:
        worktrees.append(_build_worktree(current, default_branch, is_main=not worktrees))

    return worktrees


def parse_porcelain_status(status: str) -> WorktreeStatus:
    """Count entries of `git status --porcelain` output."""
    result = WorktreeStatus()
    for line in status.splitlines():
        if len(line) < 3:
            continue

        code = line[:2]
        result.files.append(line[3:])

        if code == "??":
            result.untracked += 1
            continue
        if "M" in code:
            result.modified += 1
        if code[0] in "ADRC":
            result.staged += 1
        if "D" in code:
            result.deleted += 1

    return result


def _same_path(a: str, b: str) -> bool:
    return os.path.realpath(a) == os.path.realpath(b)


class WorktreeService:
    """Service for enumerating, matching and removing git worktrees.

    Nothing is cached: every query re-reads `git worktree list`, since
    worktrees can be added or removed by other processes between calls.
    """

    def __init__(
        self,
        repo_path: str,
        config: Union[Config, dict, None] = None,
        runner: Optional[GitRunner] = None,
        remote_checker: Optional[RemoteStatusChecker] = None,
    ):
        """Initialize the worktree service.

        Args:
            repo_path: Any directory inside the repository
            config: Configuration dictionary or Config object
            runner: Git runner (built from config when omitted)
            remote_checker: Checker consulted before deleting branches
        """
        self.repo_path = os.fspath(repo_path)
        if isinstance(config, dict):
            config = Config.from_dict(config)
        self.config = config if config is not None else Config()
        self.runner = runner or GitRunner.from_config(self.config)
        self.remote_checker = remote_checker or RemoteStatusChecker(
            self.runner, self.config.get("remote_name", DEFAULT_REMOTE)
        )

    @property
    def main_branch(self) -> str:
        return self.config.get("main_branch", DEFAULT_MAIN_BRANCH)

    def list_worktrees(self, default_branch: Optional[str] = None) -> List[Worktree]:
        """Get information about all worktrees.

        Args:
            default_branch: Branch name assumed for bare entries (defaults to the trunk)

        Returns:
            List of Worktree objects, main worktree first
        """
        output = self.runner.run(["worktree", "list", "--porcelain"], self.repo_path)
        worktrees = parse_worktree_list(output, default_branch or self.main_branch)

        logger.debug(f"Found {len(worktrees)} worktrees")
        for wt in worktrees:
            logger.debug(f"  {wt}")
        return worktrees

    def find_worktrees_for_branch(self, branch_name: str) -> List[Worktree]:
        """Get worktrees that have the given branch checked out."""
        return [
            wt for wt in self.list_worktrees()
            if not wt.bare and not wt.detached and wt.branch == branch_name
        ]

    def find_worktrees_for_issue(self, issue) -> List[Worktree]:
        """Get worktrees whose branch or directory carries the issue marker.

        Args:
            issue: Issue number or alphanumeric key (42, "42", "PROJ-12")
        """
        matches = []
        for wt in self.list_worktrees():
            if wt.bare:
                continue
            if issue_matches(extract_issue_number(wt.branch), issue) or issue_matches(
                extract_issue_number_from_path(wt.path), issue
            ):
                matches.append(wt)
        return matches

    def find_worktrees_for_pr(self, pr_number: int, branch_name: str = "") -> List[Worktree]:
        """Get worktrees created for a pull request.

        Args:
            pr_number: Pull request number
            branch_name: The PR's head branch, when known
        """
        matches = []
        for wt in self.list_worktrees():
            if wt.bare:
                continue
            if (
                extract_pr_number_from_path(wt.path) == pr_number
                or extract_pr_number(wt.branch) == pr_number
                or (branch_name and wt.branch == branch_name)
            ):
                matches.append(wt)
        return matches

    @staticmethod
    def require_single(matches: Sequence[Worktree], identifier: str, strict: bool = False) -> Worktree:
        """Pick one worktree out of a finder's result.

        Args:
            matches: Result of one of the find_* methods
            identifier: What the user asked for (used in messages)
            strict: Raise instead of picking the first of several matches

        Raises:
            WorktreeNotFoundError: Nothing matched
            AmbiguousIdentifierError: Several matched and strict is set
        """
        if not matches:
            raise WorktreeNotFoundError(f"No worktree found for: {identifier}")
        if len(matches) > 1:
            if strict:
                raise AmbiguousIdentifierError(identifier, list(matches))
            logger.warning(
                f"Identifier '{identifier}' matches {len(matches)} worktrees, using {matches[0].path}"
            )
        return matches[0]

    def find_main_worktree(self, main_branch: Optional[str] = None) -> Worktree:
        """Find the worktree that has trunk checked out.

        Falls back to the first non-bare worktree when trunk is checked out
        nowhere; callers that need trunk there verify the branch themselves.

        Raises:
            WorktreeNotFoundError: The repository has no non-bare worktree
        """
        main_branch = main_branch or self.main_branch
        worktrees = [wt for wt in self.list_worktrees(main_branch) if not wt.bare]
        for wt in worktrees:
            if wt.branch == main_branch:
                return wt

        if not worktrees:
            raise WorktreeNotFoundError(
                f"No worktree found with branch '{main_branch}' checked out"
            )
        logger.debug(f"No worktree found for branch '{main_branch}', falling back to {worktrees[0].path}")
        return worktrees[0]

    def get_worktree_status(self, worktree_path: str) -> WorktreeStatus:
        """Get file status counts of a worktree."""
        status = self.runner.run(["status", "--porcelain"], worktree_path)
        return parse_porcelain_status(status)

    def has_uncommitted_changes(self, worktree_path: str) -> bool:
        """Check for staged, unstaged or untracked changes."""
        return self.get_worktree_status(worktree_path).has_changes

    def remove_worktree(self, worktree: Worktree, force: bool = False, cwd: Optional[str] = None) -> None:
        """Remove a single worktree registration and directory.

        Args:
            worktree: Worktree to remove
            force: Remove even if dirty; locked worktrees need a double force
            cwd: Directory to run git from (must not be inside the worktree)
        """
        args = ["worktree", "remove"]
        if force:
            args.append("--force")
            if worktree.locked:
                args.append("--force")
        args.append(worktree.path)

        self.runner.run(args, cwd or self.repo_path)
        logger.info(f"Removed worktree at {worktree.path}")

    def delete_branch(self, branch_name: str, cwd: Optional[str] = None) -> None:
        """Delete a local branch (safety must already be established)."""
        self.runner.run(["branch", "-D", branch_name], cwd or self.repo_path)
        logger.info(f"Deleted branch {branch_name}")

    def prune_worktrees(self, cwd: Optional[str] = None) -> None:
        """Prune metadata of worktrees whose directories are gone."""
        self.runner.run(["worktree", "prune"], cwd or self.repo_path)
        logger.info("Pruned orphaned worktree metadata")

    def _branch_is_deletable(self, worktree: Worktree) -> bool:
        return not worktree.bare and not worktree.detached and not self.config.is_protected(worktree.branch)

    def _remove_one(self, worktree: Worktree, options: RemovalOptions, main_path: str) -> RemovalOutcome:
        """Remove one worktree; never raises, the outcome carries any error."""
        try:
            if _same_path(worktree.path, main_path):
                return RemovalSkip(worktree, f"Cannot remove the main worktree: {worktree}")

            if worktree.locked and not options.force:
                reason = f": {worktree.lock_reason}" if worktree.lock_reason else ""
                return RemovalSkip(worktree, f"Worktree is locked{reason}")

            orphaned = not os.path.exists(worktree.path)
            if not options.force and not orphaned and self.has_uncommitted_changes(worktree.path):
                return RemovalSkip(
                    worktree,
                    f"Worktree has uncommitted changes (dirty): {worktree.path}. "
                    "Commit or stash them, or use --force to discard them.",
                )

            delete_branch = options.remove_branch and self._branch_is_deletable(worktree)
            if delete_branch and not options.force:
                main_branch = options.main_branch or self.main_branch
                try:
                    self.remote_checker.ensure_branch_deletable(worktree.branch, main_branch, main_path)
                except RemovalBlockedError as e:
                    return RemovalSkip(worktree, str(e))

            if options.dry_run:
                message = f"Would remove worktree {worktree.path}"
                if delete_branch:
                    message += f" and branch {worktree.branch}"
                return RemovalSuccess(worktree, branch_deleted=False, message=message)

            if orphaned:
                logger.info(f"Worktree directory {worktree.path} is gone, pruning its metadata")
                self.prune_worktrees(cwd=main_path)
            else:
                self.remove_worktree(worktree, force=options.force, cwd=main_path)

            message = f"Removed worktree {worktree.path}"
            if delete_branch:
                self.delete_branch(worktree.branch, cwd=main_path)
                message += f" and branch {worktree.branch}"
            elif options.remove_branch:
                message += f" (kept branch {worktree.branch})"

            return RemovalSuccess(worktree, branch_deleted=delete_branch, message=message)
        except Exception as e:
            logger.error(f"Failed to remove worktree at {worktree.path}: {e}")
            return RemovalFailure(worktree, e)

    def remove_worktrees(
        self, worktrees: Sequence[Worktree], options: Optional[RemovalOptions] = None
    ) -> RemovalResult:
        """Remove several worktrees, each independently of the others.

        A failure on one worktree is recorded and processing continues.
        Removal runs sequentially unless the config disables `sequential`.

        Args:
            worktrees: Worktrees to remove
            options: Removal options

        Returns:
            RemovalResult partitioned into successes, failures and skipped
        """
        options = options or RemovalOptions()
        result = RemovalResult()
        if not worktrees:
            return result

        main_path = self._main_path()

        if self.config.get("sequential", True) or len(worktrees) == 1:
            outcomes = [self._remove_one(wt, options, main_path) for wt in worktrees]
        else:
            max_workers = min(get_optimal_worker_count(self.config.get("workers")), len(worktrees))
            logger.debug(f"Using {max_workers} workers for parallel removal")
            outcomes: List[Optional[RemovalOutcome]] = [None] * len(worktrees)
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                future_to_index = {
                    executor.submit(self._remove_one, wt, options, main_path): index
                    for index, wt in enumerate(worktrees)
                }
                for future in as_completed(future_to_index):
                    outcomes[future_to_index[future]] = future.result()

        for outcome in outcomes:
            if isinstance(outcome, RemovalSuccess):
                result.successes.append(outcome)
            elif isinstance(outcome, RemovalSkip):
                result.skipped.append(outcome)
            else:
                result.failures.append(outcome)

        logger.info(
            f"Removal finished: {len(result.successes)} removed, "
            f"{len(result.failures)} failed, {len(result.skipped)} skipped"
        )
        return result

    def _main_path(self) -> str:
        """Path of the primary worktree (first listing entry)."""
        worktrees = self.list_worktrees()
        if not worktrees:
            raise WorktreeNotFoundError("No worktrees found in repository")
        return worktrees[0].path
