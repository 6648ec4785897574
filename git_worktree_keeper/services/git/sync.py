"""Rebase and fast-forward merge workflows between worktrees and trunk."""

import os
from typing import Callable, List, Optional, Tuple, Union

from rich.console import Console

from git_worktree_keeper.config import Config
from git_worktree_keeper.constants import (
    DEFAULT_MAIN_BRANCH,
    NO_HOOKS_CONFIG,
    PLACEHOLDER_COMMIT_PREFIX,
    WIP_COMMIT_MESSAGE,
)
from git_worktree_keeper.exceptions import (
    BranchNotFoundError,
    CommandFailedError,
    ConflictDetectedError,
    GitOperationError,
    MergeFailedError,
    NotFastForwardableError,
    RebaseFailedError,
    UnexpectedBranchError,
)
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.sync import SyncOperationOptions, SyncOutcome, SyncResult
from git_worktree_keeper.services.conflict_resolver import ConflictResolver, build_conflict_resolver
from git_worktree_keeper.services.git.runner import GitRunner
from git_worktree_keeper.services.git.worktrees import WorktreeService

console = Console()
logger = get_logger(__name__)

WIP_RESTORE_COMMAND = "git reset --soft HEAD~1 && git reset HEAD"


class SyncEngine:
    """Synchronize a worktree with the trunk branch.

    Two workflows are offered: rebasing a worktree onto trunk (keeping any
    uncommitted work in a temporary WIP commit) and fast-forwarding trunk
    to a finished branch. Dry runs never issue a mutating git command.
    """

    def __init__(
        self,
        config: Union[Config, dict, None] = None,
        runner: Optional[GitRunner] = None,
        conflict_resolver: Optional[ConflictResolver] = None,
        confirm: Optional[Callable[[str], bool]] = None,
    ):
        """Initialize the engine.

        Args:
            config: Configuration dictionary or Config object
            runner: Git runner (built from config when omitted)
            conflict_resolver: Resolver for rebase conflicts (built from config when omitted)
            confirm: Asked before mutating; returning False cancels. When omitted
                the commit list is only displayed.
        """
        self.config = config if config is not None else Config()
        self.runner = runner or GitRunner.from_config(self.config)
        self.conflict_resolver = conflict_resolver or build_conflict_resolver(self.config)
        self.confirm = confirm

    def _resolve_main_branch(self, main_branch: Optional[str]) -> str:
        return main_branch or self.config.get("main_branch") or DEFAULT_MAIN_BRANCH

    def _git(self, args: List[str], cwd: str, **kwargs) -> str:
        return self.runner.run(args, cwd, **kwargs)

    def _show_commits(self, commits: List[str], action: str) -> None:
        console.print(f"[cyan]Found {len(commits)} commit(s) to {action}:[/cyan]")
        for commit in commits:
            console.print(f"  {commit}")

    def _list_commits(self, revision_range: str, cwd: str) -> List[str]:
        output = self._git(["log", "--oneline", revision_range], cwd).strip()
        return output.splitlines() if output else []

    def _confirmed(self, question: str, options: SyncOperationOptions) -> bool:
        if options.force or options.dry_run:
            return True
        if self.confirm is None:
            logger.info("Proceeding... (use --force to skip confirmations)")
            return True
        return self.confirm(question)

    # Repository state queries

    def detect_conflicted_files(self, worktree_path: str) -> List[str]:
        """List files with unresolved conflicts (empty if the query fails)."""
        try:
            output = self._git(["diff", "--name-only", "--diff-filter=U"], worktree_path)
        except CommandFailedError as e:
            logger.debug(f"Could not list conflicted files: {e}")
            return []
        return [line for line in output.splitlines() if line.strip()]

    def is_rebase_in_progress(self, worktree_path: str) -> bool:
        """Check for rebase-merge or rebase-apply state in the worktree's git dir."""
        # Linked worktrees have a .git file, so ask git for the real directory
        git_dir = self._git(["rev-parse", "--absolute-git-dir"], worktree_path).strip()
        return any(
            os.path.isdir(os.path.join(git_dir, name)) for name in ("rebase-merge", "rebase-apply")
        )

    def abort_in_progress_rebase(self, worktree_path: str, dry_run: bool = False) -> bool:
        """Abort a rebase left behind by an interrupted run.

        Returns:
            True if a stale rebase was found
        """
        if not self.is_rebase_in_progress(worktree_path):
            return False

        if dry_run:
            logger.warning("[DRY RUN] A rebase is in progress; a real run would abort it first")
            return True

        logger.warning("A rebase is already in progress. Aborting the stale rebase before proceeding...")
        try:
            self._git(["rebase", "--abort"], worktree_path)
        except CommandFailedError as e:
            if not self.is_rebase_in_progress(worktree_path):
                logger.info("Rebase was already resolved by another process.")
                return True
            raise GitOperationError(
                "rebase --abort",
                message=(
                    f"Failed to abort in-progress rebase: {e}\n"
                    'Manual recovery: run "git rebase --abort" in the worktree directory.'
                ),
            ) from e

        logger.info("Stale rebase aborted successfully.")
        return True

    def has_uncommitted_changes(self, worktree_path: str) -> bool:
        return bool(self._git(["status", "--porcelain"], worktree_path).strip())

    # WIP commit handling

    def _create_wip_commit(self, worktree_path: str) -> str:
        """Commit everything (untracked files included) into a temporary commit."""
        logger.info("Uncommitted changes detected, creating temporary WIP commit...")
        self._git(["add", "-A"], worktree_path)
        self._git(["commit", "--no-verify", "-m", WIP_COMMIT_MESSAGE], worktree_path)
        wip_hash = self._git(["rev-parse", "HEAD"], worktree_path).strip()
        logger.debug(f"Created WIP commit: {wip_hash}")
        return wip_hash

    def _restore_wip_commit(self, worktree_path: str, wip_hash: str) -> Optional[str]:
        """Fold the WIP commit back into uncommitted changes.

        Returns:
            A warning if the restore failed (never raises)
        """
        logger.info("Restoring uncommitted changes from WIP commit...")
        try:
            self._git(["reset", "--soft", "HEAD~1"], worktree_path)
            self._git(["reset", "HEAD"], worktree_path)
        except CommandFailedError as e:
            warning = (
                f"Failed to restore WIP commit ({wip_hash}). "
                "Your changes are safe in the commit history. "
                f"Manual recovery: {WIP_RESTORE_COMMAND}"
            )
            logger.warning(f"{warning} ({e})")
            return warning
        logger.info("Restored uncommitted changes from WIP commit")
        return None

    def _settle_wip_after_failure(self, worktree_path: str, wip_hash: Optional[str]) -> Optional[str]:
        """Unwind the WIP commit after a failed rebase, or explain how to.

        While the rebase is still stopped the WIP commit cannot be reset
        without corrupting it, so recovery instructions are returned instead.
        """
        if not wip_hash:
            return None

        if self.is_rebase_in_progress(worktree_path):
            message = (
                f"Your uncommitted changes are saved in a temporary WIP commit ({wip_hash[:8]}).\n"
                f"After finishing or aborting the rebase, restore them with: {WIP_RESTORE_COMMAND}"
            )
            logger.warning(message)
            return message

        return self._restore_wip_commit(worktree_path, wip_hash)

    def unwind_leftover_wip_commit(self, worktree_path: str, dry_run: bool = False) -> Optional[str]:
        """Fold a WIP commit left at HEAD by an earlier failed rebase back into the tree.

        Returns:
            A warning for the result, if there was a WIP commit to report

        Raises:
            GitOperationError: The WIP commit is still at HEAD and could not be unwound
        """
        subject = self._git(["log", "-1", "--format=%s"], worktree_path).strip()
        if subject != WIP_COMMIT_MESSAGE:
            return None

        if dry_run:
            warning = "[DRY RUN] HEAD is a leftover WIP commit; a real run would restore it as uncommitted changes"
            logger.warning(warning)
            return warning

        logger.warning("HEAD is a WIP commit left by an earlier rebase, restoring it first...")
        leftover = self._git(["rev-parse", "HEAD"], worktree_path).strip()
        warning = self._restore_wip_commit(worktree_path, leftover)
        if warning:
            raise GitOperationError("restore WIP commit", message=warning)
        return None

    # Rebase onto trunk

    def rebase_on_main(
        self,
        worktree_path: str,
        main_branch: Optional[str] = None,
        options: Optional[SyncOperationOptions] = None,
        remote: Optional[str] = None,
    ) -> SyncResult:
        """Rebase the branch checked out in worktree_path onto trunk.

        Args:
            worktree_path: Worktree whose branch is rebased
            main_branch: Trunk branch (defaults to the configured main branch)
            options: force / dry_run / repo_root
            remote: Fetch this remote first and rebase onto <remote>/<trunk>

        Returns:
            SyncResult describing what happened

        Raises:
            BranchNotFoundError: Trunk ref does not exist
            ConflictDetectedError: Conflicts remain after delegated resolution
            RebaseFailedError: Rebase failed without conflicts
            NetworkError: The remote could not be reached for the fetch
            GitOperationError: A leftover WIP commit could not be unwound
        """
        options = options or SyncOperationOptions()
        main_branch = self._resolve_main_branch(main_branch)
        lookup_path = options.repo_root or worktree_path

        self.abort_in_progress_rebase(worktree_path, dry_run=options.dry_run)
        leftover_warning = self.unwind_leftover_wip_commit(worktree_path, dry_run=options.dry_run)

        if remote:
            logger.info(f"Fetching from {remote}...")
            self._git(["fetch", remote], worktree_path, network=True)
            target = f"{remote}/{main_branch}"
            ref_path = f"refs/remotes/{target}"
        else:
            logger.info(f"Using local branch {main_branch} for rebase...")
            target = main_branch
            ref_path = f"refs/heads/{main_branch}"

        result = SyncResult(operation="rebase", outcome=SyncOutcome.COMPLETED, target=target)
        if leftover_warning:
            result.warnings.append(leftover_warning)

        try:
            self._git(["show-ref", "--verify", "--quiet", ref_path], lookup_path)
        except CommandFailedError as e:
            kind = "Remote" if remote else "Local"
            raise BranchNotFoundError(
                target,
                f'{kind} branch "{target}" does not exist. Cannot rebase.\n'
                f"Ensure the branch exists{' on ' + remote if remote else ' locally'}.",
            ) from e

        merge_base = self._git(["merge-base", target, "HEAD"], worktree_path).strip()
        target_head = self._git(["rev-parse", target], worktree_path).strip()
        if merge_base == target_head:
            logger.info(f"Branch is already up to date with {target}. No rebase needed.")
            console.print(f"[green]Branch is already up to date with {target}.[/green]")
            result.outcome = SyncOutcome.UP_TO_DATE
            return result

        result.commits = self._list_commits(f"{target}..HEAD", worktree_path)
        if result.commits:
            self._show_commits(result.commits, "rebase")
        else:
            console.print(f"[cyan]{target} has moved forward. Rebasing to update branch...[/cyan]")

        if not self._confirmed(f"Rebase {len(result.commits)} commit(s) onto {target}?", options):
            logger.info("Rebase cancelled")
            result.outcome = SyncOutcome.CANCELLED
            return result

        if options.dry_run:
            console.print(f"[yellow][DRY RUN] Would execute: git rebase {target}[/yellow]")
            if result.commits:
                console.print(f"[yellow][DRY RUN] This would rebase {len(result.commits)} commit(s)[/yellow]")
            result.outcome = SyncOutcome.DRY_RUN
            return result

        wip_hash = None
        if self.has_uncommitted_changes(worktree_path):
            wip_hash = self._create_wip_commit(worktree_path)
            result.used_wip_commit = True

        logger.info(f"Starting rebase on {target}...")
        try:
            self._git([*NO_HOOKS_CONFIG, "rebase", target], worktree_path)
        except CommandFailedError as e:
            self._recover_from_failed_rebase(worktree_path, target, wip_hash, e)

        console.print("[green]Rebase completed successfully![/green]")
        if wip_hash:
            warning = self._restore_wip_commit(worktree_path, wip_hash)
            if warning:
                result.warnings.append(warning)
        return result

    def _recover_from_failed_rebase(
        self, worktree_path: str, target: str, wip_hash: Optional[str], error: CommandFailedError
    ) -> None:
        """Hand conflicts to the resolver; return only if the rebase ended up complete."""
        conflicted = self.detect_conflicted_files(worktree_path)
        if not conflicted:
            self._settle_wip_after_failure(worktree_path, wip_hash)
            raise RebaseFailedError(target, error) from error

        if not self.conflict_resolver.is_available():
            raise ConflictDetectedError(
                conflicted, self._settle_wip_after_failure(worktree_path, wip_hash)
            ) from error

        logger.info("Merge conflicts detected, attempting agent-assisted resolution...")
        try:
            self.conflict_resolver.attempt_resolve(worktree_path, conflicted)
        except Exception as e:
            # The repository state below decides the outcome, not the resolver
            logger.warning(f"Conflict resolution failed: {e}")

        remaining = self.detect_conflicted_files(worktree_path)
        if remaining:
            logger.warning(f"Conflicts still exist in {len(remaining)} file(s) after agent assistance")
            raise ConflictDetectedError(
                remaining, self._settle_wip_after_failure(worktree_path, wip_hash)
            ) from error

        if self.is_rebase_in_progress(worktree_path):
            logger.warning("Rebase still in progress after agent assistance")
            raise ConflictDetectedError(
                conflicted, self._settle_wip_after_failure(worktree_path, wip_hash)
            ) from error

        logger.info("Conflicts resolved with agent assistance, rebase completed")

    # Fast-forward merge into trunk

    def locate_trunk_worktree(self, main_branch: str, worktree_path: str) -> str:
        """Find the worktree that has trunk checked out.

        Falls back to the primary worktree when no worktree has trunk checked
        out; the caller verifies the branch actually there.
        """
        registry = WorktreeService(worktree_path, self.config, self.runner)
        return registry.find_main_worktree(main_branch).path

    def validate_fast_forward_possible(self, main_branch: str, branch_name: str, main_worktree_path: str) -> None:
        """Require trunk's tip to be the merge-base of trunk and the branch.

        Raises:
            NotFastForwardableError: Trunk has moved forward
        """
        merge_base = self._git(["merge-base", main_branch, branch_name], main_worktree_path).strip()
        main_head = self._git(["rev-parse", main_branch], main_worktree_path).strip()
        if merge_base != main_head:
            raise NotFastForwardableError(main_branch, branch_name, merge_base, main_head)

    def perform_fast_forward_merge(
        self,
        branch_name: str,
        worktree_path: str,
        main_branch: Optional[str] = None,
        options: Optional[SyncOperationOptions] = None,
    ) -> SyncResult:
        """Fast-forward trunk to branch_name, in the worktree that holds trunk.

        Args:
            branch_name: Branch to merge
            worktree_path: Worktree of the branch (used to find the repository)
            main_branch: Trunk branch (defaults to the configured main branch)
            options: force / dry_run / repo_root (repo_root is used as the trunk worktree)

        Returns:
            SyncResult describing what happened

        Raises:
            WorktreeNotFoundError: The repository has no non-bare worktree
            UnexpectedBranchError: The trunk worktree has another branch checked out
            NotFastForwardableError: Trunk has diverged from the branch
            MergeFailedError: git rejected the fast-forward
        """
        options = options or SyncOperationOptions()
        main_branch = self._resolve_main_branch(main_branch)
        result = SyncResult(operation="merge", outcome=SyncOutcome.COMPLETED, target=main_branch)

        logger.info("Starting fast-forward merge...")
        main_worktree_path = options.repo_root or self.locate_trunk_worktree(main_branch, worktree_path)
        logger.debug(f"Using {main_branch} branch location: {main_worktree_path}")

        current_branch = self._git(["branch", "--show-current"], main_worktree_path).strip()
        if current_branch != main_branch:
            error = UnexpectedBranchError(main_branch, current_branch, main_worktree_path)
            if not options.dry_run:
                raise error
            logger.warning(f"[DRY RUN] {error}")
            result.warnings.append(str(error))

        self.validate_fast_forward_possible(main_branch, branch_name, main_worktree_path)

        tip_subject = self._git(["log", "-1", "--format=%s", branch_name], main_worktree_path).strip()
        if tip_subject == WIP_COMMIT_MESSAGE:
            raise GitOperationError(
                "merge",
                branch=branch_name,
                message=(
                    f"The tip of '{branch_name}' is a temporary WIP commit. "
                    f"Restore it in the branch's worktree first: {WIP_RESTORE_COMMAND}"
                ),
            )

        result.commits = self._list_commits(f"{main_branch}..{branch_name}", main_worktree_path)
        if not result.commits:
            console.print(f"[green]Branch has no commits ahead of {main_branch}. No merge needed.[/green]")
            result.outcome = SyncOutcome.NOTHING_TO_MERGE
            return result

        self._show_commits(result.commits, "merge")

        if not self._confirmed(f"Fast-forward {main_branch} by {len(result.commits)} commit(s)?", options):
            logger.info("Merge cancelled")
            result.outcome = SyncOutcome.CANCELLED
            return result

        if options.dry_run:
            console.print(f"[yellow][DRY RUN] Would execute: git merge --ff-only {branch_name}[/yellow]")
            console.print(f"[yellow][DRY RUN] This would merge {len(result.commits)} commit(s)[/yellow]")
            result.outcome = SyncOutcome.DRY_RUN
            return result

        try:
            logger.debug(f"Executing fast-forward merge of {branch_name} into {main_branch} in {main_worktree_path}")
            self._git(["merge", "--ff-only", branch_name], main_worktree_path)
        except CommandFailedError as e:
            raise MergeFailedError(branch_name, main_branch, e) from e

        console.print(f"[green]Fast-forward merge completed! Merged {len(result.commits)} commit(s).[/green]")
        return result

    # Placeholder commits

    def find_placeholder_commits(
        self, worktree_path: str, main_branch: Optional[str] = None
    ) -> List[Tuple[str, str]]:
        """Find placeholder commits on the branch, oldest first.

        Returns:
            (sha, subject) pairs for commits in trunk..HEAD
        """
        main_branch = self._resolve_main_branch(main_branch)
        output = self._git(["log", "--format=%H %s", f"{main_branch}..HEAD"], worktree_path)

        placeholders = []
        for line in reversed(output.splitlines()):
            sha, _, subject = line.partition(" ")
            if subject.startswith(PLACEHOLDER_COMMIT_PREFIX):
                placeholders.append((sha, subject))
        return placeholders

    def remove_placeholder_commits(
        self, worktree_path: str, main_branch: Optional[str] = None, dry_run: bool = False
    ) -> List[str]:
        """Excise placeholder commits from the branch history.

        Each one is dropped with `git rebase --onto <sha>~1 <sha>`. A failed
        excision is aborted so the branch is left as it was.

        Returns:
            Subjects of the removed (or, on dry run, removable) commits
        """
        placeholders = self.find_placeholder_commits(worktree_path, main_branch)
        if not placeholders:
            logger.debug("No placeholder commits found")
            return []

        if dry_run:
            for sha, subject in placeholders:
                console.print(f"[yellow][DRY RUN] Would remove placeholder commit {sha[:8]} {subject}[/yellow]")
            return [subject for _, subject in placeholders]

        if self.has_uncommitted_changes(worktree_path):
            raise GitOperationError(
                "remove_placeholder",
                message="Working tree has uncommitted changes. Commit or stash them first.",
            )

        removed = []
        # Hashes after the excised commit change, so look them up again each time
        for _ in range(len(placeholders)):
            remaining = self.find_placeholder_commits(worktree_path, main_branch)
            if not remaining:
                break
            sha, subject = remaining[0]
            try:
                self._git([*NO_HOOKS_CONFIG, "rebase", "--onto", f"{sha}~1", sha], worktree_path)
            except CommandFailedError as e:
                if self.is_rebase_in_progress(worktree_path):
                    self._git(["rebase", "--abort"], worktree_path)
                raise RebaseFailedError(f"{sha}~1", e) from e
            logger.info(f"Removed placeholder commit {sha[:8]}")
            removed.append(subject)

        return removed
