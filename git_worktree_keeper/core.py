"""Core functionality for git-worktree-keeper"""

from typing import List, Optional, Union

import git

from git_worktree_keeper.config import Config
from git_worktree_keeper.exceptions import WorktreeKeeperError
from git_worktree_keeper.logging_config import get_logger
from git_worktree_keeper.models.remote import DeletionSafety
from git_worktree_keeper.models.sync import SyncOperationOptions, SyncOutcome, SyncResult
from git_worktree_keeper.models.worktree import RemovalOptions, RemovalResult, Worktree
from git_worktree_keeper.services.conflict_resolver import ConflictResolver
from git_worktree_keeper.services.git.remote_status import RemoteStatusChecker
from git_worktree_keeper.services.git.runner import GitRunner
from git_worktree_keeper.services.git.sync import SyncEngine
from git_worktree_keeper.services.git.worktrees import WorktreeService

logger = get_logger(__name__)


def find_repo_root(path: str) -> str:
    """Resolve the top-level directory of the repository containing path."""
    try:
        repo = git.Repo(path, search_parent_directories=True)
    except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
        raise WorktreeKeeperError(f"Not a git repository: {path}") from e
    if repo.working_tree_dir is None:
        return str(repo.git_dir)
    return str(repo.working_tree_dir)


class WorktreeKeeper:
    """Resolve identifiers to worktrees and run sync or cleanup workflows on them."""

    def __init__(
        self,
        repo_path: str,
        config: Union[Config, dict],
        conflict_resolver: Optional[ConflictResolver] = None,
        confirm=None,
    ):
        """Initialize WorktreeKeeper.

        Args:
            repo_path: Any directory inside the repository
            config: Configuration dict or Config object
            conflict_resolver: Resolver for rebase conflicts (from config when omitted)
            confirm: Callable asked before mutating steps
        """
        if isinstance(config, dict):
            self.config = Config.from_dict(config)
        else:
            self.config = config
        self.repo_path = find_repo_root(repo_path)

        self.runner = GitRunner.from_config(self.config)
        self.remote_checker = RemoteStatusChecker.from_config(self.config, self.runner)
        self.worktrees = WorktreeService(self.repo_path, self.config, self.runner, self.remote_checker)
        self.sync_engine = SyncEngine(self.config, self.runner, conflict_resolver, confirm)

    def _options(self) -> SyncOperationOptions:
        return SyncOperationOptions(force=self.config.force, dry_run=self.config.dry_run)

    def find_worktrees(self, identifier: str) -> List[Worktree]:
        """Find worktrees for a free-form identifier.

        Numbers are tried as PR numbers first, then as issue numbers. Anything
        else is a branch name, then an issue key such as PROJ-12.
        """
        ident = identifier.strip().lstrip("#")
        if ident.isdigit():
            matches = self.worktrees.find_worktrees_for_pr(int(ident))
            if matches:
                return matches
            return self.worktrees.find_worktrees_for_issue(ident)

        matches = self.worktrees.find_worktrees_for_branch(ident)
        if matches:
            return matches
        return self.worktrees.find_worktrees_for_issue(ident)

    def resolve(self, identifier: str, strict: bool = False) -> Worktree:
        return self.worktrees.require_single(self.find_worktrees(identifier), identifier, strict)

    def list_worktrees(self) -> List[Worktree]:
        return self.worktrees.list_worktrees()

    def rebase(self, identifier: str, remote: Optional[str] = None) -> SyncResult:
        worktree = self.resolve(identifier)
        logger.info(f"Rebasing {worktree.branch} at {worktree.path}")
        return self.sync_engine.rebase_on_main(
            worktree.path, self.config.main_branch, self._options(), remote=remote
        )

    def finish(self, identifier: str, rebase_first: bool = True) -> SyncResult:
        """Fast-forward trunk to the worktree's branch, rebasing it first if asked."""
        worktree = self.resolve(identifier)
        if rebase_first:
            rebased = self.sync_engine.rebase_on_main(worktree.path, self.config.main_branch, self._options())
            # A previewed rebase leaves trunk unmergeable, so the merge preview would fail
            if rebased.outcome in (SyncOutcome.CANCELLED, SyncOutcome.DRY_RUN):
                return rebased
        return self.sync_engine.perform_fast_forward_merge(
            worktree.branch, worktree.path, self.config.main_branch, self._options()
        )

    def cleanup(self, identifiers: List[str], remove_branch: bool = True) -> RemovalResult:
        """Remove the worktrees matching each identifier."""
        targets: List[Worktree] = []
        seen = set()
        for identifier in identifiers:
            worktree = self.resolve(identifier)
            if worktree.path not in seen:
                seen.add(worktree.path)
                targets.append(worktree)

        options = RemovalOptions(
            force=self.config.force,
            remove_branch=remove_branch,
            dry_run=self.config.dry_run,
            main_branch=self.config.main_branch,
        )
        return self.worktrees.remove_worktrees(targets, options)

    def remote_status(self, branch_name: str) -> DeletionSafety:
        return self.remote_checker.assess_branch_deletion(
            branch_name, self.config.main_branch, self.repo_path
        )

    def drop_placeholders(self, identifier: str) -> List[str]:
        worktree = self.resolve(identifier)
        return self.sync_engine.remove_placeholder_commits(
            worktree.path, self.config.main_branch, dry_run=self.config.dry_run
        )
