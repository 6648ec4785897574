"""Tests for WorktreeKeeper identifier resolution and workflows"""
from pathlib import Path

import pytest

from git_worktree_keeper.config import Config
from git_worktree_keeper.core import WorktreeKeeper, find_repo_root
from git_worktree_keeper.exceptions import WorktreeKeeperError, WorktreeNotFoundError
from git_worktree_keeper.models.sync import SyncOutcome
from git_worktree_keeper.services.conflict_resolver import FailFastResolver


@pytest.fixture
def keeper(git_repo):
    config = Config(main_branch="main", enable_agent=False, force=True)
    return WorktreeKeeper(git_repo.working_dir, config, conflict_resolver=FailFastResolver())


class TestFindRepoRoot:
    def test_from_subdirectory(self, git_repo):
        sub = Path(git_repo.working_dir) / "src" / "pkg"
        sub.mkdir(parents=True)
        assert Path(find_repo_root(str(sub))) == Path(git_repo.working_dir)

    def test_not_a_repository(self, temp_dir):
        with pytest.raises(WorktreeKeeperError, match="Not a git repository"):
            find_repo_root(str(temp_dir))

    def test_dict_config(self, git_repo):
        keeper = WorktreeKeeper(git_repo.working_dir, {"main_branch": "main", "unknown": 1})
        assert isinstance(keeper.config, Config)


class TestFindWorktrees:
    """Test resolving free-form identifiers."""

    def test_number_prefers_pr(self, keeper, add_worktree):
        add_worktree("feat/issue-42__login")
        add_worktree("contributor-fix", dirname="repo_pr_42")
        assert [wt.branch for wt in keeper.find_worktrees("42")] == ["contributor-fix"]
        assert [wt.branch for wt in keeper.find_worktrees("#42")] == ["contributor-fix"]

    def test_number_falls_back_to_issue(self, keeper, add_worktree):
        add_worktree("feat/issue-42__login")
        assert [wt.branch for wt in keeper.find_worktrees("42")] == ["feat/issue-42__login"]

    def test_branch_name(self, keeper, add_worktree):
        add_worktree("feature-a")
        assert keeper.resolve("feature-a").branch == "feature-a"

    def test_issue_key(self, keeper, add_worktree):
        add_worktree("feat/issue-PROJ-12__search")
        assert keeper.resolve("PROJ-12").branch == "feat/issue-PROJ-12__search"

    def test_unknown(self, keeper):
        with pytest.raises(WorktreeNotFoundError):
            keeper.resolve("nothing-here")


class TestWorkflows:
    """Test rebase, finish and cleanup end to end."""

    def test_rebase_by_issue(self, keeper, git_repo, add_worktree, commit_file):
        path = add_worktree("feat/issue-42__login")
        commit_file(path, "login.py", "pass\n")
        commit_file(git_repo.working_dir, "main.txt", "moved\n")

        result = keeper.rebase("42")

        assert result.outcome is SyncOutcome.COMPLETED
        assert (path / "main.txt").exists()

    def test_finish_rebases_then_merges(self, keeper, git_repo, add_worktree, commit_file):
        path = add_worktree("feat/issue-42__login")
        commit_file(path, "login.py", "pass\n")
        commit_file(git_repo.working_dir, "main.txt", "moved\n")

        result = keeper.finish("42")

        assert result.operation == "merge"
        assert result.outcome is SyncOutcome.COMPLETED
        assert git_repo.git.rev_parse("main") == git_repo.git.rev_parse("feat/issue-42__login")

    def test_finish_dry_run_stops_after_rebase_preview(self, git_repo, add_worktree, commit_file):
        config = Config(main_branch="main", enable_agent=False, force=True, dry_run=True)
        keeper = WorktreeKeeper(git_repo.working_dir, config, conflict_resolver=FailFastResolver())
        path = add_worktree("feature-a")
        commit_file(path, "a.txt", "a\n")
        commit_file(git_repo.working_dir, "main.txt", "moved\n")
        before = git_repo.git.rev_parse("main")

        result = keeper.finish("feature-a")

        assert result.operation == "rebase"
        assert result.outcome is SyncOutcome.DRY_RUN
        assert git_repo.git.rev_parse("main") == before

    def test_cleanup_after_finish(self, keeper, git_repo, origin, add_worktree, commit_file):
        path = add_worktree("feat/issue-42__login")
        commit_file(path, "login.py", "pass\n")
        keeper.finish("42")

        result = keeper.cleanup(["42", "feat/issue-42__login"])

        assert len(result.successes) == 1
        assert result.successes[0].branch_deleted
        assert not path.exists()

    def test_remote_status(self, keeper, git_repo, origin):
        git_repo.git.branch("merged-work")
        assert keeper.remote_status("merged-work").is_safe
