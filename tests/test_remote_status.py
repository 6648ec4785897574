"""Tests for RemoteStatusChecker"""
from unittest.mock import Mock

import pytest

from git_worktree_keeper.exceptions import CommandFailedError, NetworkError, RemovalBlockedError
from git_worktree_keeper.models.remote import RemoteBranchStatus, SafetyVerdict
from git_worktree_keeper.services.git.remote_status import RemoteStatusChecker


@pytest.fixture
def checker(runner):
    return RemoteStatusChecker(runner)


@pytest.fixture
def feature(git_repo, origin, commit_file):
    """Branch `feature` with one commit, checked out in the main worktree."""
    git_repo.git.checkout("-b", "feature")
    commit_file(git_repo.working_dir, "a.txt", "one\n")
    return git_repo


class TestRemoteBranchStatus:
    """Test status invariants."""

    def test_ahead_flags_exclusive(self):
        with pytest.raises(ValueError):
            RemoteBranchStatus(exists=True, remote_ahead=True, local_ahead=True)

    def test_ahead_requires_existing_branch(self):
        with pytest.raises(ValueError):
            RemoteBranchStatus(exists=False, local_ahead=True)


class TestCheck:
    """Test comparing local and remote tips."""

    def test_absent_on_remote(self, checker, feature):
        status = checker.check("feature", feature.working_dir)
        assert not status.exists
        assert not status.network_error

    def test_same_commit(self, checker, feature):
        feature.git.push("origin", "feature")
        status = checker.check("feature", feature.working_dir)
        assert status.exists
        assert not status.remote_ahead
        assert not status.local_ahead

    def test_remote_ahead(self, checker, feature, commit_file):
        commit_file(feature.working_dir, "a.txt", "two\n")
        feature.git.push("origin", "feature")
        feature.git.reset("--hard", "HEAD~1")

        status = checker.check("feature", feature.working_dir)
        assert status.exists
        assert status.remote_ahead
        assert not status.local_ahead

    def test_local_ahead(self, checker, feature, commit_file):
        feature.git.push("origin", "feature")
        commit_file(feature.working_dir, "a.txt", "two\n")

        status = checker.check("feature", feature.working_dir)
        assert status.local_ahead
        assert not status.remote_ahead

    def test_diverged_counts_as_local_ahead(self, checker, feature, commit_file):
        commit_file(feature.working_dir, "a.txt", "two\n")
        feature.git.push("origin", "feature")
        feature.git.reset("--hard", "HEAD~1")
        commit_file(feature.working_dir, "b.txt", "other\n")

        status = checker.check("feature", feature.working_dir)
        assert status.local_ahead

    def test_network_error_on_fetch(self):
        runner = Mock()
        runner.run.side_effect = NetworkError(
            ["fetch", "origin", "feature"],
            128,
            "fatal: unable to access 'https://github.com/x/y.git/': Could not resolve host: github.com",
        )
        status = RemoteStatusChecker(runner).check("feature", "/repo")

        assert status.network_error
        assert not status.exists
        assert "Could not resolve host" in status.error_message
        assert runner.run.call_count == 1

    def test_network_error_on_ls_remote(self):
        runner = Mock()
        runner.run.side_effect = [
            "",
            NetworkError(["ls-remote"], 128, "ssh: connect to host example.com port 22: Connection refused"),
        ]
        assert RemoteStatusChecker(runner).check("feature", "/repo").network_error

    def test_other_ls_remote_failure_propagates(self):
        runner = Mock()
        runner.run.side_effect = ["", CommandFailedError(["ls-remote"], 2, "fatal: bad option")]
        with pytest.raises(CommandFailedError):
            RemoteStatusChecker(runner).check("feature", "/repo")

    def test_unreachable_remote_reported_through_runner(self, checker, git_repo, runner):
        runner.fail_on["ls-remote"] = "fatal: unable to access 'https://x/y.git/': Could not resolve host: x"
        runner.fail_on["fetch"] = "fatal: something odd"

        status = checker.check("main", git_repo.working_dir)

        assert status.network_error
        assert "Could not resolve host" in status.error_message


class TestAssessBranchDeletion:
    """Test the deletion safety table."""

    def test_merged_without_remote_is_safe(self, checker, git_repo, origin, runner):
        git_repo.git.branch("merged-work")
        runner.reset_calls()

        safety = checker.assess_branch_deletion("merged-work", "main", git_repo.working_dir)

        assert safety.verdict is SafetyVerdict.MERGED_NO_REMOTE
        assert safety.is_safe
        network_calls = [args[0] for args in runner.calls if args[0] in ("fetch", "ls-remote", "push")]
        assert network_calls == ["fetch", "ls-remote"]

    def test_unmerged_without_remote_blocked(self, checker, feature):
        safety = checker.assess_branch_deletion("feature", "main", feature.working_dir)
        assert safety.verdict is SafetyVerdict.UNMERGED_NO_REMOTE
        assert not safety.is_safe
        assert "git push -u origin feature" in safety.reason

    def test_pushed_is_safe(self, checker, feature):
        feature.git.push("origin", "feature")
        safety = checker.assess_branch_deletion("feature", "main", feature.working_dir)
        assert safety.verdict is SafetyVerdict.REMOTE_UP_TO_DATE
        assert safety.is_safe

    def test_local_ahead_blocked(self, checker, feature, commit_file):
        feature.git.push("origin", "feature")
        commit_file(feature.working_dir, "a.txt", "two\n")

        with pytest.raises(RemovalBlockedError) as exc_info:
            checker.ensure_branch_deletable("feature", "main", feature.working_dir)
        assert exc_info.value.verdict is SafetyVerdict.LOCAL_AHEAD

    def test_network_error_blocks(self):
        runner = Mock()
        runner.run.side_effect = NetworkError(["fetch"], 128, "fatal: unable to access: Connection timed out")
        checker = RemoteStatusChecker(runner)

        safety = checker.assess_branch_deletion("feature", "main", "/repo")

        assert safety.verdict is SafetyVerdict.NETWORK_ERROR
        assert not safety.is_safe
        assert "--force" in safety.reason

    def test_is_branch_merged(self, checker, feature):
        assert checker.is_branch_merged("main", "feature", feature.working_dir)
        assert not checker.is_branch_merged("feature", "main", feature.working_dir)
        assert not checker.is_branch_merged("missing", "main", feature.working_dir)
