"""Tests for GitRunner"""
from unittest.mock import patch

import pytest

from git_worktree_keeper.config import Config
from git_worktree_keeper.exceptions import CommandFailedError, ErrorKind, NetworkError, classify_command_error
from git_worktree_keeper.services.git.runner import GitRunner


class TestGitRunner:
    """Test running git commands."""

    def test_returns_stdout(self, git_repo):
        """Test successful commands return their output."""
        runner = GitRunner()
        assert runner.run(["rev-parse", "--abbrev-ref", "HEAD"], git_repo.working_dir) == "main"

    def test_non_zero_exit_raises(self, git_repo):
        """Test failures carry the arguments, exit code and stderr."""
        runner = GitRunner()
        with pytest.raises(CommandFailedError) as exc_info:
            runner.run(["show-ref", "--verify", "refs/heads/nope"], git_repo.working_dir)

        error = exc_info.value
        assert error.exit_code != 0
        assert error.command_args == ["show-ref", "--verify", "refs/heads/nope"]
        assert "refs/heads/nope" in error.stderr
        assert classify_command_error(error) is ErrorKind.BRANCH_NOT_FOUND

    def test_missing_directory_raises(self, temp_dir):
        """Test a missing working directory is a command failure."""
        runner = GitRunner()
        with pytest.raises(CommandFailedError) as exc_info:
            runner.run(["status"], temp_dir / "missing")
        assert exc_info.value.exit_code == 128
        assert "No such file or directory" in exc_info.value.stderr

    def test_timeouts_passed_to_git(self, temp_dir):
        """Test ordinary and network calls use their own timeouts."""
        runner = GitRunner(timeout=5, network_timeout=50)
        with patch("git_worktree_keeper.services.git.runner.git.Git") as mock_git:
            mock_git.return_value.execute.return_value = (0, "ok", "")

            assert runner.run(["status"], temp_dir) == "ok"
            kwargs = mock_git.return_value.execute.call_args.kwargs
            assert kwargs["kill_after_timeout"] == 5
            assert kwargs["env"] is None

            runner.run(["fetch", "origin"], temp_dir, network=True)
            kwargs = mock_git.return_value.execute.call_args.kwargs
            assert kwargs["kill_after_timeout"] == 50
            assert kwargs["env"] == {"GIT_TERMINAL_PROMPT": "0"}

    def test_explicit_timeout_wins(self, temp_dir):
        runner = GitRunner(timeout=5)
        with patch("git_worktree_keeper.services.git.runner.git.Git") as mock_git:
            mock_git.return_value.execute.return_value = (0, "", "")
            runner.run(["status"], temp_dir, timeout=1)
            assert mock_git.return_value.execute.call_args.kwargs["kill_after_timeout"] == 1

    def test_timeout_is_ordinary_failure(self, temp_dir):
        """Test a killed command surfaces as CommandFailedError."""
        runner = GitRunner(timeout=1)
        with patch("git_worktree_keeper.services.git.runner.git.Git") as mock_git:
            mock_git.return_value.execute.return_value = (
                -9, "", "Timeout: the command \"git fetch\" did not complete in 1 secs."
            )
            with pytest.raises(CommandFailedError) as exc_info:
                runner.run(["fetch"], temp_dir)
        assert exc_info.value.exit_code == -9
        assert classify_command_error(exc_info.value) is ErrorKind.COMMAND_FAILED
        assert not isinstance(exc_info.value, NetworkError)

    def test_unreachable_remote_raises_network_error(self, temp_dir):
        """Test failures that show the remote was unreachable raise NetworkError."""
        runner = GitRunner()
        with patch("git_worktree_keeper.services.git.runner.git.Git") as mock_git:
            mock_git.return_value.execute.return_value = (
                128, "", "fatal: unable to access 'https://github.com/x/y.git/': Could not resolve host: github.com"
            )
            with pytest.raises(NetworkError) as exc_info:
                runner.run(["fetch", "origin"], temp_dir, network=True)
        assert exc_info.value.kind is ErrorKind.NETWORK_ERROR
        assert exc_info.value.command_args == ["fetch", "origin"]
        assert exc_info.value.exit_code == 128

    def test_from_config(self):
        runner = GitRunner.from_config(Config(command_timeout=7, network_timeout=70))
        assert runner.timeout == 7
        assert runner.network_timeout == 70
