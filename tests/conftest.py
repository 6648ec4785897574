"""Pytest fixtures for git-worktree-keeper tests"""
import tempfile
from pathlib import Path

import pytest
import git

from git_worktree_keeper.config import Config
from git_worktree_keeper.exceptions import command_failed
from git_worktree_keeper.services.git.runner import GitRunner

# Subcommands that change a repository or working tree
MUTATING_COMMANDS = {"rebase", "merge", "commit", "checkout", "push", "add", "reset"}


def subcommand(args):
    """First argument after any leading `-c key=value` pairs."""
    i = 0
    while i < len(args) and args[i] == "-c":
        i += 2
    return args[i] if i < len(args) else ""


class RecordingRunner(GitRunner):
    """GitRunner that records every call and can fail chosen subcommands."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.calls = []
        self.fail_on = {}

    def run(self, args, cwd, timeout=None, network=False):
        args = [str(arg) for arg in args]
        self.calls.append(args)
        name = subcommand(args)
        if name in self.fail_on:
            raise command_failed(args, 1, self.fail_on[name], cwd=str(cwd))
        return super().run(args, cwd, timeout=timeout, network=network)

    def subcommands(self):
        return [subcommand(args) for args in self.calls]

    def mutating_calls(self):
        return [args for args in self.calls if subcommand(args) in MUTATING_COMMANDS]

    def reset_calls(self):
        self.calls = []


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def config():
    """Configuration with the conflict agent disabled."""
    return Config(main_branch="main", enable_agent=False)


@pytest.fixture
def runner():
    return RecordingRunner()


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository for testing, with main checked out."""
    repo_path = temp_dir / "repo"
    repo_path.mkdir()

    repo = git.Repo.init(repo_path)

    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")
        writer.set_value("commit", "gpgsign", "false")

    test_file = repo_path / "README.md"
    test_file.write_text("# Test Repository\n")
    repo.git.add("README.md")
    repo.git.commit("-m", "Initial commit")
    repo.git.branch("-M", "main")

    yield repo

    repo.close()


@pytest.fixture
def origin(git_repo, temp_dir):
    """Bare repository registered as `origin`, with main pushed."""
    origin_path = temp_dir / "origin.git"
    git.Repo.init(origin_path, bare=True)
    git_repo.create_remote("origin", str(origin_path))
    git_repo.git.push("origin", "main")
    return origin_path


@pytest.fixture
def commit_file():
    """Write a file in a worktree and commit it; returns the new commit sha."""

    def _commit_file(worktree_path, filename, content, message=None):
        repo = git.Repo(worktree_path)
        (Path(worktree_path) / filename).write_text(content)
        repo.git.add(filename)
        repo.git.commit("-m", message or f"Update {filename}")
        return repo.git.rev_parse("HEAD")

    return _commit_file


@pytest.fixture
def add_worktree(git_repo, temp_dir):
    """Create a linked worktree on a new branch; returns its path."""

    def _add_worktree(branch, dirname=None, base="main"):
        path = temp_dir / (dirname or "repo-" + branch.replace("/", "-"))
        git_repo.git.worktree("add", "-b", branch, str(path), base)
        return path

    return _add_worktree
