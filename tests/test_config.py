"""Tests for Config validation and worker selection"""
from unittest.mock import patch

import pytest

from git_worktree_keeper.config import Config
from git_worktree_keeper.utils.threading import get_optimal_worker_count


class TestConfig:
    """Test configuration defaults and validation."""

    def test_defaults(self):
        config = Config()
        assert config.main_branch == "main"
        assert config.remote_name == "origin"
        assert config.sequential
        assert config.enable_agent
        assert config.is_protected("main")
        assert config.is_protected("master")
        assert not config.is_protected("feature")

    def test_main_branch_always_protected(self):
        config = Config(main_branch=" develop ", protected_branches=["release"])
        assert config.main_branch == "develop"
        assert config.protected_branches == ["release", "develop"]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"main_branch": "  "},
            {"remote_name": ""},
            {"protected_branches": "main"},
            {"command_timeout": 0},
            {"network_timeout": -1},
            {"workers": 0},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            Config(**kwargs)

    def test_from_dict_ignores_unknown_keys(self):
        config = Config.from_dict({"main_branch": "trunk", "github_token": "x"})
        assert config.main_branch == "trunk"
        assert config.get("github_token") is None

    def test_to_dict_round_trips(self):
        config = Config(workers=4, dry_run=True)
        assert Config.from_dict(config.to_dict()) == config


class TestWorkerCount:
    def test_user_specified(self):
        assert get_optimal_worker_count(3) == 3

    def test_auto_detect(self):
        with patch("git_worktree_keeper.utils.threading.os.cpu_count", return_value=4), \
                patch("git_worktree_keeper.utils.threading.is_free_threading_enabled", return_value=False):
            assert get_optimal_worker_count() == 8

    def test_free_threading(self):
        with patch("git_worktree_keeper.utils.threading.os.cpu_count", return_value=4), \
                patch("git_worktree_keeper.utils.threading.is_free_threading_enabled", return_value=True):
            assert get_optimal_worker_count() == 8

    def test_cap(self):
        with patch("git_worktree_keeper.utils.threading.os.cpu_count", return_value=128), \
                patch("git_worktree_keeper.utils.threading.is_free_threading_enabled", return_value=False):
            assert get_optimal_worker_count() == 32
