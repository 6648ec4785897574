"""Tests for issue and PR markers in branch and directory names"""
import pytest

from git_worktree_keeper.utils.branch_names import (
    extract_issue_number,
    extract_issue_number_from_path,
    extract_pr_number,
    extract_pr_number_from_path,
    issue_matches,
)


class TestIssueNumbers:
    """Test issue identifiers in branch names."""

    @pytest.mark.parametrize("branch,expected", [
        ("feat/issue-42__fix-login", "42"),
        ("feat/issue-PROJ-12__short-description", "PROJ-12"),
        ("issue-42", "42"),
        ("feat/issue-42-description", "42"),
        ("feat/issue-PROJ-12", "PROJ-12"),
        ("feat/issue-proj-7-search", "proj-7"),
        ("fix/issue_456", "456"),
        ("42-feature-name", "42"),
    ])
    def test_extracts_issue(self, branch, expected):
        assert extract_issue_number(branch) == expected

    @pytest.mark.parametrize("branch", [
        "main",
        "feature/login",
        "tissue-42",
        "feat/issue-fix-login",
        "issue-abc",
    ])
    def test_no_issue(self, branch):
        assert extract_issue_number(branch) is None

    def test_issue_from_directory(self):
        assert extract_issue_number_from_path("/work/myrepo-issue-42") == "42"
        assert extract_issue_number_from_path("/work/myrepo") is None

    def test_issue_matches(self):
        assert issue_matches("42", 42)
        assert issue_matches("PROJ-12", "proj-12")
        assert issue_matches("42", "#42")
        assert not issue_matches(None, "42")
        assert not issue_matches("420", "42")


class TestPrNumbers:
    """Test PR numbers in branch and directory names."""

    @pytest.mark.parametrize("branch,expected", [
        ("pr/123", 123),
        ("pull/77", 77),
        ("feature/pr-5", 5),
        ("hotfix/pr9", 9),
        ("fix-pr-31", 31),
    ])
    def test_extracts_pr(self, branch, expected):
        assert extract_pr_number(branch) == expected

    def test_no_pr(self):
        assert extract_pr_number("feature/improve-parser") is None
        assert extract_pr_number("main") is None

    def test_pr_from_directory(self):
        assert extract_pr_number_from_path("/work/myrepo_pr_15") == 15
        assert extract_pr_number_from_path("/work/myrepo_pr_15/") == 15
        assert extract_pr_number_from_path("/work/myrepo_pr_15_old") is None
