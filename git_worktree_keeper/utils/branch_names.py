"""Branch and directory naming conventions for issue and PR worktrees."""

import os
import re
from typing import Optional

# feat/issue-PROJ-12__short-description
_ISSUE_NEW_FORMAT = re.compile(r"(?:^|[/_-])issue-([^/]+?)__", re.IGNORECASE)
# issue-42, feat/issue-42-description, feat/issue-PROJ-12 (a key needs its number)
_ISSUE_OLD_FORMAT = re.compile(
    r"(?:^|[/_-])issue-(\d+|[a-z]+-\d+)(?=$|[-_/])", re.IGNORECASE
)
# issue_456
_ISSUE_UNDERSCORE = re.compile(r"(?:^|/)issue_(\d+)(?=$|[-_/])", re.IGNORECASE)
# 42-feature-name
_ISSUE_NUMERIC_PREFIX = re.compile(r"^(\d+)-")

_PR_BRANCH_PATTERNS = [
    re.compile(r"^pr/(\d+)", re.IGNORECASE),
    re.compile(r"^pull/(\d+)", re.IGNORECASE),
    re.compile(r"^(?:feature|hotfix)/pr[-_]?(\d+)", re.IGNORECASE),
    re.compile(r"(?:^|[/_-])pr[-_]?(\d+)(?=$|[-_/])", re.IGNORECASE),
]

# Worktree directories created for PRs end with _pr_<number>
_PR_DIRECTORY = re.compile(r"_pr_(\d+)$", re.IGNORECASE)
_ISSUE_DIRECTORY = re.compile(r"(?:^|[-_])issue-(\d+)(?=$|[-_])", re.IGNORECASE)


def extract_issue_number(branch_name: str) -> Optional[str]:
    """Extract the issue identifier embedded in a branch name.

    Identifiers are returned as strings since trackers such as Linear or
    Jira use alphanumeric keys (``PROJ-12``).

    Returns:
        The identifier, or None when the branch carries no issue marker
    """
    for pattern in (_ISSUE_NEW_FORMAT, _ISSUE_OLD_FORMAT, _ISSUE_UNDERSCORE, _ISSUE_NUMERIC_PREFIX):
        match = pattern.search(branch_name)
        if match and match.group(1):
            return match.group(1)
    return None


def extract_pr_number(branch_name: str) -> Optional[int]:
    """Extract a PR number from a PR-style branch name (pr/123, pull/123, feature/pr-123)."""
    for pattern in _PR_BRANCH_PATTERNS:
        match = pattern.search(branch_name)
        if match:
            return int(match.group(1))
    return None


def extract_pr_number_from_path(path: str) -> Optional[int]:
    """Extract the PR number from a worktree directory ending in ``_pr_<N>``."""
    match = _PR_DIRECTORY.search(os.path.basename(os.path.normpath(path)))
    return int(match.group(1)) if match else None


def extract_issue_number_from_path(path: str) -> Optional[str]:
    """Extract the issue number from a worktree directory such as ``repo-issue-42``."""
    match = _ISSUE_DIRECTORY.search(os.path.basename(os.path.normpath(path)))
    return match.group(1) if match else None


def issue_matches(candidate: Optional[str], issue) -> bool:
    """Compare issue identifiers case-insensitively (42 == "42", "proj-1" == "PROJ-1")."""
    if candidate is None:
        return False
    return candidate.lower() == str(issue).lstrip("#").lower()
