"""Utility functions for git-worktree-keeper.

This package provides utility modules:
- branch_names: issue/PR markers in branch and directory names
- threading: worker counts for concurrent removal
"""

from .branch_names import (
    extract_issue_number,
    extract_issue_number_from_path,
    extract_pr_number,
    extract_pr_number_from_path,
    issue_matches,
)
from .threading import is_free_threading_enabled, get_optimal_worker_count

__all__ = [
    # Branch names
    "extract_issue_number",
    "extract_issue_number_from_path",
    "extract_pr_number",
    "extract_pr_number_from_path",
    "issue_matches",
    # Threading
    "is_free_threading_enabled",
    "get_optimal_worker_count",
]
