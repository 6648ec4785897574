"""
git-worktree-keeper - Keep issue and PR worktrees in sync with trunk, and retire them safely
"""

from .__version__ import __version__
from .core import WorktreeKeeper
from .cli.main import main

__all__ = ["WorktreeKeeper", "main", "__version__"]
