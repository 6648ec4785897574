"""Shared constants for git-worktree-keeper."""

DEFAULT_MAIN_BRANCH = "main"
DEFAULT_REMOTE = "origin"

# Subprocess timeouts in seconds
DEFAULT_COMMAND_TIMEOUT = 30
NETWORK_COMMAND_TIMEOUT = 120

# Temporary commit used to carry uncommitted changes across a rebase
WIP_COMMIT_MESSAGE = "WIP: Auto-stash for rebase"

# Empty commit some creation flows add so a draft PR can be opened
PLACEHOLDER_COMMIT_PREFIX = "[worktree-keeper placeholder]"

# Default conflict-resolution agent
DEFAULT_AGENT_COMMAND = "claude"

# Disables hooks while commits are re-applied
NO_HOOKS_CONFIG = ["-c", "core.hooksPath=/dev/null"]

REFS_HEADS_PREFIX = "refs/heads/"
