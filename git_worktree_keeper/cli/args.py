"""Command-line argument parsing for git-worktree-keeper."""

import argparse

from git_worktree_keeper.__version__ import __version__


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="git-worktree-keeper",
        description="Keep issue and PR worktrees in sync with trunk, and retire them safely",
        epilog="Identifiers: a number is tried as a PR number, then an issue number; "
        "anything else as a branch name, then an issue key (PROJ-12).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument("--version", action="version", version=f"git-worktree-keeper {__version__}")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information for troubleshooting"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview mode - show what would happen without changing anything",
    )
    parser.add_argument("--force", action="store_true", help="Skip confirmations and safety checks")
    parser.add_argument("--main-branch", default="main", help="Trunk branch name")
    parser.add_argument("--remote", default="origin", help="Remote used for safety checks")
    parser.add_argument(
        "--no-agent",
        action="store_true",
        help="Fail on rebase conflicts instead of launching the resolution agent",
    )
    parser.add_argument(
        "--agent-command", default="claude", help="Agent CLI used to resolve conflicts"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List worktrees")

    rebase = subparsers.add_parser("rebase", help="Rebase a worktree onto trunk")
    rebase.add_argument("identifier", help="Issue number, PR number or branch name")
    rebase.add_argument(
        "--fetch",
        action="store_true",
        help="Fetch the remote first and rebase onto <remote>/<trunk>",
    )

    finish = subparsers.add_parser("finish", help="Fast-forward trunk to a worktree's branch")
    finish.add_argument("identifier", help="Issue number, PR number or branch name")
    finish.add_argument(
        "--no-rebase", action="store_true", help="Do not rebase onto trunk before merging"
    )
    finish.add_argument(
        "--cleanup", action="store_true", help="Remove the worktree and branch after merging"
    )

    cleanup = subparsers.add_parser("cleanup", help="Remove worktrees (and their branches)")
    cleanup.add_argument("identifiers", nargs="+", help="Issue numbers, PR numbers or branch names")
    cleanup.add_argument("--keep-branch", action="store_true", help="Do not delete the branches")
    cleanup.add_argument(
        "--workers",
        type=int,
        metavar="N",
        help="Remove worktrees in parallel with N workers (default: sequential)",
    )

    remote_status = subparsers.add_parser(
        "remote-status", help="Check whether deleting a branch could lose commits"
    )
    remote_status.add_argument("branch", help="Local branch name")

    placeholder = subparsers.add_parser(
        "drop-placeholder", help="Remove placeholder commits from a worktree's branch"
    )
    placeholder.add_argument("identifier", help="Issue number, PR number or branch name")

    return parser


def parse_args(argv=None):
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)
