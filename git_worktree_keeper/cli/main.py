"""Entry point for the git-worktree-keeper command."""

import os
import sys

from rich.console import Console

from git_worktree_keeper.cli.args import parse_args
from git_worktree_keeper.config import Config
from git_worktree_keeper.core import WorktreeKeeper
from git_worktree_keeper.exceptions import WorktreeKeeperError
from git_worktree_keeper.logging_config import setup_logging
from git_worktree_keeper.models.sync import SyncOutcome
from git_worktree_keeper.services.display_service import DisplayService

console = Console()


def confirm(question: str) -> bool:
    response = console.input(f"\n{question} [y/N] ")
    return response.strip().lower() in ("y", "yes")


def build_config(parsed_args) -> Config:
    workers = getattr(parsed_args, "workers", None)
    return Config(
        main_branch=parsed_args.main_branch,
        remote_name=parsed_args.remote,
        sequential=workers is None,
        workers=workers,
        agent_command=parsed_args.agent_command,
        enable_agent=not parsed_args.no_agent,
        dry_run=parsed_args.dry_run,
        force=parsed_args.force,
        verbose=parsed_args.verbose,
        debug=parsed_args.debug,
    )


def run_command(keeper: WorktreeKeeper, parsed_args, display: DisplayService) -> int:
    command = parsed_args.command

    if command == "list":
        display.display_worktree_table(keeper.list_worktrees())
        return 0

    if command == "rebase":
        remote = keeper.config.remote_name if parsed_args.fetch else None
        display.display_sync_result(keeper.rebase(parsed_args.identifier, remote=remote))
        return 0

    if command == "finish":
        result = keeper.finish(parsed_args.identifier, rebase_first=not parsed_args.no_rebase)
        display.display_sync_result(result)
        if parsed_args.cleanup and result.outcome in (SyncOutcome.COMPLETED, SyncOutcome.NOTHING_TO_MERGE):
            display.display_removal_result(keeper.cleanup([parsed_args.identifier]))
        return 0

    if command == "cleanup":
        result = keeper.cleanup(parsed_args.identifiers, remove_branch=not parsed_args.keep_branch)
        display.display_removal_result(result)
        return 0 if not result.failures else 1

    if command == "remote-status":
        safety = keeper.remote_status(parsed_args.branch)
        display.display_deletion_safety(safety)
        return 0 if safety.is_safe else 1

    if command == "drop-placeholder":
        removed = keeper.drop_placeholders(parsed_args.identifier)
        if not removed:
            console.print("No placeholder commits found")
        elif not keeper.config.dry_run:
            console.print(f"[green]Removed {len(removed)} placeholder commit(s)[/green]")
        return 0

    console.print(f"[red]Unknown command: {command}[/red]")
    return 2


def main(argv=None):
    """Main entry point for the application."""
    parsed_args = parse_args(argv)
    setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

    try:
        config = build_config(parsed_args)

        if parsed_args.debug:
            console.print("[yellow]Configuration:[/yellow]")
            for key, value in config.to_dict().items():
                console.print(f"  {key}: {value}")

        keeper = WorktreeKeeper(os.getcwd(), config, confirm=confirm)
        return run_command(keeper, parsed_args, DisplayService(verbose=parsed_args.verbose))
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 1
    except (WorktreeKeeperError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        if parsed_args.debug:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
