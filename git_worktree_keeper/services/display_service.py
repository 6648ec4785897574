"""Display and formatting service for worktree information"""
from typing import List

from rich.console import Console
from rich.table import Table

from git_worktree_keeper.models.remote import DeletionSafety
from git_worktree_keeper.models.sync import SyncOutcome, SyncResult
from git_worktree_keeper.models.worktree import RemovalResult, Worktree

console = Console()

OUTCOME_STYLES = {
    SyncOutcome.COMPLETED: "green",
    SyncOutcome.UP_TO_DATE: "green",
    SyncOutcome.NOTHING_TO_MERGE: "green",
    SyncOutcome.DRY_RUN: "yellow",
    SyncOutcome.CANCELLED: "yellow",
}


def _flags(worktree: Worktree) -> str:
    flags = []
    if worktree.is_main:
        flags.append("main")
    if worktree.bare:
        flags.append("bare")
    if worktree.detached:
        flags.append("detached")
    if worktree.locked:
        flags.append(f"locked ({worktree.lock_reason})" if worktree.lock_reason else "locked")
    if worktree.prunable:
        flags.append("prunable")
    return ", ".join(flags)


class DisplayService:
    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def display_worktree_table(self, worktrees: List[Worktree]) -> None:
        """Display a table of worktrees."""
        table = Table()
        table.add_column("Branch")
        table.add_column("Commit")
        table.add_column("Path")
        table.add_column("Flags")

        for wt in worktrees:
            style = "bold" if wt.is_main else None
            table.add_row(wt.branch, wt.commit[:8], wt.path, _flags(wt), style=style)

        console.print(table)

    def display_sync_result(self, result: SyncResult) -> None:
        style = OUTCOME_STYLES.get(result.outcome, "white")
        console.print(f"[{style}]{result.operation} onto {result.target}: {result.outcome.value}[/{style}]")
        if result.used_wip_commit and self.verbose:
            console.print("[dim]Uncommitted changes were carried across the rebase[/dim]")
        for warning in result.warnings:
            console.print(f"[yellow]Warning: {warning}[/yellow]")

    def display_removal_result(self, result: RemovalResult) -> None:
        """Print what happened to each worktree of a batch removal."""
        for success in result.successes:
            console.print(f"[green]✓ {success.message}[/green]")
        for skip in result.skipped:
            console.print(f"[yellow]- Skipped {skip.worktree.path}: {skip.reason}[/yellow]")
        for failure in result.failures:
            console.print(f"[red]✗ Failed {failure.worktree.path}: {failure.error}[/red]")

        console.print(
            f"\n{len(result.successes)} removed, {len(result.skipped)} skipped, "
            f"{len(result.failures)} failed"
        )

    def display_deletion_safety(self, safety: DeletionSafety) -> None:
        status = safety.status
        table = Table(show_header=False)
        table.add_column("Field")
        table.add_column("Value")
        table.add_row("Branch", safety.branch)
        table.add_row("On remote", "yes" if status.exists else "no")
        table.add_row("Remote ahead", "yes" if status.remote_ahead else "no")
        table.add_row("Local ahead", "yes" if status.local_ahead else "no")
        table.add_row("Network error", "yes" if status.network_error else "no")
        table.add_row("Verdict", safety.verdict.value)
        console.print(table)

        color = "green" if safety.is_safe else "red"
        label = "Safe to delete" if safety.is_safe else "Deletion blocked"
        console.print(f"[{color}]{label}:[/{color}] {safety.reason}")
