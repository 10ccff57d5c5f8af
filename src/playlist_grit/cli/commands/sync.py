"""Push and pull commands."""

import logging

import click
from rich.console import Console

from ...core.sync import SyncStatus
from ..display import display_script
from .common import GritContext, command_errors, pass_grit

console = Console()
logger = logging.getLogger(__name__)


@click.command("push")
@pass_grit
def push_command(grit: GritContext) -> None:
    """Replay local commits onto the remote playlist."""
    with command_errors("Push"):
        with grit.repository() as repo:
            local = repo.head_snapshot
            with command_errors("Push", local):
                result = grit.sync_engine(repo).push()

        if result.resumed:
            console.print("[cyan]Resumed an interrupted push[/cyan]")
        if result.status == SyncStatus.UP_TO_DATE:
            console.print(f"[green]Remote already at {result.commit_hash[:12]}[/green]")
            return
        display_script(result.script, "Sent to remote", local)
        console.print(f"[green]✅ Pushed {result.commit_hash[:12]}[/green]")


@click.command("pull")
@pass_grit
def pull_command(grit: GritContext) -> None:
    """Bring remote changes into the local history."""
    with command_errors("Pull"):
        with grit.repository() as repo:
            local = repo.head_snapshot
            with command_errors("Pull", local):
                result = grit.sync_engine(repo).pull()
            snapshot = repo.head_snapshot

        if result.status == SyncStatus.UP_TO_DATE:
            console.print("[green]Already up to date[/green]")
            return
        display_script(result.script, "Pulled from remote", snapshot, local)
        console.print(f"[green]✅ Fast-forwarded to {result.commit.short_hash}[/green]")
