"""Commands that edit the staging area."""

import logging
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from ..display import display_status
from .common import GritContext, command_errors, pass_grit, resolve_local_track

console = Console()
logger = logging.getLogger(__name__)


@click.command("add")
@click.argument("track")
@click.option("--at", "position", type=int, help="Insert position (0-based); appends by default")
@pass_grit
def add_command(grit: GritContext, track: str, position: Optional[int]) -> None:
    """Stage adding a track (id, URL or search query)."""
    with command_errors("Add"):
        with grit.repository() as repo:
            adapter = grit.adapter_for(repo)
            resolved = grit.retry_policy().call(
                lambda: adapter.resolve_track(track), "resolve track"
            )
            repo.stage_add(resolved, position)
        where = "end" if position is None else f"position {position}"
        console.print(
            f"[green]+ Staged {escape(resolved.get_display_name())} at {where}[/green]"
        )


@click.command("remove")
@click.argument("track")
@pass_grit
def remove_command(grit: GritContext, track: str) -> None:
    """Stage removing a track (id or title)."""
    with command_errors("Remove"):
        with grit.repository() as repo:
            track_id = resolve_local_track(repo.status().snapshot, track)
            change = repo.stage_remove(track_id)
        if change is None:
            console.print(f"[yellow]Unstaged the addition of {escape(track_id)}[/yellow]")
        else:
            console.print(f"[red]- Staged removal of {escape(track_id)}[/red]")


@click.command("move")
@click.argument("track")
@click.argument("index", type=int)
@pass_grit
def move_command(grit: GritContext, track: str, index: int) -> None:
    """Stage moving a track (id or title) to INDEX (0-based)."""
    with command_errors("Move"):
        with grit.repository() as repo:
            track_id = resolve_local_track(repo.status().snapshot, track)
            repo.stage_move(track_id, index)
        console.print(f"[yellow]~ Staged move of {escape(track_id)} to {index}[/yellow]")


@click.command("reset")
@pass_grit
def reset_command(grit: GritContext) -> None:
    """Discard all staged changes."""
    with command_errors("Reset"):
        with grit.repository() as repo:
            count = repo.reset()
        console.print(f"[green]Discarded {count} staged change(s)[/green]")


@click.command("status")
@pass_grit
def status_command(grit: GritContext) -> None:
    """Show HEAD and staged changes."""
    with command_errors("Status"):
        with grit.repository() as repo:
            head = repo.head
            display_status(
                repo.name or repo.playlist_id,
                head,
                repo.status(),
                repo.head_snapshot,
                unpushed=repo.watermark.last_pushed_hash != head.hash,
            )
