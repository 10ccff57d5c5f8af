"""Display formatters and UI helpers for CLI."""

import logging
from typing import Iterable, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ...core.diff import EditScript
from ...core.errors import SyncError
from ...core.repository import PlaylistSummary
from ...core.staging import StagingStatus
from ...models import ChangeKind, Commit, Snapshot, Track

console = Console()
logger = logging.getLogger(__name__)

KIND_STYLES = {
    ChangeKind.ADD: ("+", "green"),
    ChangeKind.REMOVE: ("-", "red"),
    ChangeKind.MOVE: ("~", "yellow"),
}


def _track_label(track_id: str, *snapshots: Optional[Snapshot]) -> str:
    """Best display name for a track id given snapshots with metadata."""
    for snapshot in snapshots:
        if snapshot is not None and track_id in snapshot.tracks:
            return escape(snapshot.tracks[track_id].get_display_name())
    return escape(track_id)


def display_tracks(snapshot: Snapshot, title: str) -> None:
    """Display the tracks of a snapshot in order."""
    table = Table(title=title, show_lines=False)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Artists", style="magenta")
    table.add_column("Duration", justify="right")
    table.add_column("ID", style="dim")

    for position, track in enumerate(snapshot.ordered_tracks()):
        table.add_row(
            str(position),
            escape(track.title or "-"),
            escape(track.artist_line or "-"),
            track.duration_formatted,
            track.id,
        )
    console.print(table)
    console.print(f"[dim]{len(snapshot)} tracks[/dim]")


def display_search_results(tracks: List[Track], query: str) -> None:
    """Display provider search results."""
    if not tracks:
        console.print(f"[yellow]No tracks found matching '{query}'[/yellow]")
        return

    table = Table(title=f"Results for '{query}'")
    table.add_column("Title", style="cyan")
    table.add_column("Artists", style="magenta")
    table.add_column("Duration", justify="right")
    table.add_column("ID", style="green")
    for track in tracks:
        table.add_row(
            escape(track.title), escape(track.artist_line), track.duration_formatted, track.id
        )
    console.print(table)


def display_playlists(summaries: List[PlaylistSummary]) -> None:
    """Display tracked playlists."""
    if not summaries:
        console.print(
            "[yellow]No playlists tracked yet. "
            "Use 'grit init <playlist-url>' to start tracking.[/yellow]"
        )
        return

    table = Table(title=f"Tracked playlists ({len(summaries)})")
    table.add_column("Name", style="cyan")
    table.add_column("ID", style="green")
    table.add_column("Provider")
    table.add_column("Tracks", justify="right")
    table.add_column("HEAD", style="dim")
    for summary in summaries:
        table.add_row(
            escape(summary.info.name or "-"),
            summary.info.id,
            summary.info.provider.value,
            str(summary.track_count),
            (summary.head or "")[:12],
        )
    console.print(table)


def display_script(
    script: EditScript,
    title: str,
    *snapshots: Optional[Snapshot],
) -> None:
    """Display an edit script, naming tracks from the given snapshots."""
    if script.is_empty:
        console.print(f"[dim]{title}: no changes[/dim]")
        return

    console.print(f"[bold]{title}[/bold] ({script.summary()})")
    for op in script:
        symbol, style = KIND_STYLES[op.kind]
        label = _track_label(op.track_id, *snapshots)
        if op.kind == ChangeKind.REMOVE:
            console.print(f"  [{style}]{symbol} {label}[/{style}]")
        else:
            console.print(f"  [{style}]{symbol} {label} @ {op.index}[/{style}]")


def display_status(
    name: str,
    head: Commit,
    status: StagingStatus,
    base: Snapshot,
    unpushed: bool,
) -> None:
    """Display HEAD, sync state and staged changes."""
    console.print(f"[bold blue]Playlist:[/bold blue] {escape(name)}")
    console.print(f"[bold blue]HEAD:[/bold blue] {head.short_hash} {escape(head.message)}")
    if unpushed:
        console.print("[yellow]Local commits not pushed yet (use 'grit push')[/yellow]")

    if status.is_empty:
        console.print("[green]Nothing staged[/green]")
        return

    counts = status.counts()
    console.print(
        f"\n[bold]Staged changes[/bold] "
        f"([green]+{counts['add']}[/green] "
        f"[red]-{counts['remove']}[/red] "
        f"[yellow]~{counts['move']}[/yellow])"
    )
    for change in status.changes:
        symbol, style = KIND_STYLES[change.kind]
        label = _track_label(change.track_id, status.snapshot, base)
        if change.kind == ChangeKind.ADD:
            where = "end" if change.index is None else str(change.index)
            console.print(f"  [{style}]{symbol} {label} @ {where}[/{style}]")
        elif change.kind == ChangeKind.REMOVE:
            console.print(f"  [{style}]{symbol} {label}[/{style}]")
        else:
            console.print(f"  [{style}]{symbol} {label} -> {change.index}[/{style}]")
    console.print(
        f"\n[dim]{len(base)} -> {len(status.snapshot)} tracks after commit[/dim]"
    )


def display_log(commits: Iterable[Commit]) -> None:
    """Display commits newest first."""
    table = Table(title="History")
    table.add_column("Commit", style="yellow")
    table.add_column("Date", style="dim")
    table.add_column("Tracks", justify="right")
    table.add_column("Message")
    rows = 0
    for commit in commits:
        table.add_row(
            commit.short_hash,
            commit.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            str(len(commit.snapshot)),
            escape(commit.message),
        )
        rows += 1
    if rows == 0:
        console.print("[yellow]No commits[/yellow]")
        return
    console.print(table)


def display_commit(
    commit: Commit,
    snapshot: Snapshot,
    changes: Optional[EditScript] = None,
    parent: Optional[Snapshot] = None,
) -> None:
    """Display one commit with its changes and tracks."""
    console.print(f"[yellow]commit {commit.hash}[/yellow]")
    if commit.parent_hash:
        console.print(f"[dim]parent {commit.parent_hash}[/dim]")
    console.print(f"Date:   {commit.timestamp.isoformat()}")
    console.print(f"\n    {escape(commit.message)}\n")
    if changes is not None:
        display_script(changes, "Changes", snapshot, parent)
        console.print()
    display_tracks(snapshot, f"Snapshot {commit.short_hash}")


def display_sync_error(error: SyncError, local: Optional[Snapshot] = None) -> None:
    """Display a sync conflict with both sides' edits."""
    console.print(f"[bold red]❌ {escape(str(error))}[/bold red]")
    if error.local_script is not None:
        display_script(error.local_script, "Local changes", local)
    if error.remote_script is not None:
        display_script(error.remote_script, "Remote changes", local)


def display_problems(problems: List[str]) -> None:
    """Display journal verification results."""
    if not problems:
        console.print("[green]✅ History verified: hash chain intact[/green]")
        return
    console.print(f"[bold red]❌ {len(problems)} problem(s) found:[/bold red]")
    for problem in problems:
        console.print(f"  [red]• {escape(problem)}[/red]")
