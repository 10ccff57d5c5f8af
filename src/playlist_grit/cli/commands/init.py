"""Commands for starting to track playlists and browsing them."""

import logging
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from ...models import ProviderKind
from ...providers import parse_playlist_ref
from ..display import display_playlists, display_search_results, display_tracks
from .common import GritContext, command_errors, pass_grit

console = Console()
logger = logging.getLogger(__name__)

PROVIDER_CHOICE = click.Choice([kind.value for kind in ProviderKind])


@click.command("init")
@click.argument("playlist_url")
@click.option(
    "--provider",
    type=PROVIDER_CHOICE,
    help="Provider, when it cannot be detected from the URL",
)
@pass_grit
def init_command(grit: GritContext, playlist_url: str, provider: Optional[str]) -> None:
    """Start tracking a remote playlist.

    Fetches the playlist and records its current state as the root commit.
    """
    with command_errors("Init"):
        kind, playlist_id = parse_playlist_ref(
            playlist_url, ProviderKind(provider) if provider else None
        )
        adapter = grit.make_adapter(kind, playlist_id)
        retry = grit.retry_policy()

        console.print(f"[cyan]Fetching {kind.value} playlist {playlist_id}...[/cyan]")
        info = retry.call(adapter.fetch_info, "fetch playlist info")
        snapshot = retry.call(adapter.fetch_snapshot, "fetch remote playlist")

        grit.config.ensure_directories()
        with grit.workspace.create(info, snapshot) as repo:
            head = repo.head

        console.print(
            f"[green]✅ Tracking '{escape(info.name or info.id)}' "
            f"({len(snapshot)} tracks) at {head.short_hash}[/green]"
        )


@click.command("playlists")
@click.argument("query", required=False)
@pass_grit
def playlists_command(grit: GritContext, query: Optional[str]) -> None:
    """List tracked playlists, optionally filtered by name."""
    with command_errors("Listing playlists"):
        summaries = grit.workspace.list_playlists()
        if query:
            needle = query.lower()
            summaries = [
                summary
                for summary in summaries
                if needle in summary.info.name.lower() or needle in summary.info.id.lower()
            ]
        display_playlists(summaries)


@click.command("list")
@click.option("--staged", is_flag=True, help="Show the playlist as it would be after commit")
@pass_grit
def list_command(grit: GritContext, staged: bool) -> None:
    """Show the tracks of the playlist at HEAD."""
    with command_errors("Listing tracks"):
        with grit.repository() as repo:
            if staged:
                display_tracks(repo.status().snapshot, f"{repo.name} (staged)")
            else:
                display_tracks(repo.head_snapshot, f"{repo.name} @ {repo.head.short_hash}")


@click.command("search")
@click.argument("query")
@click.option("--limit", "-n", default=10, show_default=True, help="Number of results")
@click.option("--provider", type=PROVIDER_CHOICE, help="Provider to search")
@pass_grit
def search_command(
    grit: GritContext, query: str, limit: int, provider: Optional[str]
) -> None:
    """Search the provider catalogue for tracks to add."""
    with command_errors("Search"):
        if provider:
            adapter = grit.make_adapter(ProviderKind(provider), "")
        else:
            with grit.repository() as repo:
                adapter = grit.adapter_for(repo)
        tracks = grit.retry_policy().call(
            lambda: adapter.search(query, limit), "search"
        )
        display_search_results(tracks, query)
