"""Helpers shared by the CLI commands."""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

import click
from rich.console import Console
from rich.markup import escape

from ...config import Config
from ...core.errors import GritError, SyncError, TrackNotFound
from ...core.repository import Repository, Workspace
from ...core.sync import RetryPolicy, SyncEngine
from ...models import ProviderKind, Snapshot
from ...providers import ProviderAdapter, create_adapter
from ..display import display_sync_error

console = Console()
logger = logging.getLogger(__name__)


@dataclass
class GritContext:
    """Objects every command needs, built once by the command group."""

    config: Config
    workspace: Workspace
    playlist: Optional[str] = None

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy.from_config(self.config)

    def make_adapter(self, kind: ProviderKind, playlist_id: str) -> ProviderAdapter:
        """Adapter for a remote playlist, using stored credentials."""
        return create_adapter(kind, playlist_id, self.config)

    def adapter_for(self, repo: Repository) -> ProviderAdapter:
        """Adapter bound to a repository's remote playlist."""
        return self.make_adapter(repo.provider, repo.playlist_id)

    def sync_engine(self, repo: Repository) -> SyncEngine:
        """Sync engine for a repository."""
        return SyncEngine(repo, self.adapter_for(repo), self.retry_policy())

    @contextmanager
    def repository(self) -> Iterator[Repository]:
        """Open the selected playlist's repository under its lock."""
        playlist_id = self.workspace.resolve_playlist_id(self.playlist)
        with self.workspace.open(playlist_id) as repo:
            yield repo


pass_grit = click.make_pass_decorator(GritContext)


@contextmanager
def command_errors(action: str, local: Optional[Snapshot] = None) -> Iterator[None]:
    """Turn engine errors into a red message and ``click.Abort``.

    Args:
        action: What the command was doing, for the failure message
        local: Snapshot used to name tracks in sync conflict output
    """
    try:
        yield
    except SyncError as e:
        logger.debug("%s failed", action, exc_info=True)
        display_sync_error(e, local)
        raise click.Abort()
    except (GritError, ValueError) as e:
        logger.debug("%s failed", action, exc_info=True)
        console.print(f"[bold red]❌ {action} failed: {escape(str(e))}[/bold red]")
        raise click.Abort()
    except (click.Abort, click.exceptions.Exit):
        raise
    except Exception as e:
        logger.exception("%s failed", action)
        console.print(f"[bold red]❌ {action} failed: {escape(str(e))}[/bold red]")
        raise click.Abort()


def resolve_local_track(snapshot: Snapshot, ref: str) -> str:
    """Find a track in a snapshot by id or, failing that, by unique title match.

    Raises:
        TrackNotFound: If nothing or more than one track matches
    """
    if snapshot.contains(ref):
        return ref
    needle = ref.lower()
    matches = []
    for track_id in dict.fromkeys(snapshot.track_ids):
        track = snapshot.get_track(track_id)
        if needle in track.title.lower() or needle in track.get_display_name().lower():
            matches.append(track_id)
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise TrackNotFound(ref, f"playlist (matches {len(matches)} tracks, use the id)")
    raise TrackNotFound(ref)
