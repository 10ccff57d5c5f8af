"""Command-line interface for playlist version control.

This is the main entry point that delegates to command modules.
"""

from pathlib import Path
from typing import Any, Optional

import click

from ..config import get_config
from ..core.repository import Workspace
from ..utils.logging_config import setup_logging
from .commands import (
    GritContext,
    add_command,
    apply_command,
    commit_command,
    diff_command,
    init_command,
    list_command,
    log_command,
    move_command,
    playlists_command,
    pull_command,
    push_command,
    remove_command,
    reset_command,
    revert_command,
    search_command,
    show_command,
    status_command,
    verify_command,
)


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Set logging level",
)
@click.option("--log-file", type=click.Path(), help="Log to file")
@click.option(
    "--grit-dir",
    type=click.Path(file_okay=False),
    help="Workspace directory (default: $GRIT_DIR or .grit)",
)
@click.option("--playlist", "-l", help="Playlist id or URL to work on")
@click.pass_context
def cli(
    ctx: Any,
    log_level: str,
    log_file: Optional[str],
    grit_dir: Optional[str],
    playlist: Optional[str],
) -> None:
    """Playlist Grit.

    Version control for Spotify and YouTube playlists: stage edits, commit
    them, then push to or pull from the remote playlist.
    """
    config = get_config(Path(grit_dir) if grit_dir else None)

    log_path = Path(log_file) if log_file else config.log_file
    setup_logging(log_level=log_level, log_file=log_path)

    ctx.obj = GritContext(config, Workspace(config), playlist)


# Register commands
cli.add_command(init_command)
cli.add_command(playlists_command)
cli.add_command(list_command)
cli.add_command(search_command)
cli.add_command(add_command)
cli.add_command(remove_command)
cli.add_command(move_command)
cli.add_command(reset_command)
cli.add_command(status_command)
cli.add_command(commit_command)
cli.add_command(log_command)
cli.add_command(show_command)
cli.add_command(diff_command)
cli.add_command(revert_command)
cli.add_command(apply_command)
cli.add_command(verify_command)
cli.add_command(push_command)
cli.add_command(pull_command)


if __name__ == "__main__":
    cli()
