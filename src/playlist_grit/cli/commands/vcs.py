"""History commands: commit, log, show, diff, revert, apply, verify."""

import logging
from itertools import islice
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape

from ...core.diff import compute_diff
from ...storage import load_snapshot_file
from ..display import display_commit, display_log, display_problems, display_script
from .common import GritContext, command_errors, pass_grit

console = Console()
logger = logging.getLogger(__name__)


@click.command("commit")
@click.option("--message", "-m", required=True, help="Commit message")
@pass_grit
def commit_command(grit: GritContext, message: str) -> None:
    """Record staged changes as a new commit."""
    with command_errors("Commit"):
        with grit.repository() as repo:
            script = repo.diff_staged()
            commit = repo.commit(message)
        console.print(
            f"[green]✅ \\[{commit.short_hash}] {escape(message)}[/green] ({script.summary()})"
        )


@click.command("log")
@click.option("--limit", "-n", type=int, help="Show at most N commits")
@pass_grit
def log_command(grit: GritContext, limit: Optional[int]) -> None:
    """Show history from HEAD back to the root commit."""
    with command_errors("Log"):
        with grit.repository() as repo:
            commits = iter(repo.log())
            if limit is not None:
                commits = islice(commits, limit)
            display_log(commits)


@click.command("show")
@click.argument("ref")
@pass_grit
def show_command(grit: GritContext, ref: str) -> None:
    """Show one commit, its changes and its snapshot."""
    with command_errors("Show"):
        with grit.repository() as repo:
            commit = repo.find(ref)
            snapshot = repo.snapshot_for(commit)
            parent = None
            changes = None
            if commit.parent_hash is not None:
                parent = repo.snapshot_for(repo.find(commit.parent_hash))
                changes = compute_diff(parent, snapshot)
            display_commit(commit, snapshot, changes, parent)


@click.command("diff")
@click.option("--staged", "mode", flag_value="staged", default=True, help="HEAD to staged (default)")
@click.option("--remote", "mode", flag_value="remote", help="HEAD to the remote playlist")
@pass_grit
def diff_command(grit: GritContext, mode: str) -> None:
    """Show the edit script from HEAD to the staged or remote playlist."""
    with command_errors("Diff"):
        with grit.repository() as repo:
            if mode == "remote":
                engine = grit.sync_engine(repo)
                remote = engine.fetch_remote()
                display_script(
                    repo.diff_against(remote), "HEAD -> remote", repo.head_snapshot, remote
                )
            else:
                status = repo.status()
                display_script(
                    repo.diff_staged(), "HEAD -> staged", status.snapshot, repo.head_snapshot
                )


@click.command("revert")
@click.argument("ref", required=False)
@pass_grit
def revert_command(grit: GritContext, ref: Optional[str]) -> None:
    """Restore a past snapshot as a new commit (HEAD's parent by default)."""
    with command_errors("Revert"):
        with grit.repository() as repo:
            commit = repo.revert(ref)
        console.print(f"[green]✅ \\[{commit.short_hash}] {escape(commit.message)}[/green]")


@click.command("apply")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@pass_grit
def apply_command(grit: GritContext, file: Path) -> None:
    """Stage the changes that turn HEAD into a playlist file."""
    with command_errors("Apply"):
        provider, target = load_snapshot_file(file)
        with grit.repository() as repo:
            if provider is not None and provider != repo.provider:
                raise ValueError(
                    f"{file} is a {provider.value} playlist, "
                    f"this repository tracks {repo.provider.value}"
                )
            script = repo.stage_snapshot(target)
            display_script(script, f"Staged from {file.name}", target, repo.head_snapshot)


@click.command("verify")
@pass_grit
def verify_command(grit: GritContext) -> None:
    """Check the commit hash chain."""
    with command_errors("Verify"):
        with grit.repository() as repo:
            problems = repo.verify()
        display_problems(problems)
    if problems:
        raise click.Abort()
