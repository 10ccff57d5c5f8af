"""CLI command modules."""

from .common import GritContext, pass_grit
from .init import init_command, list_command, playlists_command, search_command
from .staging import add_command, move_command, remove_command, reset_command, status_command
from .sync import pull_command, push_command
from .vcs import (
    apply_command,
    commit_command,
    diff_command,
    log_command,
    revert_command,
    show_command,
    verify_command,
)

__all__ = [
    "GritContext",
    "pass_grit",
    "init_command",
    "playlists_command",
    "list_command",
    "search_command",
    "add_command",
    "remove_command",
    "move_command",
    "reset_command",
    "status_command",
    "commit_command",
    "log_command",
    "show_command",
    "diff_command",
    "revert_command",
    "apply_command",
    "verify_command",
    "push_command",
    "pull_command",
]
