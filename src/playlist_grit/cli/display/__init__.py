"""Display utilities for CLI output."""

from .formatters import (
    console,
    display_commit,
    display_log,
    display_playlists,
    display_problems,
    display_script,
    display_search_results,
    display_status,
    display_sync_error,
    display_tracks,
)

__all__ = [
    "console",
    "display_commit",
    "display_log",
    "display_playlists",
    "display_problems",
    "display_script",
    "display_search_results",
    "display_status",
    "display_sync_error",
    "display_tracks",
]
