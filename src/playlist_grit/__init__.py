"""Playlist Grit.

Git-style version control for streaming-service playlists: stage edits,
commit them into a hash-chained history and push or pull against Spotify or
YouTube.
"""

__version__ = "0.1.0"
__author__ = "Anton"
__email__ = ""

from .config import Config
from .models import Commit, Snapshot, Track

__all__ = [
    "Config",
    "Track",
    "Snapshot",
    "Commit",
]
