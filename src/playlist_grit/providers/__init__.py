"""Streaming-service adapters."""

from .base import ProviderAdapter, RemoteMirror
from .credentials import CredentialStore, OAuthToken
from .factory import create_adapter, detect_provider, parse_playlist_ref
from .spotify import SpotifyAdapter
from .youtube import YouTubeAdapter

__all__ = [
    "ProviderAdapter",
    "RemoteMirror",
    "SpotifyAdapter",
    "YouTubeAdapter",
    "CredentialStore",
    "OAuthToken",
    "create_adapter",
    "detect_provider",
    "parse_playlist_ref",
]
