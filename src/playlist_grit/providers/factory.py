"""Playlist reference parsing and adapter construction."""

import logging
import re
from typing import Dict, Optional, Tuple, Type

from ..config import Config
from ..models import ProviderKind
from .base import ProviderAdapter
from .credentials import CredentialStore
from .http import HttpAdapter
from .spotify import SpotifyAdapter
from .youtube import YouTubeAdapter

logger = logging.getLogger(__name__)

ADAPTERS: Dict[ProviderKind, Type[HttpAdapter]] = {
    ProviderKind.SPOTIFY: SpotifyAdapter,
    ProviderKind.YOUTUBE: YouTubeAdapter,
}

SPOTIFY_URL_RE = re.compile(r"spotify\.com/(?:[^/]+/)*playlist/([A-Za-z0-9]+)")
SPOTIFY_URI_RE = re.compile(r"^spotify:(?:user:[^:]+:)?playlist:([A-Za-z0-9]+)$")
SPOTIFY_ID_RE = re.compile(r"^[A-Za-z0-9]{22}$")
YOUTUBE_LIST_RE = re.compile(r"[?&]list=([A-Za-z0-9_-]+)")
YOUTUBE_ID_RE = re.compile(r"^(?:PL|UU|LL|FL|OL|RD)[A-Za-z0-9_-]{10,}$")


def detect_provider(url_or_id: str) -> Optional[ProviderKind]:
    """Guess the provider from a playlist URL, URI or id."""
    value = url_or_id.strip()
    if "spotify.com" in value or value.startswith("spotify:"):
        return ProviderKind.SPOTIFY
    if "youtube.com" in value or "youtu.be" in value:
        return ProviderKind.YOUTUBE
    if YOUTUBE_ID_RE.match(value):
        return ProviderKind.YOUTUBE
    if SPOTIFY_ID_RE.match(value):
        return ProviderKind.SPOTIFY
    return None


def parse_playlist_ref(
    url_or_id: str, provider: Optional[ProviderKind] = None
) -> Tuple[ProviderKind, str]:
    """Get provider and playlist id from a URL, URI or bare id.

    Args:
        url_or_id: Playlist URL, ``spotify:playlist:`` URI or bare id
        provider: Provider to use when it cannot be detected

    Returns:
        Tuple of provider and playlist id

    Raises:
        ValueError: If the provider cannot be determined or no id is found
    """
    value = url_or_id.strip()
    detected = detect_provider(value) or provider
    if detected is None:
        raise ValueError(
            f"Cannot tell which provider '{url_or_id}' belongs to; pass --provider"
        )

    if detected == ProviderKind.SPOTIFY:
        match = SPOTIFY_URL_RE.search(value) or SPOTIFY_URI_RE.match(value)
        playlist_id = match.group(1) if match else value
    else:
        match = YOUTUBE_LIST_RE.search(value)
        playlist_id = match.group(1) if match else value

    if not playlist_id or "/" in playlist_id or ":" in playlist_id:
        raise ValueError(f"Invalid {detected.value} playlist reference: {url_or_id}")
    return detected, playlist_id


def create_adapter(
    provider: ProviderKind, playlist_id: str, config: Config
) -> ProviderAdapter:
    """Build an adapter for a playlist using stored credentials.

    Raises:
        AuthExpired: If no usable token is configured
    """
    token = CredentialStore(config.credentials_dir).get_valid_token(provider)
    adapter_class = ADAPTERS[provider]
    logger.debug("Creating %s for playlist %s", adapter_class.__name__, playlist_id)
    return adapter_class(playlist_id, token, timeout=config.http_timeout)
