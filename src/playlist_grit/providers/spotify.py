"""Spotify Web API adapter."""

import logging
import re
from typing import Any, Dict, List, Optional

from ..core.errors import NotFound, TrackNotFound
from ..models import PlaylistInfo, ProviderKind, Snapshot, Track
from .http import HttpAdapter

logger = logging.getLogger(__name__)

API_BASE = "https://api.spotify.com/v1"
PAGE_SIZE = 100

TRACK_ID_RE = re.compile(r"^[A-Za-z0-9]{22}$")
TRACK_URL_RE = re.compile(r"open\.spotify\.com/(?:intl-[a-z]+/)?track/([A-Za-z0-9]{22})")
TRACK_URI_RE = re.compile(r"^spotify:track:([A-Za-z0-9]{22})$")


def extract_track_id(value: str) -> Optional[str]:
    """Get a Spotify track id from an id, URL or URI, None for free text."""
    value = value.strip()
    if TRACK_ID_RE.match(value):
        return value
    for pattern in (TRACK_URL_RE, TRACK_URI_RE):
        match = pattern.search(value)
        if match:
            return match.group(1)
    return None


def track_uri(track_id: str) -> str:
    """Get the URI the playlist endpoints expect for a track id."""
    if track_id.startswith("spotify:"):
        return track_id
    return f"spotify:track:{track_id}"


def track_from_json(data: Dict[str, Any]) -> Track:
    """Build a Track from a Spotify track object.

    Local files have no id; their URI stands in for it.
    """
    album = (data.get("album") or {}).get("name")
    return Track(
        id=data.get("id") or data["uri"],
        title=data.get("name") or "",
        artists=[artist["name"] for artist in data.get("artists") or [] if artist.get("name")],
        duration_ms=data.get("duration_ms") or 0,
        provider=ProviderKind.SPOTIFY,
        metadata={"album": album} if album else None,
    )


class SpotifyAdapter(HttpAdapter):
    """Spotify playlist bound to the Web API.

    Positional edits carry the playlist ``snapshot_id`` so Spotify applies them
    to the version of the playlist they were computed against.

    Items whose track is unavailable come back as ``track: null``. They are left
    out of the snapshot but still occupy a position on Spotify, so the adapter
    keeps every remote slot in ``_slots`` (None for unavailable ones) and
    translates snapshot positions into real positions before each edit.
    """

    kind = ProviderKind.SPOTIFY
    api_base = API_BASE
    service_name = "Spotify"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        """Initialize adapter (see HttpAdapter)."""
        super().__init__(*args, **kwargs)
        self.snapshot_id: Optional[str] = None
        self._slots: List[Optional[str]] = []

    def fetch_info(self) -> PlaylistInfo:
        """Fetch playlist name."""
        data = self._request(
            "GET",
            f"/playlists/{self.playlist_id}",
            params={"fields": "id,name,snapshot_id"},
        )
        self.snapshot_id = data.get("snapshot_id")
        return PlaylistInfo(id=data["id"], name=data.get("name") or "", provider=self.kind)

    def _fetch_snapshot(self) -> Snapshot:
        self.fetch_info()
        tracks: List[Track] = []
        slots: List[Optional[str]] = []
        url: Optional[str] = f"/playlists/{self.playlist_id}/tracks"
        params: Optional[Dict[str, Any]] = {"limit": PAGE_SIZE, "offset": 0}
        while url:
            page = self._request("GET", url, params=params)
            for item in page.get("items") or []:
                data = item.get("track")
                if not data:
                    slots.append(None)
                    continue
                track = track_from_json(data)
                tracks.append(track)
                slots.append(track.id)
            # The next link already carries limit and offset
            url, params = page.get("next"), None
        self._slots = slots
        return Snapshot.from_tracks(tracks)

    def _real_position(self, position: int) -> int:
        """Remote index of the ``position``-th available track, the end if past it."""
        seen = 0
        for index, track_id in enumerate(self._slots):
            if track_id is None:
                continue
            if seen == position:
                return index
            seen += 1
        return len(self._slots)

    def _insert(self, track_id: str, position: int) -> None:
        real = self._real_position(position)
        data = self._request(
            "POST",
            f"/playlists/{self.playlist_id}/tracks",
            json={"uris": [track_uri(track_id)], "position": real},
        )
        self._update_snapshot_id(data)
        self._slots.insert(real, track_id)
        logger.info("Spotify: added %s at %d", track_id, real)

    def _delete(self, track_id: str, position: int) -> None:
        real = self._real_position(position)
        body: Dict[str, Any] = {
            "tracks": [{"uri": track_uri(track_id), "positions": [real]}]
        }
        if self.snapshot_id:
            body["snapshot_id"] = self.snapshot_id
        data = self._request(
            "DELETE", f"/playlists/{self.playlist_id}/tracks", json=body
        )
        self._update_snapshot_id(data)
        self._slots.pop(real)
        logger.info("Spotify: removed %s from %d", track_id, real)

    def _reorder(self, track_id: str, source: int, target: int) -> None:
        range_start = self._real_position(source)
        # insert_before counts positions before the range is taken out, so it
        # names the track that will follow the moved one
        follower = target if target < source else target + 1
        insert_before = self._real_position(follower)
        body: Dict[str, Any] = {"range_start": range_start, "insert_before": insert_before}
        if self.snapshot_id:
            body["snapshot_id"] = self.snapshot_id
        data = self._request("PUT", f"/playlists/{self.playlist_id}/tracks", json=body)
        self._update_snapshot_id(data)
        moved = self._slots.pop(range_start)
        if insert_before > range_start:
            insert_before -= 1
        self._slots.insert(insert_before, moved)
        logger.info("Spotify: moved %s from %d to %d", track_id, range_start, insert_before)

    def resolve_track(self, id_or_query: str) -> Track:
        """Resolve a track id, URL, URI or search query."""
        track_id = extract_track_id(id_or_query)
        if track_id is None:
            results = self.search(id_or_query, limit=1)
            if not results:
                raise TrackNotFound(id_or_query, "Spotify search results")
            return results[0]
        try:
            data = self._request("GET", f"/tracks/{track_id}", not_found=NotFound)
        except NotFound:
            raise TrackNotFound(track_id, "Spotify catalogue") from None
        return track_from_json(data)

    def search(self, query: str, limit: int = 10) -> List[Track]:
        """Search Spotify tracks."""
        data = self._request(
            "GET",
            "/search",
            params={"q": query, "type": "track", "limit": max(1, min(limit, 50))},
        )
        items = ((data or {}).get("tracks") or {}).get("items") or []
        return [track_from_json(item) for item in items if item]

    def _update_snapshot_id(self, data: Any) -> None:
        if isinstance(data, dict) and data.get("snapshot_id"):
            self.snapshot_id = data["snapshot_id"]
