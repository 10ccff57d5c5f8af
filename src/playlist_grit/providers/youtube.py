"""YouTube Data API v3 adapter."""

import logging
import re
from typing import Any, Dict, List, Optional, Type

import requests

from ..core.errors import NotFound, PlaylistNotFound, RateLimited, TrackNotFound
from ..models import PlaylistInfo, ProviderKind, Snapshot, Track
from .http import HttpAdapter, error_detail, parse_retry_after

logger = logging.getLogger(__name__)

API_BASE = "https://www.googleapis.com/youtube/v3"
PAGE_SIZE = 50

VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")
VIDEO_URL_RE = re.compile(
    r"(?:youtube\.com/(?:watch\?(?:.*&)?v=|shorts/|embed/)|youtu\.be/)([A-Za-z0-9_-]{11})"
)
DURATION_RE = re.compile(
    r"^P(?:(?P<days>\d+)D)?(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)
QUOTA_REASONS = ("quotaExceeded", "rateLimitExceeded", "userRateLimitExceeded")


def parse_iso8601_duration(duration: str) -> int:
    """Convert an ISO-8601 duration such as ``PT1H2M3S`` to milliseconds.

    Unparseable values count as zero.
    """
    match = DURATION_RE.match(duration or "")
    if not match:
        return 0
    parts = {name: int(value) for name, value in match.groupdict().items() if value}
    seconds = (
        parts.get("days", 0) * 86400
        + parts.get("hours", 0) * 3600
        + parts.get("minutes", 0) * 60
        + parts.get("seconds", 0)
    )
    return seconds * 1000


def extract_video_id(value: str) -> Optional[str]:
    """Get a video id from an id or YouTube URL, None for free text."""
    value = value.strip()
    if VIDEO_ID_RE.match(value):
        return value
    match = VIDEO_URL_RE.search(value)
    return match.group(1) if match else None


def track_from_video(video: Dict[str, Any]) -> Track:
    """Build a Track from a ``videos`` resource."""
    snippet = video.get("snippet") or {}
    details = video.get("contentDetails") or {}
    channel = snippet.get("channelTitle")
    return Track(
        id=video["id"],
        title=snippet.get("title") or "",
        artists=[channel] if channel else [],
        duration_ms=parse_iso8601_duration(details.get("duration", "")),
        provider=ProviderKind.YOUTUBE,
    )


class YouTubeAdapter(HttpAdapter):
    """YouTube playlist bound to the Data API.

    Playlist items have their own ids, distinct from video ids. The adapter
    keeps the item ids in remote order alongside the mirror.
    """

    kind = ProviderKind.YOUTUBE
    api_base = API_BASE
    service_name = "YouTube"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        """Initialize adapter (see HttpAdapter)."""
        super().__init__(*args, **kwargs)
        self._item_ids: List[str] = []

    def fetch_info(self) -> PlaylistInfo:
        """Fetch playlist title."""
        data = self._request(
            "GET", "/playlists", params={"part": "snippet", "id": self.playlist_id}
        )
        items = (data or {}).get("items") or []
        if not items:
            raise PlaylistNotFound(f"YouTube playlist not found: {self.playlist_id}")
        return PlaylistInfo(
            id=items[0]["id"],
            name=(items[0].get("snippet") or {}).get("title") or "",
            provider=self.kind,
        )

    def _fetch_snapshot(self) -> Snapshot:
        entries = []
        page_token: Optional[str] = None
        while True:
            params: Dict[str, Any] = {
                "part": "snippet,contentDetails",
                "playlistId": self.playlist_id,
                "maxResults": PAGE_SIZE,
            }
            if page_token:
                params["pageToken"] = page_token
            page = self._request("GET", "/playlistItems", params=params)
            for item in page.get("items") or []:
                video_id = (item.get("contentDetails") or {}).get("videoId")
                if video_id:
                    entries.append((item["id"], video_id, item.get("snippet") or {}))
            page_token = page.get("nextPageToken")
            if not page_token:
                break

        videos = self._fetch_videos([video_id for _, video_id, _ in entries])
        tracks = []
        for _, video_id, snippet in entries:
            track = videos.get(video_id)
            if track is None:
                # Deleted or private video: keep the slot with item metadata
                owner = snippet.get("videoOwnerChannelTitle")
                track = Track(
                    id=video_id,
                    title=snippet.get("title") or "",
                    artists=[owner] if owner else [],
                    provider=ProviderKind.YOUTUBE,
                )
            tracks.append(track)

        self._item_ids = [item_id for item_id, _, _ in entries]
        return Snapshot.from_tracks(tracks)

    def _fetch_videos(self, video_ids: List[str]) -> Dict[str, Track]:
        """Look up video metadata in batches, keyed by video id."""
        found: Dict[str, Track] = {}
        unique = list(dict.fromkeys(video_ids))
        for start in range(0, len(unique), PAGE_SIZE):
            batch = unique[start : start + PAGE_SIZE]
            data = self._request(
                "GET",
                "/videos",
                params={"part": "snippet,contentDetails", "id": ",".join(batch)},
                not_found=NotFound,
            )
            for video in (data or {}).get("items") or []:
                found[video["id"]] = track_from_video(video)
        return found

    def _insert(self, track_id: str, position: int) -> None:
        data = self._request(
            "POST",
            "/playlistItems",
            params={"part": "snippet"},
            json={
                "snippet": {
                    "playlistId": self.playlist_id,
                    "resourceId": {"kind": "youtube#video", "videoId": track_id},
                    "position": position,
                }
            },
        )
        self._item_ids.insert(position, data["id"])
        logger.info("YouTube: added %s at %d", track_id, position)

    def _delete(self, track_id: str, position: int) -> None:
        self._request("DELETE", "/playlistItems", params={"id": self._item_ids[position]})
        self._item_ids.pop(position)
        logger.info("YouTube: removed %s from %d", track_id, position)

    def _reorder(self, track_id: str, source: int, target: int) -> None:
        item_id = self._item_ids[source]
        self._request(
            "PUT",
            "/playlistItems",
            params={"part": "snippet"},
            json={
                "id": item_id,
                "snippet": {
                    "playlistId": self.playlist_id,
                    "resourceId": {"kind": "youtube#video", "videoId": track_id},
                    "position": target,
                },
            },
        )
        self._item_ids.insert(target, self._item_ids.pop(source))
        logger.info("YouTube: moved %s from %d to %d", track_id, source, target)

    def resolve_track(self, id_or_query: str) -> Track:
        """Resolve a video id, URL or search query."""
        video_id = extract_video_id(id_or_query)
        if video_id is None:
            results = self.search(id_or_query, limit=1)
            if not results:
                raise TrackNotFound(id_or_query, "YouTube search results")
            return results[0]
        track = self._fetch_videos([video_id]).get(video_id)
        if track is None:
            raise TrackNotFound(video_id, "YouTube catalogue")
        return track

    def search(self, query: str, limit: int = 10) -> List[Track]:
        """Search YouTube videos."""
        data = self._request(
            "GET",
            "/search",
            params={
                "part": "snippet",
                "q": query,
                "type": "video",
                "maxResults": max(1, min(limit, PAGE_SIZE)),
            },
        )
        video_ids = [
            item["id"]["videoId"]
            for item in (data or {}).get("items") or []
            if (item.get("id") or {}).get("videoId")
        ]
        videos = self._fetch_videos(video_ids)
        return [videos[video_id] for video_id in video_ids if video_id in videos]

    def _raise_for_status(
        self, response: requests.Response, not_found: Type[NotFound]
    ) -> None:
        """Treat quota errors, which YouTube reports as 403, as rate limiting."""
        if response.status_code == 403:
            detail = error_detail(response)
            if any(reason in response.text for reason in QUOTA_REASONS):
                raise RateLimited(
                    f"YouTube quota exceeded: {detail}",
                    retry_after=parse_retry_after(response.headers.get("Retry-After")),
                )
        super()._raise_for_status(response, not_found)
