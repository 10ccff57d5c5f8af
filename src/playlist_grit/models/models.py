"""Data models for the playlist version-control engine."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProviderKind(str, Enum):
    """Streaming services a playlist can live on."""

    SPOTIFY = "spotify"
    YOUTUBE = "youtube"


class Track(BaseModel):
    """Represents a track on a streaming service.

    Identity is the provider-scoped ``id``. Title or artist changes upstream do
    not make two tracks with the same id different.
    """

    id: str
    title: str = ""
    artists: List[str] = []
    duration_ms: int = 0
    provider: ProviderKind = ProviderKind.SPOTIFY
    metadata: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(frozen=True)

    def __eq__(self, other: object) -> bool:
        """Compare tracks by id only."""
        if not isinstance(other, Track):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        """Hash tracks by id only."""
        return hash(self.id)

    @property
    def artist_line(self) -> str:
        """Get artists joined for display."""
        return ", ".join(self.artists)

    @property
    def duration_formatted(self) -> str:
        """Get formatted duration string (m:ss)."""
        if not self.duration_ms:
            return "Unknown"
        seconds = self.duration_ms // 1000
        return f"{seconds // 60}:{seconds % 60:02d}"

    def get_display_name(self) -> str:
        """Get 'Title - Artists' for display, falling back to the id."""
        if not self.title:
            return self.id
        if self.artists:
            return f"{self.title} - {self.artist_line}"
        return self.title


class Snapshot(BaseModel):
    """An ordered playlist state at one instant.

    ``track_ids`` is the snapshot. ``tracks`` is a metadata cache keyed by id
    and does not take part in equality or hashing.
    """

    track_ids: Tuple[str, ...] = ()
    tracks: Dict[str, Track] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def of(
        cls, track_ids: Iterable[str], tracks: Optional[Iterable[Track]] = None
    ) -> "Snapshot":
        """Build a snapshot from ids and optional track metadata."""
        cache = {track.id: track for track in tracks or ()}
        return cls(track_ids=tuple(track_ids), tracks=cache)

    @classmethod
    def from_tracks(cls, tracks: Iterable[Track]) -> "Snapshot":
        """Build a snapshot whose order is the order of ``tracks``."""
        tracks = list(tracks)
        return cls.of((track.id for track in tracks), tracks)

    def __eq__(self, other: object) -> bool:
        """Compare snapshots by ordered track ids."""
        if not isinstance(other, Snapshot):
            return NotImplemented
        return self.track_ids == other.track_ids

    def __hash__(self) -> int:
        """Hash snapshots by ordered track ids."""
        return hash(self.track_ids)

    def __len__(self) -> int:
        """Get number of entries in the snapshot."""
        return len(self.track_ids)

    def contains(self, track_id: str) -> bool:
        """Check whether the track id occurs at least once."""
        return track_id in self.track_ids

    def with_tracks(self, tracks: Iterable[Track]) -> "Snapshot":
        """Return a copy whose metadata cache also holds ``tracks``."""
        cache = dict(self.tracks)
        for track in tracks:
            cache[track.id] = track
        return Snapshot(track_ids=self.track_ids, tracks=cache)

    def get_track(self, track_id: str) -> Track:
        """Get cached metadata for a track, or a bare Track if none is cached."""
        track = self.tracks.get(track_id)
        if track is None:
            return Track(id=track_id)
        return track

    def ordered_tracks(self) -> List[Track]:
        """Get tracks in snapshot order."""
        return [self.get_track(track_id) for track_id in self.track_ids]


class ChangeKind(str, Enum):
    """Kinds of per-track playlist edits."""

    ADD = "add"
    REMOVE = "remove"
    MOVE = "move"


class StagedChange(BaseModel):
    """A pending edit for one track id.

    Attributes:
        kind: What the change does
        track_id: Track the change applies to
        index: Insert position for add, target position for move
        from_index: Position hint for remove, origin hint for move
        track: Track metadata carried by add
    """

    kind: ChangeKind
    track_id: str
    index: Optional[int] = None
    from_index: Optional[int] = None
    track: Optional[Track] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def add(cls, track: Track, index: Optional[int] = None) -> "StagedChange":
        """Create an add change."""
        return cls(kind=ChangeKind.ADD, track_id=track.id, index=index, track=track)

    @classmethod
    def remove(
        cls, track_id: str, from_index: Optional[int] = None
    ) -> "StagedChange":
        """Create a remove change."""
        return cls(kind=ChangeKind.REMOVE, track_id=track_id, from_index=from_index)

    @classmethod
    def move(
        cls, track_id: str, index: int, from_index: Optional[int] = None
    ) -> "StagedChange":
        """Create a move change."""
        return cls(
            kind=ChangeKind.MOVE,
            track_id=track_id,
            index=index,
            from_index=from_index,
        )

    def __str__(self) -> str:
        """Human-readable representation of the change."""
        if self.kind == ChangeKind.ADD:
            where = "end" if self.index is None else str(self.index)
            return f"+ {self.track_id} @ {where}"
        if self.kind == ChangeKind.REMOVE:
            return f"- {self.track_id}"
        return f"~ {self.track_id} -> {self.index}"


class Commit(BaseModel):
    """An immutable node of the linear history."""

    hash: str
    parent_hash: Optional[str] = None
    message: str
    timestamp: datetime
    snapshot: Snapshot

    model_config = ConfigDict(frozen=True)

    @field_validator("timestamp", mode="after")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        """Normalize timestamps to timezone-aware UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @property
    def short_hash(self) -> str:
        """Get abbreviated hash for display."""
        return self.hash[:12]

    @property
    def is_root(self) -> bool:
        """Check whether this is the first commit of the chain."""
        return self.parent_hash is None

    def to_record(self) -> Dict[str, Any]:
        """Convert commit to a journal record."""
        return {
            "hash": self.hash,
            "parent_hash": self.parent_hash,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "track_ids": list(self.snapshot.track_ids),
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Commit":
        """Create a commit from a journal record."""
        return cls(
            hash=record["hash"],
            parent_hash=record.get("parent_hash"),
            message=record["message"],
            timestamp=datetime.fromisoformat(record["timestamp"]),
            snapshot=Snapshot.of(record["track_ids"]),
        )


class SyncWatermark(BaseModel):
    """Last state known to be synchronized with the remote playlist."""

    last_pushed_hash: Optional[str] = None
    last_pulled_snapshot: Optional[Snapshot] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert watermark to a dictionary for serialization."""
        pulled = self.last_pulled_snapshot
        return {
            "last_pushed_hash": self.last_pushed_hash,
            "last_pulled_snapshot": (
                list(pulled.track_ids) if pulled is not None else None
            ),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SyncWatermark":
        """Create a watermark from its serialized form."""
        pulled = data.get("last_pulled_snapshot")
        return cls(
            last_pushed_hash=data.get("last_pushed_hash"),
            last_pulled_snapshot=Snapshot.of(pulled) if pulled is not None else None,
        )


class PushIntent(BaseModel):
    """Marker for a push that started applying operations to the remote."""

    target_hash: str
    started_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class PlaylistInfo(BaseModel):
    """Identity of a tracked remote playlist."""

    id: str
    name: str = ""
    provider: ProviderKind

    model_config = ConfigDict(frozen=True)
