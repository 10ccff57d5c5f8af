"""On-disk layout of one playlist repository.

::

    <grit_dir>/playlists/<playlist_id>/
        playlist.yaml          HEAD snapshot with track metadata
        staged.json            staged changes
        journal.log            commit chain, JSON lines
        sync.json              sync watermark
        push.json              in-flight push marker
        snapshots/<hash>.yaml  snapshot with metadata per commit
        .lock                  advisory lock

Everything except ``journal.log`` is replaced atomically.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from ..core.errors import GritError, RepositoryExists, RepositoryNotFound
from ..core.journal import Journal
from ..models import (
    PlaylistInfo,
    ProviderKind,
    PushIntent,
    Snapshot,
    StagedChange,
    SyncWatermark,
    Track,
)
from .lock import RepositoryLock

logger = logging.getLogger(__name__)


def write_atomic(path: Path, text: str) -> None:
    """Write text to ``path`` through a temp file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise GritError(f"Unreadable file {path}: {e}") from e


def _write_json(path: Path, data: Any) -> None:
    write_atomic(path, json.dumps(data, indent=2, ensure_ascii=False) + "\n")


def _read_yaml(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise GritError(f"Unreadable file {path}: {e}") from e


def _write_yaml(path: Path, data: Any) -> None:
    write_atomic(
        path,
        yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False),
    )


def track_to_dict(track: Track) -> Dict[str, Any]:
    """Convert a track to a plain dictionary for YAML."""
    return track.model_dump(mode="json", exclude_none=True)


def snapshot_to_document(
    snapshot: Snapshot,
    info: Optional[PlaylistInfo] = None,
    head: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the ``playlist.yaml`` document for a snapshot."""
    document: Dict[str, Any] = {}
    if info is not None:
        document["id"] = info.id
        document["name"] = info.name
        document["provider"] = info.provider.value
    document["head"] = head
    document["tracks"] = [track_to_dict(track) for track in snapshot.ordered_tracks()]
    return document


def snapshot_from_document(data: Any) -> Tuple[Optional[ProviderKind], Snapshot]:
    """Read a snapshot from a ``playlist.yaml`` document or a bare id list.

    Returns:
        Tuple of the document's provider (None if it names none) and snapshot

    Raises:
        ValueError: If the document has neither layout
    """
    provider = None
    if isinstance(data, dict):
        if data.get("provider"):
            provider = ProviderKind(data["provider"])
        entries = data.get("tracks") or []
    elif isinstance(data, list):
        entries = data
    elif data is None:
        entries = []
    else:
        raise ValueError("Expected a playlist document or a list of track ids")

    ids: List[str] = []
    tracks: List[Track] = []
    for entry in entries:
        if isinstance(entry, dict):
            if provider is not None and "provider" not in entry:
                entry = dict(entry, provider=provider.value)
            track = Track.model_validate(entry)
            tracks.append(track)
            ids.append(track.id)
        elif isinstance(entry, (str, int)):
            ids.append(str(entry))
        else:
            raise ValueError(f"Invalid track entry: {entry!r}")
    return provider, Snapshot.of(ids, tracks)


def load_snapshot_file(path: Path) -> Tuple[Optional[ProviderKind], Snapshot]:
    """Load a snapshot from a YAML file."""
    return snapshot_from_document(_read_yaml(path))


class RepositoryStore:
    """Reads and writes the files of one playlist repository."""

    def __init__(self, root: Path) -> None:
        """Initialize store.

        Args:
            root: Repository directory
        """
        self.root = root

    @property
    def playlist_file(self) -> Path:
        return self.root / "playlist.yaml"

    @property
    def staged_file(self) -> Path:
        return self.root / "staged.json"

    @property
    def journal_file(self) -> Path:
        return self.root / "journal.log"

    @property
    def sync_file(self) -> Path:
        return self.root / "sync.json"

    @property
    def push_file(self) -> Path:
        return self.root / "push.json"

    @property
    def snapshots_dir(self) -> Path:
        return self.root / "snapshots"

    @property
    def lock_file(self) -> Path:
        return self.root / ".lock"

    def exists(self) -> bool:
        """Check whether the repository has been initialized."""
        return self.playlist_file.exists()

    def lock(self, timeout: float) -> RepositoryLock:
        """Get the repository lock (not yet acquired)."""
        return RepositoryLock(self.lock_file, timeout)

    def create(self) -> None:
        """Create the repository directory.

        Raises:
            RepositoryExists: If it is already initialized
        """
        if self.exists():
            raise RepositoryExists(f"Playlist is already tracked: {self.root.name}")
        self.snapshots_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("Created repository directory %s", self.root)

    def require(self) -> None:
        """Raise RepositoryNotFound unless the repository exists."""
        if not self.exists():
            raise RepositoryNotFound(f"Playlist is not tracked: {self.root.name}")

    # Playlist / HEAD snapshot

    def load_playlist(self) -> Tuple[PlaylistInfo, Optional[str], Snapshot]:
        """Load playlist identity, HEAD hash and HEAD snapshot."""
        self.require()
        data = _read_yaml(self.playlist_file) or {}
        try:
            info = PlaylistInfo(
                id=data["id"], name=data.get("name") or "", provider=data["provider"]
            )
            _, snapshot = snapshot_from_document(data)
        except (KeyError, ValueError) as e:
            raise GritError(f"Unreadable file {self.playlist_file}: {e}") from e
        return info, data.get("head"), snapshot

    def save_playlist(
        self, info: PlaylistInfo, head: Optional[str], snapshot: Snapshot
    ) -> None:
        """Write playlist identity, HEAD hash and HEAD snapshot."""
        _write_yaml(self.playlist_file, snapshot_to_document(snapshot, info, head))

    # Per-commit snapshots

    def save_commit_snapshot(self, commit_hash: str, snapshot: Snapshot) -> None:
        """Materialize a commit's snapshot with its track metadata."""
        _write_yaml(
            self.snapshots_dir / f"{commit_hash}.yaml",
            snapshot_to_document(snapshot, head=commit_hash),
        )

    def load_commit_snapshot(self, commit_hash: str) -> Optional[Snapshot]:
        """Load a materialized commit snapshot, None if it was never written."""
        path = self.snapshots_dir / f"{commit_hash}.yaml"
        if not path.exists():
            return None
        _, snapshot = load_snapshot_file(path)
        return snapshot

    # Staging

    def load_staged(self) -> List[StagedChange]:
        """Load staged changes in staging order."""
        if not self.staged_file.exists():
            return []
        data = _read_json(self.staged_file) or {}
        return [
            StagedChange.model_validate(change)
            for change in (data.get("changes") or {}).values()
        ]

    def save_staged(self, changes: List[StagedChange]) -> None:
        """Write staged changes."""
        _write_json(
            self.staged_file,
            {
                "changes": {
                    change.track_id: change.model_dump(mode="json", exclude_none=True)
                    for change in changes
                }
            },
        )

    # Journal

    def load_journal(self) -> Journal:
        """Load and verify the commit journal."""
        return Journal.load(self.journal_file)

    # Sync state

    def load_watermark(self) -> SyncWatermark:
        """Load the sync watermark."""
        if not self.sync_file.exists():
            return SyncWatermark()
        return SyncWatermark.from_dict(_read_json(self.sync_file) or {})

    def save_watermark(self, watermark: SyncWatermark) -> None:
        """Write the sync watermark."""
        _write_json(self.sync_file, watermark.to_dict())

    def load_push_intent(self) -> Optional[PushIntent]:
        """Load the in-flight push marker, if any."""
        if not self.push_file.exists():
            return None
        return PushIntent.model_validate(_read_json(self.push_file))

    def save_push_intent(self, intent: PushIntent) -> None:
        """Write the in-flight push marker."""
        _write_json(self.push_file, intent.model_dump(mode="json"))

    def clear_push_intent(self) -> None:
        """Remove the in-flight push marker."""
        self.push_file.unlink(missing_ok=True)
