"""Playlist repositories and the workspace that holds them.

A Repository ties together one playlist's journal, staging area and sync
watermark, and keeps their files consistent. The Workspace finds repositories
under ``<grit_dir>/playlists`` and opens them under the repository lock.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional

from ..config import Config
from ..models import (
    ChangeKind,
    Commit,
    PlaylistInfo,
    ProviderKind,
    PushIntent,
    Snapshot,
    StagedChange,
    SyncWatermark,
    Track,
)
from ..providers.factory import parse_playlist_ref
from ..storage import RepositoryStore
from ..utils.signals import deferred_interrupts
from .diff import EditScript, compute_diff
from .errors import (
    CommitNotFound,
    CorruptJournal,
    NothingToCommit,
    RepositoryNotFound,
    StagedChangesPending,
)
from .journal import CommitLog, Journal
from .staging import StagingArea, StagingStatus

logger = logging.getLogger(__name__)

INIT_MESSAGE = "init"


class Repository:
    """Version-controlled state of one remote playlist."""

    def __init__(
        self,
        store: RepositoryStore,
        info: PlaylistInfo,
        journal: Journal,
        staging: StagingArea,
        watermark: SyncWatermark,
    ) -> None:
        """Initialize repository from loaded parts.

        Use ``Repository.init`` or ``Repository.open`` instead of calling this
        directly.
        """
        self.store = store
        self.info = info
        self.journal = journal
        self.staging = staging
        self.watermark = watermark

    @classmethod
    def init(
        cls,
        store: RepositoryStore,
        info: PlaylistInfo,
        snapshot: Snapshot,
        timestamp: Optional[datetime] = None,
    ) -> "Repository":
        """Create a repository whose root commit is the remote snapshot.

        Raises:
            RepositoryExists: If the playlist is already tracked
        """
        store.create()
        journal = Journal(store.journal_file)
        with deferred_interrupts():
            root = journal.create_commit(snapshot, INIT_MESSAGE, timestamp)
            watermark = SyncWatermark(
                last_pushed_hash=root.hash, last_pulled_snapshot=snapshot
            )
            store.save_commit_snapshot(root.hash, snapshot)
            store.save_playlist(info, root.hash, snapshot)
            store.save_staged([])
            store.save_watermark(watermark)

        logger.info(
            "Initialized %s playlist %s with %d tracks",
            info.provider.value,
            info.id,
            len(snapshot),
        )
        return cls(store, info, journal, StagingArea(snapshot), watermark)

    @classmethod
    def open(cls, store: RepositoryStore) -> "Repository":
        """Load a repository from disk.

        If ``playlist.yaml`` lags behind the journal (a crash between the two
        writes), HEAD is restored from the journal and staged changes, which
        were already committed, are dropped.

        Raises:
            RepositoryNotFound: If the playlist is not tracked
        """
        info, head_hash, snapshot = store.load_playlist()
        journal = store.load_journal()
        changes = store.load_staged()

        journal_head = journal.head
        if (
            journal_head is not None
            and journal_head.hash != head_hash
            and not journal.is_corrupt
        ):
            logger.warning(
                "playlist.yaml is behind the journal; restoring HEAD %s",
                journal_head.short_hash,
            )
            restored = store.load_commit_snapshot(journal_head.hash)
            if restored is None:
                restored = journal_head.snapshot.with_tracks(snapshot.tracks.values())
            snapshot = restored
            changes = []
            with deferred_interrupts():
                store.save_playlist(info, journal_head.hash, snapshot)
                store.save_staged(changes)

        return cls(
            store, info, journal, StagingArea(snapshot, changes), store.load_watermark()
        )

    # Identity

    @property
    def playlist_id(self) -> str:
        """Provider-side playlist id."""
        return self.info.id

    @property
    def name(self) -> str:
        """Playlist display name as of init."""
        return self.info.name

    @property
    def provider(self) -> ProviderKind:
        """Service hosting the playlist."""
        return self.info.provider

    # History

    @property
    def head(self) -> Commit:
        """Latest commit."""
        head = self.journal.head
        if head is None:
            raise CommitNotFound("HEAD")
        return head

    @property
    def head_snapshot(self) -> Snapshot:
        """HEAD snapshot with track metadata."""
        return self.staging.base

    def find(self, ref: str) -> Commit:
        """Get a commit by full hash or unique prefix."""
        return self.journal.find(ref)

    def log(self) -> CommitLog:
        """Commits from HEAD back to the root."""
        return self.journal.log()

    def snapshot_for(self, commit: Commit) -> Snapshot:
        """Get a commit's snapshot with the best track metadata available."""
        stored = self.store.load_commit_snapshot(commit.hash)
        if stored is not None and stored == commit.snapshot:
            return stored
        return commit.snapshot.with_tracks(self.head_snapshot.tracks.values())

    def verify(self) -> List[str]:
        """Check the commit chain and that HEAD matches the journal.

        Returns:
            Descriptions of every problem found
        """
        problems = self.journal.verify()
        if self.journal.corruption and self.journal.corruption not in problems:
            problems.insert(0, self.journal.corruption)
        head = self.journal.head
        if head is not None and head.snapshot != self.head_snapshot:
            problems.append(
                f"playlist.yaml does not match HEAD {head.short_hash}"
            )
        return problems

    # Guards

    def require_writable(self) -> None:
        """Raise CorruptJournal if the commit chain failed verification on load."""
        if self.journal.is_corrupt:
            raise CorruptJournal(
                f"Journal is corrupt ({self.journal.corruption}); "
                "refusing to change the repository. Run 'grit verify' for details."
            )

    def require_clean(self, action: str) -> None:
        """Raise StagedChangesPending if anything is staged."""
        if not self.staging.is_empty:
            raise StagedChangesPending(len(self.staging), action)

    # Staging

    def stage_add(self, track: Track, insert_at: Optional[int] = None) -> StagedChange:
        """Stage adding a track and persist the staging area."""
        self.require_writable()
        change = self.staging.stage_add(track, insert_at)
        self._save_staged()
        return change

    def stage_remove(self, track_id: str) -> Optional[StagedChange]:
        """Stage removing a track and persist the staging area."""
        self.require_writable()
        change = self.staging.stage_remove(track_id)
        self._save_staged()
        return change

    def stage_move(self, track_id: str, target_index: int) -> StagedChange:
        """Stage moving a track and persist the staging area."""
        self.require_writable()
        change = self.staging.stage_move(track_id, target_index)
        self._save_staged()
        return change

    def reset(self) -> int:
        """Discard staged changes.

        Returns:
            Number of changes discarded
        """
        self.require_writable()
        count = self.staging.reset()
        self._save_staged()
        return count

    def status(self) -> StagingStatus:
        """Get staged changes and the snapshot they would produce."""
        return self.staging.status()

    def diff_staged(self) -> EditScript:
        """Edit script from HEAD to the staged snapshot."""
        return self.staging.diff()

    def diff_against(self, snapshot: Snapshot) -> EditScript:
        """Edit script from HEAD to another snapshot."""
        return compute_diff(self.head_snapshot, snapshot)

    def stage_snapshot(self, target: Snapshot) -> EditScript:
        """Stage the changes that turn HEAD into ``target``.

        Raises:
            StagedChangesPending: If changes are already staged
            ValueError: If the edit needs more than one change for a track id
        """
        self.require_writable()
        self.require_clean("applying a playlist file")
        script = compute_diff(self.head_snapshot, target)

        seen = set()
        for op in script:
            if op.track_id in seen:
                raise ValueError(
                    f"Track {op.track_id} needs more than one change; "
                    "edit duplicated tracks one at a time"
                )
            seen.add(op.track_id)

        for op in script:
            if op.kind == ChangeKind.ADD:
                self.staging.stage_add(target.get_track(op.track_id), op.index)
            elif op.kind == ChangeKind.REMOVE:
                self.staging.stage_remove(op.track_id)
            else:
                self.staging.stage_move(op.track_id, op.index or 0)

        if self.staging.prospective_snapshot() != target:
            self.staging.reset()
            raise ValueError("Playlist file cannot be expressed as staged changes")

        self._save_staged()
        logger.info("Staged %s from playlist file", script.summary())
        return script

    # Commits

    def commit(self, message: str, timestamp: Optional[datetime] = None) -> Commit:
        """Fold staged changes into a new commit.

        Raises:
            NothingToCommit: If nothing is staged
            CorruptJournal: If the chain is broken
        """
        if self.staging.is_empty:
            raise NothingToCommit("Nothing to commit. Stage changes with add, remove or move.")
        snapshot = self.staging.prospective_snapshot()
        return self._advance(snapshot, message, timestamp)

    def record_commit(
        self, snapshot: Snapshot, message: str, timestamp: Optional[datetime] = None
    ) -> Commit:
        """Commit a snapshot directly (pull, revert).

        Raises:
            StagedChangesPending: If changes are staged
        """
        self.require_clean("committing a snapshot")
        return self._advance(snapshot, message, timestamp)

    def revert(self, ref: Optional[str] = None) -> Commit:
        """Commit a past snapshot on top of HEAD.

        Args:
            ref: Commit to restore, HEAD's parent when None

        Raises:
            StagedChangesPending: If changes are staged
            CommitNotFound: If the commit does not exist
        """
        self.require_clean("reverting")
        if ref is None:
            parent = self.head.parent_hash
            if parent is None:
                raise CommitNotFound("HEAD^ (HEAD is the root commit)")
            ref = parent
        target = self.find(ref)
        commit = self._advance(self.snapshot_for(target), f"revert to {target.hash}")
        logger.info("Reverted to %s as %s", target.short_hash, commit.short_hash)
        return commit

    # Sync state

    def mark_synced(self, commit: Commit, remote: Snapshot) -> None:
        """Record that ``commit`` is on the remote and ``remote`` was last seen."""
        self.require_writable()
        self.watermark = SyncWatermark(
            last_pushed_hash=commit.hash, last_pulled_snapshot=remote
        )
        self.store.save_watermark(self.watermark)

    def load_push_intent(self) -> Optional[PushIntent]:
        return self.store.load_push_intent()

    def save_push_intent(self, intent: PushIntent) -> None:
        self.require_writable()
        self.store.save_push_intent(intent)

    def clear_push_intent(self) -> None:
        self.store.clear_push_intent()

    def pushed_snapshot(self) -> Snapshot:
        """Snapshot of the last pushed commit, the root if unknown."""
        pushed = self.watermark.last_pushed_hash
        if pushed is not None and pushed in self.journal:
            return self.journal.get(pushed).snapshot
        root = self.journal.root
        return root.snapshot if root is not None else Snapshot()

    # Internals

    def _advance(
        self, snapshot: Snapshot, message: str, timestamp: Optional[datetime] = None
    ) -> Commit:
        self.require_writable()
        snapshot = snapshot.with_tracks(
            track
            for track_id, track in self.head_snapshot.tracks.items()
            if track_id in snapshot.track_ids and track_id not in snapshot.tracks
        )
        with deferred_interrupts():
            commit = self.journal.create_commit(snapshot, message, timestamp)
            self.store.save_commit_snapshot(commit.hash, snapshot)
            self.store.save_playlist(self.info, commit.hash, snapshot)
            self.staging.reset()
            self.staging.rebase(snapshot)
            self._save_staged()
        logger.info("Committed %s: %s", commit.short_hash, message)
        return commit

    def _save_staged(self) -> None:
        self.store.save_staged(self.staging.changes)


@dataclass
class PlaylistSummary:
    """Tracked playlist as listed by the workspace."""

    info: PlaylistInfo
    head: Optional[str]
    track_count: int


class Workspace:
    """All repositories under one grit directory."""

    def __init__(self, config: Config) -> None:
        """Initialize workspace.

        Args:
            config: Application configuration
        """
        self.config = config

    @property
    def playlists_dir(self) -> Path:
        return self.config.playlists_dir

    def store(self, playlist_id: str) -> RepositoryStore:
        """Store for one playlist id."""
        return RepositoryStore(self.playlists_dir / playlist_id)

    def tracked_ids(self) -> List[str]:
        """Ids of all initialized repositories, sorted."""
        if not self.playlists_dir.exists():
            return []
        return sorted(
            path.name
            for path in self.playlists_dir.iterdir()
            if path.is_dir() and RepositoryStore(path).exists()
        )

    def list_playlists(self) -> List[PlaylistSummary]:
        """Summaries of all tracked playlists, read without locking."""
        summaries = []
        for playlist_id in self.tracked_ids():
            info, head, snapshot = self.store(playlist_id).load_playlist()
            summaries.append(PlaylistSummary(info, head, len(snapshot)))
        return summaries

    def resolve_playlist_id(self, playlist: Optional[str] = None) -> str:
        """Pick the playlist a command works on.

        Args:
            playlist: Playlist id or URL; defaults to the only tracked playlist

        Raises:
            RepositoryNotFound: If the choice is missing or ambiguous
        """
        tracked = self.tracked_ids()
        if playlist is None:
            if len(tracked) == 1:
                return tracked[0]
            if not tracked:
                raise RepositoryNotFound(
                    "No playlists tracked yet. Run 'grit init <playlist-url>' first."
                )
            raise RepositoryNotFound(
                f"{len(tracked)} playlists are tracked; choose one with --playlist"
            )

        if playlist in tracked:
            return playlist

        try:
            _, playlist_id = parse_playlist_ref(playlist)
        except ValueError:
            playlist_id = playlist
        if playlist_id not in tracked:
            raise RepositoryNotFound(f"Playlist is not tracked: {playlist}")
        return playlist_id

    @contextmanager
    def open(self, playlist_id: str) -> Iterator[Repository]:
        """Open a repository under its lock.

        Raises:
            RepositoryNotFound: If the playlist is not tracked
            RepositoryLocked: If another command holds the lock
        """
        store = self.store(playlist_id)
        store.require()
        with store.lock(self.config.lock_timeout):
            yield Repository.open(store)

    @contextmanager
    def create(self, info: PlaylistInfo, snapshot: Snapshot) -> Iterator[Repository]:
        """Initialize a repository under its lock.

        Raises:
            RepositoryExists: If the playlist is already tracked
        """
        store = self.store(info.id)
        with store.lock(self.config.lock_timeout):
            yield Repository.init(store, info, snapshot)
