"""Staging area for pending playlist edits.

The staging area holds at most one change per track id. Staging a second change
for an id replaces the first, except that removing a track whose addition is
staged simply drops the addition.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from ...models import ChangeKind, Snapshot, StagedChange, Track
from ..diff import EditOp, EditScript, apply_script, compute_diff
from ..errors import TrackNotFound

logger = logging.getLogger(__name__)


@dataclass
class StagingStatus:
    """Staged changes plus the snapshot they would produce."""

    changes: List[StagedChange]
    snapshot: Snapshot

    @property
    def is_empty(self) -> bool:
        """Check if nothing is staged."""
        return not self.changes

    def counts(self) -> Dict[str, int]:
        """Get number of staged changes per kind."""
        counts = {kind.value: 0 for kind in ChangeKind}
        for change in self.changes:
            counts[change.kind.value] += 1
        return counts


def _to_edit_op(change: StagedChange) -> EditOp:
    if change.kind == ChangeKind.ADD:
        return EditOp.add(change.track_id, change.index)
    if change.kind == ChangeKind.REMOVE:
        return EditOp.remove(change.track_id, change.from_index)
    return EditOp.move(change.track_id, change.index or 0, change.from_index)


class StagingArea:
    """Pending per-track changes relative to the committed HEAD snapshot."""

    def __init__(
        self, base: Snapshot, changes: Optional[Iterable[StagedChange]] = None
    ) -> None:
        """Initialize staging area.

        Args:
            base: HEAD snapshot the changes apply to
            changes: Previously staged changes, in staging order
        """
        self._base = base
        self._changes: Dict[str, StagedChange] = {}
        for change in changes or ():
            self._changes[change.track_id] = change

    @property
    def base(self) -> Snapshot:
        """Snapshot the staged changes are relative to."""
        return self._base

    @property
    def changes(self) -> List[StagedChange]:
        """Staged changes in staging order."""
        return list(self._changes.values())

    @property
    def is_empty(self) -> bool:
        """Check if nothing is staged."""
        return not self._changes

    def __len__(self) -> int:
        """Get number of staged changes."""
        return len(self._changes)

    def get(self, track_id: str) -> Optional[StagedChange]:
        """Get the staged change for a track, if any."""
        return self._changes.get(track_id)

    def rebase(self, base: Snapshot) -> None:
        """Point an empty staging area at a new HEAD snapshot.

        Raises:
            ValueError: If changes are still staged
        """
        if self._changes:
            raise ValueError("Cannot rebase a staging area with pending changes")
        self._base = base

    def stage_add(self, track: Track, insert_at: Optional[int] = None) -> StagedChange:
        """Stage adding a track.

        Args:
            track: Track to add
            insert_at: Position to insert at, or None to append

        Returns:
            The staged change
        """
        if insert_at is not None and insert_at < 0:
            raise ValueError(f"Invalid position {insert_at}")

        change = StagedChange.add(track, insert_at)
        self._put(change)
        logger.debug("Staged add of %s at %s", track.id, insert_at)
        return change

    def stage_remove(self, track_id: str) -> Optional[StagedChange]:
        """Stage removing a track.

        Returns:
            The staged change, or None if it cancelled a staged addition

        Raises:
            TrackNotFound: If the track is neither in HEAD nor staged for addition
        """
        existing = self._changes.get(track_id)
        if existing is not None and existing.kind == ChangeKind.ADD:
            del self._changes[track_id]
            logger.debug("Remove of %s cancelled its staged add", track_id)
            return None

        ids = self._base.track_ids
        if track_id not in ids:
            raise TrackNotFound(track_id, "HEAD")

        position = len(ids) - 1 - ids[::-1].index(track_id)
        change = StagedChange.remove(track_id, position)
        self._put(change)
        logger.debug("Staged removal of %s", track_id)
        return change

    def stage_move(self, track_id: str, target_index: int) -> StagedChange:
        """Stage moving a track to a new position.

        The track must be present in the snapshot that results from the staged
        changes once this track's own pending change is replaced.

        Raises:
            TrackNotFound: If the track would not be in the playlist
            ValueError: If the target position is out of range
        """
        others = [c for c in self._changes.values() if c.track_id != track_id]
        eventual = self._apply(others)
        if track_id not in eventual:
            raise TrackNotFound(track_id, "staged playlist")
        if not 0 <= target_index < len(eventual):
            raise ValueError(
                f"Invalid index {target_index}. Playlist has {len(eventual)} tracks."
            )

        change = StagedChange.move(track_id, target_index, eventual.index(track_id))
        self._put(change)
        logger.debug("Staged move of %s to %d", track_id, target_index)
        return change

    def reset(self) -> int:
        """Discard all staged changes.

        Returns:
            Number of changes discarded
        """
        count = len(self._changes)
        self._changes.clear()
        return count

    def prospective_snapshot(self) -> Snapshot:
        """Get the snapshot HEAD would have after committing."""
        added = [c.track for c in self._changes.values() if c.track is not None]
        ids = self._apply(self._changes.values())
        return Snapshot.of(ids, list(self._base.tracks.values()) + added)

    def status(self) -> StagingStatus:
        """Get staged changes and the prospective snapshot."""
        return StagingStatus(changes=self.changes, snapshot=self.prospective_snapshot())

    def diff(self) -> EditScript:
        """Get the edit script from HEAD to the prospective snapshot."""
        return compute_diff(self._base, self.prospective_snapshot())

    def _put(self, change: StagedChange) -> None:
        # Re-insert so staging order reflects the latest write.
        self._changes.pop(change.track_id, None)
        self._changes[change.track_id] = change

    def _apply(self, changes: Iterable[StagedChange]) -> List[str]:
        """Apply removals, then additions, then moves, each in staging order."""
        changes = list(changes)
        ordered = [
            _to_edit_op(change)
            for kind in (ChangeKind.REMOVE, ChangeKind.ADD, ChangeKind.MOVE)
            for change in changes
            if change.kind == kind
        ]
        return apply_script(self._base, ordered)
