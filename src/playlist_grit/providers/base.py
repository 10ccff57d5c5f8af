"""Provider adapter interface.

An adapter is bound to one remote playlist. It reads the remote order and
applies single add/remove/move edits to it. Edits are checked against a local
mirror of the remote order first: an edit whose result the mirror already
shows is not sent again, so replaying an edit after a lost response leaves
the remote unchanged.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence, Tuple

from ..core.diff import EditOp, apply_script, clamp_position, source_position
from ..core.errors import PushConflict
from ..models import ChangeKind, PlaylistInfo, ProviderKind, Snapshot, Track

logger = logging.getLogger(__name__)


class RemoteMirror:
    """Local copy of the remote playlist order.

    The mirror is reset from every fetch and updated after every successful
    edit.
    """

    def __init__(self, track_ids: Iterable[str] = ()) -> None:
        """Initialize mirror with a known remote order."""
        self._ids: List[str] = list(track_ids)

    @property
    def track_ids(self) -> Tuple[str, ...]:
        """Current mirrored order."""
        return tuple(self._ids)

    def __len__(self) -> int:
        """Get number of mirrored entries."""
        return len(self._ids)

    def reset(self, track_ids: Iterable[str]) -> None:
        """Replace the mirrored order with a freshly fetched one."""
        self._ids = list(track_ids)

    def record_insert(self, track_id: str, position: int) -> None:
        """Record a successful insert."""
        self._ids.insert(position, track_id)

    def record_delete(self, position: int) -> None:
        """Record a successful delete."""
        self._ids.pop(position)

    def record_move(self, source: int, target: int) -> None:
        """Record a successful move."""
        self._ids.insert(target, self._ids.pop(source))


class ProviderAdapter(ABC):
    """Imperative edit surface of one remote playlist."""

    kind: ProviderKind

    def __init__(self, playlist_id: str) -> None:
        """Initialize adapter.

        Args:
            playlist_id: Provider-side playlist id
        """
        self.playlist_id = playlist_id
        self.mirror = RemoteMirror()
        self._mirror_loaded = False

    def fetch_snapshot(self) -> Snapshot:
        """Fetch the remote order with track metadata and refresh the mirror."""
        snapshot = self._fetch_snapshot()
        self.mirror.reset(snapshot.track_ids)
        self._mirror_loaded = True
        logger.debug(
            "Fetched %d tracks from %s playlist %s",
            len(snapshot),
            self.kind.value,
            self.playlist_id,
        )
        return snapshot

    def apply(self, op: EditOp, expected: Optional[Sequence[str]] = None) -> bool:
        """Send one edit unless the remote already shows its result.

        The edit is sent when the mirror equals ``expected`` and skipped when
        the mirror equals ``expected`` with the edit applied. Positions come
        from ``expected``, so an edit on one copy of a duplicated track never
        lands on another copy.

        Args:
            op: Edit to send
            expected: Remote order the edit was computed against, the mirrored
                order when None

        Returns:
            True if a call was made, False if nothing had to be sent

        Raises:
            TrackNotFound: If a remove or move names a track that is not there
            PushConflict: If the remote matches neither the order before the
                edit nor the order after it
        """
        self._ensure_mirror()
        current = list(self.mirror.track_ids)
        before = current if expected is None else list(expected)
        after = apply_script(before, [op])
        if current == after:
            logger.debug("%s already applied", op)
            return False
        if current != before:
            raise PushConflict(
                "Remote playlist changed while pushing. "
                "Run 'grit push' again to finish."
            )

        if op.kind == ChangeKind.ADD:
            position = clamp_position(op.index, len(current))
            self._insert(op.track_id, position)
            self.mirror.record_insert(op.track_id, position)
        elif op.kind == ChangeKind.REMOVE:
            position = source_position(current, op)
            self._delete(op.track_id, position)
            self.mirror.record_delete(position)
        else:
            source = source_position(current, op)
            target = clamp_position(op.index, len(current) - 1)
            self._reorder(op.track_id, source, target)
            self.mirror.record_move(source, target)
        return True

    def apply_add(
        self, track_id: str, index: Optional[int], expected: Optional[Sequence[str]] = None
    ) -> bool:
        """Insert a track at ``index``, appending when None (see ``apply``)."""
        return self.apply(EditOp.add(track_id, index), expected)

    def apply_remove(
        self,
        track_id: str,
        index: Optional[int] = None,
        expected: Optional[Sequence[str]] = None,
    ) -> bool:
        """Remove a track, the occurrence at ``index`` when given (see ``apply``)."""
        return self.apply(EditOp.remove(track_id, index), expected)

    def apply_move(
        self,
        track_id: str,
        index: int,
        from_index: Optional[int] = None,
        expected: Optional[Sequence[str]] = None,
    ) -> bool:
        """Move a track to ``index``, taking the copy at ``from_index`` (see ``apply``)."""
        return self.apply(EditOp.move(track_id, index, from_index), expected)

    def _ensure_mirror(self) -> None:
        if not self._mirror_loaded:
            self.fetch_snapshot()

    @abstractmethod
    def fetch_info(self) -> PlaylistInfo:
        """Fetch the playlist's identity and display name."""

    @abstractmethod
    def resolve_track(self, id_or_query: str) -> Track:
        """Resolve a track id, URL or free-text query to a Track.

        Raises:
            TrackNotFound: If nothing matches
        """

    @abstractmethod
    def search(self, query: str, limit: int = 10) -> List[Track]:
        """Search the provider catalogue."""

    @abstractmethod
    def _fetch_snapshot(self) -> Snapshot:
        """Read the full remote order with metadata."""

    @abstractmethod
    def _insert(self, track_id: str, position: int) -> None:
        """Insert ``track_id`` at ``position`` on the remote."""

    @abstractmethod
    def _delete(self, track_id: str, position: int) -> None:
        """Delete the entry at ``position`` (holding ``track_id``) on the remote."""

    @abstractmethod
    def _reorder(self, track_id: str, source: int, target: int) -> None:
        """Move the entry at ``source`` so it ends up at ``target``."""
