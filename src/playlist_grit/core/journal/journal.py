"""Append-only commit journal.

The journal is a linear chain of immutable commits linked by ``parent_hash``.
Each commit's hash covers its parent hash, its ordered track ids, its message
and its timestamp, so any edit to a stored commit breaks the chain.

On disk the journal is a JSON-lines file (``journal.log``), one commit per
line, only ever appended to.
"""

import hashlib
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence

from ...models import Commit, Snapshot
from ..errors import AmbiguousCommitRef, CommitNotFound, CorruptJournal

logger = logging.getLogger(__name__)


def _utc(timestamp: datetime) -> datetime:
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def compute_commit_hash(
    parent_hash: Optional[str],
    track_ids: Sequence[str],
    message: str,
    timestamp: datetime,
) -> str:
    """Compute the content hash of a commit.

    Args:
        parent_hash: Hash of the parent commit, None for the root
        track_ids: Ordered track ids of the commit's snapshot
        message: Commit message
        timestamp: Commit time

    Returns:
        Hex-encoded SHA-256 digest
    """
    payload = json.dumps(
        [parent_hash or "", list(track_ids), message, _utc(timestamp).isoformat()],
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class CommitLog:
    """Lazy walk over commits from a starting commit back to the root.

    Iterating again starts over from the same commit.
    """

    def __init__(self, journal: "Journal", start_hash: Optional[str]) -> None:
        """Initialize log.

        Args:
            journal: Journal to read from
            start_hash: Newest commit to yield, None for an empty log
        """
        self._journal = journal
        self._start_hash = start_hash

    def __iter__(self) -> Iterator[Commit]:
        """Yield commits newest first."""
        current = self._start_hash
        while current is not None:
            commit = self._journal.get(current)
            yield commit
            current = commit.parent_hash


class Journal:
    """Linear, append-only history of one playlist."""

    def __init__(self, path: Optional[Path] = None) -> None:
        """Initialize an empty journal.

        Args:
            path: journal.log file to append to; None keeps it in memory
        """
        self.path = path
        self._commits: List[Commit] = []
        self._index: Dict[str, int] = {}
        self._problem: Optional[str] = None

    @classmethod
    def load(cls, path: Path) -> "Journal":
        """Load a journal from disk and verify its chain.

        A broken chain does not raise here: the journal stays readable but
        refuses appends until it is repaired.
        """
        journal = cls(path)
        if not path.exists():
            return journal

        with open(path, "r", encoding="utf-8") as file:
            for line_number, line in enumerate(file, start=1):
                if not line.strip():
                    continue
                try:
                    commit = Commit.from_record(json.loads(line))
                except (ValueError, KeyError, TypeError) as e:
                    journal._problem = f"line {line_number}: unreadable commit ({e})"
                    break
                journal._index.setdefault(commit.hash, len(journal._commits))
                journal._commits.append(commit)

        problems = journal.verify()
        if problems and journal._problem is None:
            journal._problem = problems[0]
        if journal._problem:
            logger.error("Journal %s is corrupt: %s", path, journal._problem)
        else:
            logger.debug("Loaded %d commits from %s", len(journal), path)
        return journal

    def __len__(self) -> int:
        """Get number of commits."""
        return len(self._commits)

    def __iter__(self) -> Iterator[Commit]:
        """Iterate commits oldest first."""
        return iter(list(self._commits))

    def __contains__(self, commit_hash: object) -> bool:
        """Check whether a full hash is in the journal."""
        return commit_hash in self._index

    @property
    def head(self) -> Optional[Commit]:
        """Latest commit, None if history is empty."""
        return self._commits[-1] if self._commits else None

    @property
    def head_hash(self) -> Optional[str]:
        """Hash of the latest commit, None if history is empty."""
        head = self.head
        return head.hash if head is not None else None

    @property
    def root(self) -> Optional[Commit]:
        """First commit, None if history is empty."""
        return self._commits[0] if self._commits else None

    @property
    def is_corrupt(self) -> bool:
        """Check whether the chain failed verification."""
        return self._problem is not None

    @property
    def corruption(self) -> Optional[str]:
        """Description of the first chain problem found, if any."""
        return self._problem

    def get(self, commit_hash: str) -> Commit:
        """Get a commit by full hash.

        Raises:
            CommitNotFound: If no commit has this hash
        """
        position = self._index.get(commit_hash)
        if position is None:
            raise CommitNotFound(commit_hash)
        return self._commits[position]

    def find(self, ref: str) -> Commit:
        """Get a commit by full hash or unique hash prefix.

        Raises:
            CommitNotFound: If nothing matches
            AmbiguousCommitRef: If the prefix matches several commits
        """
        ref = ref.strip().lower()
        if ref in self._index:
            return self.get(ref)
        if not ref:
            raise CommitNotFound(ref)

        matches = [commit for commit in self._commits if commit.hash.startswith(ref)]
        if not matches:
            raise CommitNotFound(ref)
        if len(matches) > 1:
            raise AmbiguousCommitRef(ref, len(matches))
        return matches[0]

    def log(self, start: Optional[str] = None) -> CommitLog:
        """Get commits from ``start`` (default HEAD) back to the root."""
        if start is not None:
            start = self.find(start).hash
        else:
            start = self.head_hash
        return CommitLog(self, start)

    def create_commit(
        self,
        snapshot: Snapshot,
        message: str,
        timestamp: Optional[datetime] = None,
    ) -> Commit:
        """Create a commit on top of HEAD and append it.

        Args:
            snapshot: Playlist state after the commit
            message: Commit message
            timestamp: Commit time, defaults to now

        Returns:
            The appended commit

        Raises:
            CorruptJournal: If the chain is broken
        """
        timestamp = _utc(timestamp or datetime.now(timezone.utc))
        parent_hash = self.head_hash
        commit = Commit(
            hash=compute_commit_hash(
                parent_hash, snapshot.track_ids, message, timestamp
            ),
            parent_hash=parent_hash,
            message=message,
            timestamp=timestamp,
            snapshot=snapshot,
        )
        self.append(commit)
        return commit

    def append(self, commit: Commit) -> None:
        """Append a commit to the chain.

        Raises:
            CorruptJournal: If the chain is broken or the commit does not
                extend HEAD with a valid hash
        """
        if self._problem is not None:
            raise CorruptJournal(
                f"Journal is corrupt ({self._problem}); refusing to append"
            )
        if commit.parent_hash != self.head_hash:
            raise CorruptJournal(
                f"Commit {commit.short_hash} does not extend HEAD "
                f"{self.head_hash or '(empty)'}"
            )
        expected = compute_commit_hash(
            commit.parent_hash,
            commit.snapshot.track_ids,
            commit.message,
            commit.timestamp,
        )
        if expected != commit.hash:
            raise CorruptJournal(f"Commit {commit.short_hash} has an invalid hash")
        if commit.hash in self._index:
            raise CorruptJournal(f"Commit {commit.short_hash} is already recorded")

        if self.path is not None:
            self._write(commit)
        self._index[commit.hash] = len(self._commits)
        self._commits.append(commit)
        logger.debug("Appended commit %s: %s", commit.short_hash, commit.message)

    def verify(self) -> List[str]:
        """Replay the chain and recompute every hash.

        Returns:
            Descriptions of every problem found, empty if the chain is intact
        """
        problems = []
        previous: Optional[str] = None
        seen = set()
        for position, commit in enumerate(self._commits):
            expected = compute_commit_hash(
                commit.parent_hash,
                commit.snapshot.track_ids,
                commit.message,
                commit.timestamp,
            )
            if expected != commit.hash:
                problems.append(
                    f"commit #{position} ({commit.short_hash}): hash mismatch"
                )
            if commit.parent_hash != previous:
                problems.append(
                    f"commit #{position} ({commit.short_hash}): parent "
                    f"{commit.parent_hash} does not match {previous}"
                )
            if commit.hash in seen:
                problems.append(
                    f"commit #{position} ({commit.short_hash}): duplicate hash"
                )
            seen.add(commit.hash)
            previous = commit.hash
        return problems

    def _write(self, commit: Commit) -> None:
        assert self.path is not None
        self.path.parent.mkdir(parents=True, exist_ok=True)
        line = json.dumps(commit.to_record(), ensure_ascii=False)
        with open(self.path, "a", encoding="utf-8") as file:
            file.write(line + "\n")
            file.flush()
            os.fsync(file.fileno())
