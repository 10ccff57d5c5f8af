"""Exceptions raised by the playlist version-control engine."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .diff.engine import EditScript


class GritError(Exception):
    """Base class for all engine errors."""

    pass


class NotFound(GritError):
    """A track, commit, playlist or repository does not exist."""

    pass


class TrackNotFound(NotFound):
    """Track id is not present where the operation needs it."""

    def __init__(self, track_id: str, where: str = "playlist") -> None:
        """Initialize error.

        Args:
            track_id: Missing track id
            where: What was searched
        """
        self.track_id = track_id
        super().__init__(f"Track not found in {where}: {track_id}")


class CommitNotFound(NotFound):
    """No commit matches the given reference."""

    def __init__(self, ref: str) -> None:
        """Initialize error with the unmatched reference."""
        self.ref = ref
        super().__init__(f"Commit not found: {ref}")


class AmbiguousCommitRef(NotFound):
    """A short hash matches more than one commit."""

    def __init__(self, ref: str, count: int) -> None:
        """Initialize error with the reference and number of matches."""
        self.ref = ref
        super().__init__(f"Commit reference '{ref}' is ambiguous ({count} matches)")


class PlaylistNotFound(NotFound):
    """Remote playlist does not exist or is not visible."""

    pass


class RepositoryNotFound(NotFound):
    """Playlist is not tracked in the workspace."""

    pass


class RepositoryExists(GritError):
    """Playlist is already tracked in the workspace."""

    pass


class RepositoryLocked(GritError):
    """Another command holds the playlist lock."""

    pass


class NothingToCommit(GritError):
    """Commit requested with an empty staging area."""

    pass


class StagedChangesPending(GritError):
    """Operation requires an empty staging area."""

    def __init__(self, count: int, action: str) -> None:
        """Initialize error.

        Args:
            count: Number of staged changes
            action: Operation that was refused
        """
        self.count = count
        super().__init__(
            f"You have {count} uncommitted staged change(s). "
            f"Commit or reset before {action}."
        )


class CorruptJournal(GritError):
    """Hash chain verification failed; the journal refuses further writes."""

    pass


class SyncError(GritError):
    """Local and remote history cannot be reconciled automatically.

    Attributes:
        local_script: Edits made locally since the last sync
        remote_script: Edits made remotely since the last sync
    """

    def __init__(
        self,
        message: str,
        local_script: Optional["EditScript"] = None,
        remote_script: Optional["EditScript"] = None,
    ) -> None:
        """Initialize error with both sides' edit scripts."""
        super().__init__(message)
        self.local_script = local_script
        self.remote_script = remote_script


class PushConflict(SyncError):
    """Remote changed since the last pull, or while a push was running."""

    pass


class DivergedHistory(SyncError):
    """Both local and remote changed since the last sync."""

    pass


class ProviderError(GritError):
    """Error reported by a provider adapter."""

    pass


class ProviderUnavailable(ProviderError):
    """Transient provider failure (timeout, 5xx, rate limiting)."""

    pass


class RateLimited(ProviderUnavailable):
    """Provider asked the client to slow down."""

    def __init__(self, message: str, retry_after: Optional[float] = None) -> None:
        """Initialize error.

        Args:
            message: Error message
            retry_after: Seconds the provider asked to wait, if given
        """
        super().__init__(message)
        self.retry_after = retry_after


class AuthExpired(ProviderError):
    """Credential is missing or expired and must be refreshed."""

    pass
