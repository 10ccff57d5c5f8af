"""Push, pull and revert against a remote playlist.

The remote only offers imperative add/remove/move calls, so pushing means
replaying an edit script computed against the freshly fetched remote. The sync
watermark records the last state both sides agreed on and is what conflict
detection compares against:

- push refuses when the remote moved since the last pull
- pull fast-forwards when nothing was committed since the last push, and
  reports both edit scripts when both sides moved
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, List, Optional, TypeVar

from ...models import Commit, PushIntent, Snapshot
from ...utils.signals import deferred_interrupts
from ..diff import EditOp, EditScript, apply_script, compute_diff
from ..errors import DivergedHistory, ProviderUnavailable, PushConflict, RateLimited, SyncError

if TYPE_CHECKING:
    from ...config import Config
    from ...providers.base import ProviderAdapter
    from ..repository import Repository

logger = logging.getLogger(__name__)

T = TypeVar("T")

PULL_MESSAGE = "pull: sync from remote"


@dataclass
class RetryPolicy:
    """Bounded retry with exponential backoff for transient provider errors.

    Only ProviderUnavailable (and its RateLimited subclass) is retried. A
    RateLimited ``retry_after`` replaces the computed backoff.
    """

    max_attempts: int = 3
    backoff_seconds: float = 1.0
    max_backoff_seconds: float = 30.0
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    @classmethod
    def from_config(cls, config: "Config") -> "RetryPolicy":
        """Build a policy from application configuration."""
        return cls(
            max_attempts=max(1, config.max_retries),
            backoff_seconds=config.retry_backoff,
            max_backoff_seconds=config.max_backoff,
        )

    def delay_for(self, attempt: int, error: ProviderUnavailable) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        if isinstance(error, RateLimited) and error.retry_after is not None:
            return min(error.retry_after, self.max_backoff_seconds)
        return min(self.backoff_seconds * (2 ** (attempt - 1)), self.max_backoff_seconds)

    def call(
        self,
        func: Callable[[], T],
        description: str = "provider call",
        before_retry: Optional[Callable[[], object]] = None,
    ) -> T:
        """Run ``func`` until it succeeds or attempts run out.

        Args:
            func: Call to make
            description: What the call does, for logging
            before_retry: Run before every retry, e.g. to re-read remote state

        Raises:
            ProviderUnavailable: From the last attempt
        """
        attempt = 1
        while True:
            try:
                if attempt > 1 and before_retry is not None:
                    before_retry()
                return func()
            except ProviderUnavailable as e:
                if attempt >= self.max_attempts:
                    logger.error("%s failed after %d attempts: %s", description, attempt, e)
                    raise
                delay = self.delay_for(attempt, e)
                logger.warning(
                    "%s failed (attempt %d/%d): %s; retrying in %.1fs",
                    description,
                    attempt,
                    self.max_attempts,
                    e,
                    delay,
                )
                self.sleep(delay)
                attempt += 1


class SyncStatus(str, Enum):
    """Outcome of a push or pull."""

    UP_TO_DATE = "up_to_date"
    PUSHED = "pushed"
    FAST_FORWARD = "fast_forward"


@dataclass
class PushResult:
    """Result of a push."""

    status: SyncStatus
    commit_hash: str
    script: EditScript = field(default_factory=EditScript)
    resumed: bool = False


@dataclass
class PullResult:
    """Result of a pull."""

    status: SyncStatus
    script: EditScript = field(default_factory=EditScript)
    commit: Optional[Commit] = None


class SyncEngine:
    """Reconciles a repository with its remote playlist."""

    def __init__(
        self,
        repository: "Repository",
        adapter: "ProviderAdapter",
        retry_policy: Optional[RetryPolicy] = None,
    ) -> None:
        """Initialize engine.

        Args:
            repository: Local repository, opened under its lock
            adapter: Adapter bound to the same remote playlist
            retry_policy: Retry settings for provider calls
        """
        self.repository = repository
        self.adapter = adapter
        self.retry = retry_policy or RetryPolicy()

    def fetch_remote(self) -> Snapshot:
        """Fetch the remote snapshot, retrying transient failures."""
        return self.retry.call(self.adapter.fetch_snapshot, "fetch remote playlist")

    def push(self) -> PushResult:
        """Replay local commits onto the remote.

        Raises:
            CorruptJournal: If the commit chain is broken
            StagedChangesPending: If changes are staged
            PushConflict: If the remote changed since the last pull or while pushing
            ProviderError: If the provider fails beyond the retry policy
        """
        repo = self.repository
        repo.require_writable()
        repo.require_clean("pushing")
        head = repo.head

        intent = repo.load_push_intent()
        resuming = intent is not None and intent.target_hash in repo.journal
        if intent is not None and not resuming:
            logger.warning("Ignoring push marker for unknown commit %s", intent.target_hash)

        remote = self.fetch_remote()
        base = repo.watermark.last_pulled_snapshot
        if not resuming and remote != base and remote != head.snapshot:
            base = base if base is not None else repo.pushed_snapshot()
            raise PushConflict(
                "Remote playlist changed since the last pull. "
                "Run 'grit pull' before pushing.",
                local_script=compute_diff(base, head.snapshot),
                remote_script=compute_diff(base, remote),
            )

        script = compute_diff(remote, head.snapshot)
        if script.is_empty:
            with deferred_interrupts():
                repo.mark_synced(head, head.snapshot)
                repo.clear_push_intent()
            logger.info("Remote already matches %s", head.short_hash)
            return PushResult(SyncStatus.UP_TO_DATE, head.hash, script, resuming)

        if resuming:
            logger.info("Resuming interrupted push with %d remaining ops", len(script))
        repo.save_push_intent(PushIntent(target_hash=head.hash))

        expected = list(remote.track_ids)
        for op in script:
            expected = self._send(op, expected)

        with deferred_interrupts():
            repo.mark_synced(head, head.snapshot)
            repo.clear_push_intent()
        logger.info("Pushed %s (%s)", head.short_hash, script.summary())
        return PushResult(SyncStatus.PUSHED, head.hash, script, resuming)

    def pull(self) -> PullResult:
        """Bring remote changes into the local history.

        Raises:
            CorruptJournal: If the commit chain is broken
            StagedChangesPending: If changes are staged
            SyncError: If an interrupted push has not been finished
            DivergedHistory: If both sides changed since the last sync
        """
        repo = self.repository
        repo.require_writable()
        repo.require_clean("pulling")
        if repo.load_push_intent() is not None:
            raise SyncError(
                "A previous push did not finish. Run 'grit push' to complete it first."
            )

        remote = self.fetch_remote()
        base = repo.watermark.last_pulled_snapshot
        head = repo.head

        if remote == base:
            return PullResult(SyncStatus.UP_TO_DATE)

        if remote == head.snapshot:
            # Both sides made the same edits
            with deferred_interrupts():
                repo.mark_synced(head, remote)
            return PullResult(SyncStatus.UP_TO_DATE)

        if repo.watermark.last_pushed_hash == head.hash:
            script = compute_diff(head.snapshot, remote)
            with deferred_interrupts():
                commit = repo.record_commit(remote, PULL_MESSAGE)
                repo.mark_synced(commit, remote)
            logger.info("Fast-forwarded to remote as %s (%s)", commit.short_hash, script.summary())
            return PullResult(SyncStatus.FAST_FORWARD, script, commit)

        pushed = repo.pushed_snapshot()
        raise DivergedHistory(
            "Local and remote playlists have both changed since the last sync.",
            local_script=compute_diff(pushed, head.snapshot),
            remote_script=compute_diff(base if base is not None else pushed, remote),
        )

    def revert(self, ref: Optional[str] = None) -> Commit:
        """Restore a past snapshot as a new commit (HEAD's parent by default)."""
        return self.repository.revert(ref)

    def _send(self, op: EditOp, expected: List[str]) -> List[str]:
        """Send one op written against ``expected`` and return the order after it."""
        adapter = self.adapter
        # Re-read the remote before a retry so a call that did land is skipped
        self.retry.call(
            lambda: adapter.apply(op, expected),
            str(op),
            before_retry=adapter.fetch_snapshot,
        )
        return apply_script(expected, [op])
