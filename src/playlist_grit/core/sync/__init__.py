"""Synchronization module.

Handles push, pull and revert against a remote playlist.
"""

from .engine import (
    PULL_MESSAGE,
    PullResult,
    PushResult,
    RetryPolicy,
    SyncEngine,
    SyncStatus,
)

__all__ = [
    "PULL_MESSAGE",
    "SyncEngine",
    "SyncStatus",
    "PushResult",
    "PullResult",
    "RetryPolicy",
]
