"""Models for the playlist version-control engine."""

from .models import (
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

__all__ = [
    "Track",
    "Snapshot",
    "ProviderKind",
    "ChangeKind",
    "StagedChange",
    "Commit",
    "SyncWatermark",
    "PushIntent",
    "PlaylistInfo",
]
