"""Repository files and locking."""

from .lock import RepositoryLock
from .store import RepositoryStore, load_snapshot_file, write_atomic

__all__ = ["RepositoryStore", "RepositoryLock", "load_snapshot_file", "write_atomic"]
