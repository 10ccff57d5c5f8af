"""Commit chain and journal."""

from .journal import CommitLog, Journal, compute_commit_hash

__all__ = ["Journal", "CommitLog", "compute_commit_hash"]
