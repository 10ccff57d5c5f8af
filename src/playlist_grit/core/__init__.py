"""Version-control core: diffing, staging, the commit chain and sync."""

from .diff import EditOp, EditScript, apply_script, compute_diff
from .errors import GritError
from .journal import Journal, compute_commit_hash
from .staging import StagingArea, StagingStatus

__all__ = [
    "EditOp",
    "EditScript",
    "compute_diff",
    "apply_script",
    "GritError",
    "Journal",
    "compute_commit_hash",
    "StagingArea",
    "StagingStatus",
]
