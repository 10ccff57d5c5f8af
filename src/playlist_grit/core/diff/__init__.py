"""Sequence diff engine."""

from .engine import (
    EditOp,
    EditScript,
    apply_operation,
    apply_script,
    clamp_position,
    compute_diff,
    source_position,
)

__all__ = [
    "EditOp",
    "EditScript",
    "compute_diff",
    "apply_operation",
    "apply_script",
    "clamp_position",
    "source_position",
]
