"""Staging area for pending playlist edits."""

from .area import StagingArea, StagingStatus

__all__ = ["StagingArea", "StagingStatus"]
