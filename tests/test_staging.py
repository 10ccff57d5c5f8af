"""Tests for the staging area."""

import pytest

from playlist_grit.core.diff import EditOp, compute_diff
from playlist_grit.core.errors import TrackNotFound
from playlist_grit.core.staging import StagingArea
from playlist_grit.models import ChangeKind, Snapshot, StagedChange, Track


@pytest.fixture
def staging():
    """Create a staging area over [a, b, c]."""
    base = Snapshot.from_tracks([Track(id="a"), Track(id="b"), Track(id="c")])
    return StagingArea(base)


class TestStagingArea:
    """Test StagingArea."""

    def test_add_then_remove_cancels(self):
        """Test that removing a staged addition leaves nothing staged."""
        area = StagingArea(Snapshot())

        area.stage_add(Track(id="t"))
        result = area.stage_remove("t")

        assert result is None
        assert area.is_empty
        assert area.prospective_snapshot() == Snapshot()

    def test_one_change_per_track(self, staging):
        """Test that a later change replaces an earlier one."""
        staging.stage_move("a", 2)
        staging.stage_remove("a")

        assert len(staging) == 1
        assert staging.get("a").kind == ChangeKind.REMOVE

    def test_latest_change_goes_last(self, staging):
        """Test staging order follows the most recent write."""
        staging.stage_remove("a")
        staging.stage_remove("b")
        staging.stage_move("a", 0)

        assert [change.track_id for change in staging.changes] == ["b", "a"]

    def test_remove_records_position(self, staging):
        """Test that removals carry the position in HEAD."""
        change = staging.stage_remove("b")

        assert change == StagedChange.remove("b", 1)

    def test_remove_unknown_track(self, staging):
        """Test removing a track that is not in HEAD."""
        with pytest.raises(TrackNotFound):
            staging.stage_remove("zzz")

    def test_add_negative_position(self, staging):
        """Test that negative insert positions are rejected."""
        with pytest.raises(ValueError):
            staging.stage_add(Track(id="d"), -1)

    def test_move_out_of_range(self, staging):
        """Test that move targets must be inside the playlist."""
        with pytest.raises(ValueError, match="Invalid index 3"):
            staging.stage_move("a", 3)

    def test_move_range_accounts_for_removals(self, staging):
        """Test that move targets are checked against the staged playlist."""
        staging.stage_remove("c")

        with pytest.raises(ValueError):
            staging.stage_move("b", 2)

        # replacing the removal itself is allowed
        staging.stage_move("c", 0)
        assert staging.prospective_snapshot().track_ids == ("c", "a", "b")

    def test_move_only_added_track(self, staging):
        """Test that a track that exists only as a staged add cannot be moved."""
        staging.stage_add(Track(id="d"))

        with pytest.raises(TrackNotFound):
            staging.stage_move("d", 0)

    def test_prospective_snapshot(self, staging):
        """Test removals, then additions, then moves are applied."""
        staging.stage_add(Track(id="d", title="Dee"), 1)
        staging.stage_remove("c")

        snapshot = staging.prospective_snapshot()

        assert snapshot.track_ids == ("a", "d", "b")
        assert snapshot.get_track("d").title == "Dee"

    def test_diff_matches_compute_diff(self, staging):
        """Test that the staged diff is HEAD to the prospective snapshot."""
        staging.stage_move("a", 2)
        staging.stage_add(Track(id="e"))

        assert staging.diff().operations == compute_diff(
            staging.base, staging.prospective_snapshot()
        ).operations

    def test_swap_scenario(self):
        """Test moving the first of two tracks to the end."""
        area = StagingArea(Snapshot.of(["t1", "t2"]))

        area.stage_move("t1", 1)

        assert area.diff().operations == [EditOp.move("t1", 1)]
        assert area.prospective_snapshot().track_ids == ("t2", "t1")

    def test_reset_and_rebase(self, staging):
        """Test discarding changes and moving to a new base."""
        staging.stage_remove("a")

        with pytest.raises(ValueError):
            staging.rebase(Snapshot.of(["x"]))

        assert staging.reset() == 1
        staging.rebase(Snapshot.of(["x"]))
        assert staging.base.track_ids == ("x",)

    def test_status_counts(self, staging):
        """Test status summarises changes per kind."""
        staging.stage_add(Track(id="d"))
        staging.stage_add(Track(id="e"))
        staging.stage_remove("a")

        status = staging.status()

        assert not status.is_empty
        assert status.counts() == {"add": 2, "remove": 1, "move": 0}
        assert status.snapshot.track_ids == ("b", "c", "d", "e")

    def test_restored_from_saved_changes(self):
        """Test that a staging area rebuilt from its changes behaves the same."""
        base = Snapshot.of(["a", "b"])
        first = StagingArea(base)
        first.stage_add(Track(id="c"), 0)
        first.stage_remove("a")

        second = StagingArea(base, first.changes)

        assert second.prospective_snapshot() == first.prospective_snapshot()
