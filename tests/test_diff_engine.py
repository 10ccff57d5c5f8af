"""Tests for the sequence diff engine."""

import random

import pytest

from playlist_grit.core.diff import EditOp, apply_script, compute_diff
from playlist_grit.core.diff.engine import apply_operation
from playlist_grit.core.errors import TrackNotFound
from playlist_grit.models import ChangeKind, Snapshot


class TestComputeDiff:
    """Test compute_diff on known inputs."""

    def test_identical_sequences(self):
        """Test that equal sequences need no edits."""
        script = compute_diff(["a", "b", "c"], ["a", "b", "c"])

        assert script.is_empty
        assert script.summary() == "+0 -0 ~0"

    def test_remove_and_append(self):
        """Test that retained tracks need no move."""
        script = compute_diff(["a", "b", "c"], ["b", "c", "d"])

        assert script.operations == [EditOp.remove("a"), EditOp.add("d", 2)]

    def test_swap_is_single_move(self):
        """Test that swapping two tracks moves the first one."""
        script = compute_diff(["t1", "t2"], ["t2", "t1"])

        assert script.operations == [EditOp.move("t1", 1)]

    def test_move_to_end(self):
        """Test moving a middle track to the end."""
        script = compute_diff(["a", "b", "c"], ["a", "c", "b"])

        assert script.operations == [EditOp.move("b", 2)]

    def test_from_empty(self):
        """Test building a playlist from nothing."""
        script = compute_diff([], ["x", "y"])

        assert script.operations == [EditOp.add("x", 0), EditOp.add("y", 1)]

    def test_to_empty(self):
        """Test clearing a playlist records positions as hints."""
        script = compute_diff(["x", "y"], [])

        assert script.operations == [EditOp.remove("x"), EditOp.remove("y")]
        assert [op.hint for op in script] == [0, 0]

    def test_ops_are_grouped_by_kind(self):
        """Test removals come first, then additions, then moves."""
        script = compute_diff(["a", "b", "c", "d"], ["d", "e", "b", "a"])

        kinds = [op.kind for op in script]
        order = [ChangeKind.REMOVE, ChangeKind.ADD, ChangeKind.MOVE]
        assert kinds == sorted(kinds, key=order.index)
        assert script.apply(["a", "b", "c", "d"]) == ["d", "e", "b", "a"]

    def test_reversal(self):
        """Test reversing a playlist keeps one track in place."""
        script = compute_diff(["a", "b", "c", "d"], ["d", "c", "b", "a"])

        assert len(script.moves) == 3
        assert script.apply(["a", "b", "c", "d"]) == ["d", "c", "b", "a"]

    def test_duplicates_pair_by_occurrence(self):
        """Test that the k-th copy in the base pairs with the k-th in the target."""
        script = compute_diff(["a", "b", "a"], ["a", "a", "b"])

        assert script.operations == [EditOp.move("b", 2)]

    def test_duplicate_removal_uses_hint(self):
        """Test that removing one copy of a duplicate targets the right slot."""
        script = compute_diff(["a", "b", "a"], ["b", "a"])

        assert script.apply(["a", "b", "a"]) == ["b", "a"]
        assert script.removals[0].hint == 2

    def test_accepts_snapshots(self):
        """Test that snapshots and lists give the same script."""
        from_lists = compute_diff(["a", "b"], ["b", "a", "c"])
        from_snapshots = compute_diff(Snapshot.of(["a", "b"]), Snapshot.of(["b", "a", "c"]))

        assert from_lists.operations == from_snapshots.operations

    def test_deterministic(self):
        """Test that the same inputs always give the same script."""
        base = ["a", "b", "c", "d", "e"]
        target = ["c", "a", "e", "b", "d"]

        first = compute_diff(base, target)
        second = compute_diff(base, target)

        assert first.operations == second.operations
        assert [op.hint for op in first] == [op.hint for op in second]

    def test_to_dict(self):
        """Test serialization counts."""
        data = compute_diff(["a", "b", "c"], ["b", "c", "d"]).to_dict()

        assert data["added"] == 1
        assert data["removed"] == 1
        assert data["moved"] == 0
        assert data["operations"][0] == {
            "kind": "remove",
            "track_id": "a",
            "index": None,
            "hint": 0,
        }


class TestRoundTrip:
    """Applying a computed script to the base yields the target."""

    @pytest.mark.parametrize("seed", range(5))
    def test_random_sequences(self, seed):
        """Test random sequences with duplicates."""
        rng = random.Random(seed)
        alphabet = "abcdefg"
        for _ in range(60):
            base = [rng.choice(alphabet) for _ in range(rng.randint(0, 10))]
            target = [rng.choice(alphabet) for _ in range(rng.randint(0, 10))]

            script = compute_diff(base, target)

            assert apply_script(base, script.operations) == target


class TestApplyOperation:
    """Test applying single ops."""

    def test_add_clamps_index(self):
        """Test that out-of-range insert positions append."""
        items = ["a"]
        apply_operation(items, EditOp.add("b", 10))
        apply_operation(items, EditOp.add("c", None))

        assert items == ["a", "b", "c"]

    def test_remove_missing_track(self):
        """Test that removing an absent id raises."""
        with pytest.raises(TrackNotFound):
            apply_operation(["a"], EditOp.remove("z"))

    def test_remove_without_hint_takes_last_copy(self):
        """Test the default occurrence for remove."""
        items = ["a", "b", "a"]
        apply_operation(items, EditOp.remove("a"))

        assert items == ["a", "b"]

    def test_move_with_stale_hint(self):
        """Test that a wrong hint falls back to the first occurrence."""
        items = ["a", "b", "c"]
        apply_operation(items, EditOp.move("c", 0, hint=0))

        assert items == ["c", "a", "b"]
