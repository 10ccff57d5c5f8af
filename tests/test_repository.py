"""Tests for repositories and the workspace."""

import pytest
from conftest import make_track

from playlist_grit.core.diff import EditOp
from playlist_grit.core.errors import (
    CommitNotFound,
    NothingToCommit,
    RepositoryExists,
    RepositoryNotFound,
    StagedChangesPending,
)
from playlist_grit.core.repository import Repository
from playlist_grit.models import PlaylistInfo, ProviderKind, Snapshot, StagedChange, Track


class TestRepository:
    """Test Repository."""

    def test_init_creates_root_commit(self, make_repo):
        """Test that init records the remote state as the root commit."""
        repo = make_repo(["a", "b"])

        assert repo.head.is_root
        assert repo.head.message == "init"
        assert repo.head_snapshot.track_ids == ("a", "b")
        assert repo.watermark.last_pushed_hash == repo.head.hash
        assert repo.watermark.last_pulled_snapshot == Snapshot.of(["a", "b"])
        assert repo.store.journal_file.exists()
        assert (repo.store.snapshots_dir / f"{repo.head.hash}.yaml").exists()

    def test_seed_and_reorder(self, make_repo):
        """Test staging, committing and the staged diff of a reorder."""
        repo = make_repo([])

        repo.stage_add(Track(id="t1"))
        repo.stage_add(Track(id="t2"))
        seed = repo.commit("seed")
        assert seed.snapshot.track_ids == ("t1", "t2")

        repo.stage_move("t1", 1)
        assert repo.diff_staged().operations == [EditOp.move("t1", 1)]

        reorder = repo.commit("reorder")
        assert reorder.snapshot.track_ids == ("t2", "t1")
        assert reorder.parent_hash == seed.hash
        assert repo.status().is_empty
        assert [c.message for c in repo.log()] == ["reorder", "seed", "init"]

    def test_commit_nothing_staged(self, make_repo):
        """Test that an empty commit is refused."""
        repo = make_repo(["a"])

        with pytest.raises(NothingToCommit):
            repo.commit("empty")
        assert len(repo.journal) == 1

    def test_commit_keeps_metadata(self, make_repo):
        """Test that committed snapshots carry track metadata."""
        repo = make_repo(["a"])
        repo.stage_add(Track(id="n", title="New One"))

        repo.commit("add")

        assert repo.head_snapshot.get_track("n").title == "New One"
        assert repo.head_snapshot.get_track("a").title == "Track A"

    def test_reopen_from_disk(self, make_repo):
        """Test that commits and staged changes survive reopening."""
        repo = make_repo(["a", "b"])
        repo.stage_remove("a")
        repo.commit("drop a")
        repo.stage_add(Track(id="c"), 0)

        reopened = Repository.open(repo.store)

        assert reopened.head.hash == repo.head.hash
        assert reopened.head_snapshot.track_ids == ("b",)
        assert reopened.status().snapshot.track_ids == ("c", "b")
        assert reopened.watermark == repo.watermark

    def test_revert_to_parent(self, make_repo):
        """Test that revert without a ref restores HEAD's parent."""
        repo = make_repo(["a", "b"])
        root = repo.head
        repo.stage_remove("b")
        repo.commit("drop b")

        commit = repo.revert()

        assert commit.message == f"revert to {root.hash}"
        assert commit.snapshot == root.snapshot
        assert len(repo.journal) == 3
        # metadata comes back from the stored root snapshot
        assert repo.head_snapshot.get_track("b").title == "Track B"

    def test_revert_by_prefix(self, make_repo):
        """Test reverting to an older commit by short hash."""
        repo = make_repo(["a"])
        root = repo.head
        repo.stage_add(Track(id="b"))
        repo.commit("one")
        repo.stage_add(Track(id="c"))
        repo.commit("two")

        commit = repo.revert(root.short_hash)

        assert commit.snapshot.track_ids == ("a",)

    def test_revert_root(self, make_repo):
        """Test that the root commit has no parent to revert to."""
        repo = make_repo(["a"])

        with pytest.raises(CommitNotFound):
            repo.revert()

    def test_revert_unknown(self, make_repo):
        """Test reverting to a missing commit."""
        repo = make_repo(["a"])

        with pytest.raises(CommitNotFound):
            repo.revert("deadbeef")

    def test_revert_with_staged_changes(self, make_repo):
        """Test that revert needs a clean staging area."""
        repo = make_repo(["a", "b"])
        repo.stage_remove("a")
        repo.commit("drop a")
        repo.stage_remove("b")

        with pytest.raises(StagedChangesPending):
            repo.revert()

    def test_recovers_from_interrupted_write(self, make_repo):
        """Test that a playlist file behind the journal is restored."""
        repo = make_repo(["a", "b"])
        root = repo.head
        repo.stage_add(Track(id="c", title="Gamma"))
        head = repo.commit("add c")
        # simulate a crash after the journal append
        repo.store.save_playlist(repo.info, root.hash, root.snapshot)
        repo.store.save_staged([StagedChange.remove("a", 0)])

        reopened = Repository.open(repo.store)

        assert reopened.head_snapshot.track_ids == ("a", "b", "c")
        assert reopened.head_snapshot.get_track("c").title == "Gamma"
        assert reopened.status().is_empty
        _, stored_head, _ = repo.store.load_playlist()
        assert stored_head == head.hash

    def test_verify(self, make_repo):
        """Test history verification."""
        repo = make_repo(["a"])
        repo.stage_remove("a")
        repo.commit("empty it")

        assert repo.verify() == []

        text = repo.store.journal_file.read_text(encoding="utf-8")
        repo.store.journal_file.write_text(
            text.replace('"empty it"', '"tampered"'), encoding="utf-8"
        )

        assert Repository.open(repo.store).verify()

    def test_stage_snapshot(self, make_repo):
        """Test staging the edits towards a target snapshot."""
        repo = make_repo(["a", "b", "c"])

        script = repo.stage_snapshot(Snapshot.of(["b", "a", "c"]))

        assert script.operations == [EditOp.move("a", 1)]
        assert repo.status().snapshot.track_ids == ("b", "a", "c")

    def test_stage_snapshot_with_new_tracks(self, make_repo):
        """Test that added tracks take metadata from the target."""
        repo = make_repo(["a"])
        target = Snapshot.from_tracks([Track(id="z", title="Zed"), make_track("a")])

        repo.stage_snapshot(target)
        repo.commit("apply")

        assert repo.head_snapshot.track_ids == ("z", "a")
        assert repo.head_snapshot.get_track("z").title == "Zed"

    def test_stage_snapshot_duplicate_edits(self, make_repo):
        """Test that two edits for one track id are refused."""
        repo = make_repo(["a", "b", "a"])

        with pytest.raises(ValueError, match="more than one change"):
            repo.stage_snapshot(Snapshot.of(["b", "a"]))
        assert repo.status().is_empty

    def test_stage_snapshot_needs_clean_staging(self, make_repo):
        """Test that applying a file over staged changes is refused."""
        repo = make_repo(["a", "b"])
        repo.stage_remove("a")

        with pytest.raises(StagedChangesPending):
            repo.stage_snapshot(Snapshot.of(["b", "a"]))


class TestWorkspace:
    """Test Workspace."""

    def _create(self, workspace, playlist_id, track_ids=("a",)):
        info = PlaylistInfo(id=playlist_id, name=f"List {playlist_id}", provider=ProviderKind.SPOTIFY)
        snapshot = Snapshot.of(track_ids, [make_track(t) for t in track_ids])
        with workspace.create(info, snapshot) as repo:
            return repo.head

    def test_no_playlists(self, workspace):
        """Test resolving with nothing tracked."""
        assert workspace.list_playlists() == []
        with pytest.raises(RepositoryNotFound, match="grit init"):
            workspace.resolve_playlist_id()

    def test_single_playlist_is_default(self, workspace):
        """Test that the only tracked playlist is picked by default."""
        self._create(workspace, "pl1")

        assert workspace.resolve_playlist_id() == "pl1"

    def test_several_playlists_need_a_choice(self, workspace):
        """Test that the default is ambiguous with two playlists."""
        self._create(workspace, "pl1")
        self._create(workspace, "pl2")

        with pytest.raises(RepositoryNotFound, match="--playlist"):
            workspace.resolve_playlist_id()
        assert workspace.resolve_playlist_id("pl2") == "pl2"
        with pytest.raises(RepositoryNotFound):
            workspace.resolve_playlist_id("pl3")

    def test_resolve_by_url(self, workspace):
        """Test choosing a playlist by its URL."""
        playlist_id = "37i9dQZF1DXcBWIGoYBM5M"
        self._create(workspace, playlist_id)
        self._create(workspace, "other")

        resolved = workspace.resolve_playlist_id(
            f"https://open.spotify.com/playlist/{playlist_id}?si=abc"
        )

        assert resolved == playlist_id

    def test_list_playlists(self, workspace):
        """Test playlist summaries."""
        head = self._create(workspace, "pl1", ("a", "b", "c"))

        summaries = workspace.list_playlists()

        assert len(summaries) == 1
        assert summaries[0].info.name == "List pl1"
        assert summaries[0].head == head.hash
        assert summaries[0].track_count == 3

    def test_create_twice(self, workspace):
        """Test that a playlist can only be tracked once."""
        self._create(workspace, "pl1")

        with pytest.raises(RepositoryExists):
            self._create(workspace, "pl1")

    def test_open(self, workspace):
        """Test opening a tracked playlist under its lock."""
        head = self._create(workspace, "pl1")

        with workspace.open("pl1") as repo:
            assert repo.head.hash == head.hash
            assert repo.store.lock(0).path.exists()

        with pytest.raises(RepositoryNotFound):
            with workspace.open("missing"):
                pass
