"""Tests for the on-disk store and the repository lock."""

import pytest
import yaml

from playlist_grit.core.errors import (
    GritError,
    RepositoryExists,
    RepositoryLocked,
    RepositoryNotFound,
)
from playlist_grit.models import (
    PlaylistInfo,
    ProviderKind,
    PushIntent,
    Snapshot,
    StagedChange,
    SyncWatermark,
    Track,
)
from playlist_grit.storage import RepositoryLock, RepositoryStore, load_snapshot_file, write_atomic
from playlist_grit.storage.store import snapshot_from_document


@pytest.fixture
def store(tmp_path):
    """Create an initialized store."""
    store = RepositoryStore(tmp_path / "playlists" / "pl1")
    store.create()
    return store


@pytest.fixture
def info():
    """Playlist identity used by the store tests."""
    return PlaylistInfo(id="pl1", name="Road Trip", provider=ProviderKind.SPOTIFY)


class TestWriteAtomic:
    """Test write_atomic."""

    def test_writes_and_cleans_up(self, tmp_path):
        """Test that the file is replaced and no temp file remains."""
        target = tmp_path / "sub" / "file.txt"

        write_atomic(target, "one")
        write_atomic(target, "two")

        assert target.read_text(encoding="utf-8") == "two"
        assert [p.name for p in target.parent.iterdir()] == ["file.txt"]


class TestSnapshotDocuments:
    """Test reading snapshots from YAML documents."""

    def test_bare_list(self):
        """Test a plain list of ids."""
        provider, snapshot = snapshot_from_document(["a", "b", "a"])

        assert provider is None
        assert snapshot.track_ids == ("a", "b", "a")

    def test_playlist_document(self):
        """Test the playlist.yaml layout."""
        provider, snapshot = snapshot_from_document(
            {
                "id": "pl1",
                "provider": "youtube",
                "tracks": [{"id": "v1", "title": "Video"}, "v2"],
            }
        )

        assert provider == ProviderKind.YOUTUBE
        assert snapshot.track_ids == ("v1", "v2")
        assert snapshot.get_track("v1").provider == ProviderKind.YOUTUBE

    def test_invalid_document(self):
        """Test that other YAML values are rejected."""
        with pytest.raises(ValueError):
            snapshot_from_document("just a string")

    def test_load_file(self, tmp_path):
        """Test loading a snapshot file from disk."""
        path = tmp_path / "target.yaml"
        path.write_text(yaml.safe_dump(["c", "a"]), encoding="utf-8")

        provider, snapshot = load_snapshot_file(path)

        assert provider is None
        assert snapshot == Snapshot.of(["c", "a"])

    def test_unreadable_yaml(self, tmp_path):
        """Test that broken YAML raises a GritError."""
        path = tmp_path / "broken.yaml"
        path.write_text("tracks: [unclosed", encoding="utf-8")

        with pytest.raises(GritError):
            load_snapshot_file(path)


class TestRepositoryStore:
    """Test RepositoryStore."""

    def test_create_twice(self, store):
        """Test that an initialized store cannot be created again."""
        store.save_playlist(
            PlaylistInfo(id="pl1", provider=ProviderKind.SPOTIFY), None, Snapshot()
        )

        with pytest.raises(RepositoryExists):
            store.create()

    def test_require_missing(self, tmp_path):
        """Test that a missing repository is reported."""
        with pytest.raises(RepositoryNotFound):
            RepositoryStore(tmp_path / "nothing").load_playlist()

    def test_playlist_round_trip(self, store, info):
        """Test that identity, head and track metadata survive."""
        snapshot = Snapshot.from_tracks(
            [
                Track(id="a", title="Alpha", artists=["X"], duration_ms=1000),
                Track(id="b", title="Beta", metadata={"album": "Greek"}),
            ]
        )

        store.save_playlist(info, "h" * 64, snapshot)
        loaded_info, head, loaded = store.load_playlist()

        assert loaded_info == info
        assert head == "h" * 64
        assert loaded == snapshot
        assert loaded.get_track("a").artists == ["X"]
        assert loaded.get_track("b").metadata == {"album": "Greek"}

    def test_playlist_yaml_is_readable(self, store, info):
        """Test the playlist file layout."""
        store.save_playlist(info, None, Snapshot.from_tracks([Track(id="a", title="Alpha")]))

        data = yaml.safe_load(store.playlist_file.read_text(encoding="utf-8"))

        assert data["id"] == "pl1"
        assert data["provider"] == "spotify"
        assert data["tracks"][0]["title"] == "Alpha"

    def test_commit_snapshots(self, store):
        """Test per-commit snapshot files."""
        snapshot = Snapshot.from_tracks([Track(id="a", title="Alpha")])

        store.save_commit_snapshot("c" * 64, snapshot)

        assert store.load_commit_snapshot("c" * 64).get_track("a").title == "Alpha"
        assert store.load_commit_snapshot("d" * 64) is None

    def test_staged_round_trip(self, store):
        """Test that staged changes keep their order and contents."""
        changes = [
            StagedChange.remove("b", 1),
            StagedChange.add(Track(id="c", title="Gamma"), 0),
            StagedChange.move("a", 2, 0),
        ]

        store.save_staged(changes)

        assert store.load_staged() == changes

    def test_watermark(self, store):
        """Test watermark defaults and persistence."""
        assert store.load_watermark() == SyncWatermark()

        watermark = SyncWatermark(
            last_pushed_hash="a" * 64, last_pulled_snapshot=Snapshot.of(["x"])
        )
        store.save_watermark(watermark)

        loaded = store.load_watermark()
        assert loaded.last_pushed_hash == "a" * 64
        assert loaded.last_pulled_snapshot == Snapshot.of(["x"])

    def test_push_intent(self, store):
        """Test saving and clearing the push marker."""
        assert store.load_push_intent() is None

        store.save_push_intent(PushIntent(target_hash="f" * 64))
        assert store.load_push_intent().target_hash == "f" * 64

        store.clear_push_intent()
        store.clear_push_intent()
        assert store.load_push_intent() is None

    def test_unreadable_json(self, store):
        """Test that a garbled state file raises a GritError."""
        store.sync_file.write_text("{oops", encoding="utf-8")

        with pytest.raises(GritError):
            store.load_watermark()


class TestRepositoryLock:
    """Test RepositoryLock."""

    def test_second_holder_times_out(self, tmp_path):
        """Test that a held lock refuses a competing holder."""
        path = tmp_path / ".lock"
        first = RepositoryLock(path, timeout=0)
        second = RepositoryLock(path, timeout=0)

        with first:
            assert first.is_held
            with pytest.raises(RepositoryLocked):
                second.acquire()
            assert not second.is_held

        second.acquire()
        assert second.is_held
        second.release()

    def test_released_on_error(self, tmp_path):
        """Test that leaving the block through an exception releases the lock."""
        path = tmp_path / ".lock"
        lock = RepositoryLock(path, timeout=0)

        with pytest.raises(RuntimeError):
            with lock:
                raise RuntimeError("boom")

        assert not lock.is_held
        with RepositoryLock(path, timeout=0) as other:
            assert other.is_held

    def test_release_is_idempotent(self, tmp_path):
        """Test releasing a lock that is not held."""
        lock = RepositoryLock(tmp_path / ".lock")

        lock.release()
        lock.acquire()
        lock.acquire()
        lock.release()
        lock.release()

        assert not lock.is_held
