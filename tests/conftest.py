"""Shared fixtures for playlist-grit tests."""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

import pytest

from playlist_grit.config import Config
from playlist_grit.core.errors import TrackNotFound
from playlist_grit.core.repository import Repository, Workspace
from playlist_grit.core.sync import RetryPolicy
from playlist_grit.models import PlaylistInfo, ProviderKind, Snapshot, Track
from playlist_grit.providers import ProviderAdapter
from playlist_grit.storage import RepositoryStore

ENV_VARS = [
    "GRIT_DIR",
    "GRIT_MAX_RETRIES",
    "GRIT_RETRY_BACKOFF",
    "GRIT_MAX_BACKOFF",
    "GRIT_LOCK_TIMEOUT",
    "GRIT_HTTP_TIMEOUT",
    "GRIT_LOG_FILE",
    "GRIT_SPOTIFY_TOKEN",
    "GRIT_YOUTUBE_TOKEN",
]


def make_track(track_id: str) -> Track:
    """Create a test track named after its id."""
    letter = track_id.upper()
    return Track(
        id=track_id,
        title=f"Track {letter}",
        artists=[f"Artist {letter}"],
        duration_ms=180000,
    )


class InMemoryProvider(ProviderAdapter):
    """Provider adapter backed by a Python list.

    Every remote call is recorded in ``calls``. ``fail`` queues an error for
    the next call of a kind; with ``applied=True`` the call takes effect on the
    remote before the error is raised, like a response lost in transit.
    """

    kind = ProviderKind.SPOTIFY

    def __init__(
        self,
        playlist_id: str = "pl1",
        track_ids: Iterable[str] = (),
        name: str = "Test Playlist",
    ) -> None:
        super().__init__(playlist_id)
        self.name = name
        self.catalogue: Dict[str, Track] = {}
        self.remote: List[str] = []
        self.calls: List[Tuple] = []
        self.failures: Dict[str, List[Tuple[Exception, bool]]] = {}
        self.set_remote(track_ids)

    def set_remote(self, track_ids: Iterable[str]) -> None:
        """Replace the remote order, as another client would."""
        self.remote = list(track_ids)
        for track_id in self.remote:
            self.catalogue.setdefault(track_id, make_track(track_id))

    def add_to_catalogue(self, *track_ids: str) -> None:
        for track_id in track_ids:
            self.catalogue.setdefault(track_id, make_track(track_id))

    def fail(self, kind: str, error: Exception, applied: bool = False) -> None:
        """Queue an error for the next ``kind`` call."""
        self.failures.setdefault(kind, []).append((error, applied))

    def count(self, kind: str) -> int:
        return sum(1 for call in self.calls if call[0] == kind)

    def _call(self, kind: str, effect, *args) -> None:
        self.calls.append((kind, *args))
        pending = self.failures.get(kind)
        if pending:
            error, applied = pending.pop(0)
            if applied:
                effect()
            raise error
        effect()

    def fetch_info(self) -> PlaylistInfo:
        return PlaylistInfo(id=self.playlist_id, name=self.name, provider=self.kind)

    def resolve_track(self, id_or_query: str) -> Track:
        if id_or_query in self.catalogue:
            return self.catalogue[id_or_query]
        raise TrackNotFound(id_or_query, "test catalogue")

    def search(self, query: str, limit: int = 10) -> List[Track]:
        needle = query.lower()
        found = [t for t in self.catalogue.values() if needle in t.title.lower()]
        return found[:limit]

    def _fetch_snapshot(self) -> Snapshot:
        self._call("fetch", lambda: None)
        return Snapshot.of(
            self.remote, [self.catalogue[track_id] for track_id in self.remote]
        )

    def _insert(self, track_id: str, position: int) -> None:
        self._call("insert", lambda: self.remote.insert(position, track_id), track_id, position)

    def _delete(self, track_id: str, position: int) -> None:
        assert self.remote[position] == track_id
        self._call("delete", lambda: self.remote.pop(position), track_id, position)

    def _reorder(self, track_id: str, source: int, target: int) -> None:
        def effect() -> None:
            self.remote.insert(target, self.remote.pop(source))

        self._call("reorder", effect, track_id, source, target)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config(tmp_path):
    """Create a configuration rooted in a temp directory."""
    config = Config(tmp_path / ".grit")
    config.retry_backoff = 0.0
    return config


@pytest.fixture
def workspace(config):
    """Create a workspace over the temp configuration."""
    return Workspace(config)


@pytest.fixture
def sleeps():
    """Delays requested by the retry policy."""
    return []


@pytest.fixture
def retry_policy(sleeps):
    """Create a retry policy that records delays instead of sleeping."""
    return RetryPolicy(
        max_attempts=3,
        backoff_seconds=1.0,
        max_backoff_seconds=30.0,
        sleep=sleeps.append,
    )


@pytest.fixture
def make_repo(tmp_path):
    """Factory creating a repository whose root commit holds ``track_ids``."""
    created = []

    def factory(
        track_ids: Iterable[str] = (), playlist_id: Optional[str] = None
    ) -> Repository:
        playlist_id = playlist_id or f"pl{len(created) + 1}"
        store = RepositoryStore(tmp_path / "repos" / playlist_id)
        track_ids = list(track_ids)
        snapshot = Snapshot.of(
            track_ids, [make_track(track_id) for track_id in track_ids]
        )
        info = PlaylistInfo(id=playlist_id, name="Test Playlist", provider=ProviderKind.SPOTIFY)
        repo = Repository.init(store, info, snapshot)
        created.append(repo)
        return repo

    return factory


@pytest.fixture
def restore_logging():
    """Put the root logger and app logger levels back after a test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    levels = {
        name: logger.level
        for name, logger in logging.root.manager.loggerDict.items()
        if isinstance(logger, logging.Logger)
    }
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, logger_level in levels.items():
        logging.getLogger(name).setLevel(logger_level)
