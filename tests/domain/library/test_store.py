"""Tests for the catalog store and background rescans."""

import threading
import time
from pathlib import Path

import pytest

from music_streamer.core.config import MusicConfig
from music_streamer.core.errors import CatalogNotReadyError, ConfigurationError
from music_streamer.domain.library.models import SongMetadata
from music_streamer.domain.library.store import CatalogStore, LibraryRescanner


def simple_extractor(path: Path) -> SongMetadata:
    return SongMetadata(title=path.stem)


@pytest.fixture
def store(library):
    (library / "one.mp3").write_bytes(b"x")
    return CatalogStore(library, [".mp3"], extractor=simple_extractor)


class TestCatalogStore:
    def test_not_ready_before_first_build(self, store):
        assert store.is_ready is False
        with pytest.raises(CatalogNotReadyError):
            store.current()

    def test_rebuild_publishes_new_generation(self, store, library):
        first = store.rebuild()
        assert store.current() is first
        assert first.generation == 1

        (library / "two.mp3").write_bytes(b"x")
        second = store.rebuild()

        assert second.generation == 2
        assert len(second) == 2
        # Snapshots held by earlier readers are untouched
        assert len(first) == 1

    def test_failed_rebuild_keeps_previous_generation(self, store, library, tmp_path):
        catalog = store.rebuild()
        store.library_root = tmp_path / "gone"

        with pytest.raises(ConfigurationError):
            store.rebuild()

        assert store.current() is catalog
        assert store.last_error is not None

    def test_concurrent_rebuild_is_noop(self, library):
        (library / "one.mp3").write_bytes(b"x")
        started = threading.Event()
        release = threading.Event()

        def slow_extractor(path: Path) -> SongMetadata:
            started.set()
            release.wait(5)
            return SongMetadata(title=path.stem)

        store = CatalogStore(library, [".mp3"], extractor=slow_extractor)
        assert store.trigger_rebuild() is True
        assert started.wait(5)

        assert store.is_rebuilding is True
        assert store.trigger_rebuild() is False
        assert store.rebuild() is None

        release.set()
        deadline = time.monotonic() + 5
        while not store.is_ready and time.monotonic() < deadline:
            time.sleep(0.01)
        assert store.current().generation == 1

    def test_trigger_holds_lock_before_thread_runs(self, library):
        """Test that a second trigger right after the first is refused."""
        (library / "one.mp3").write_bytes(b"x")
        release = threading.Event()

        def blocked_extractor(path: Path) -> SongMetadata:
            release.wait(5)
            return SongMetadata(title=path.stem)

        store = CatalogStore(library, [".mp3"], extractor=blocked_extractor)
        try:
            results = [store.trigger_rebuild() for _ in range(5)]
            assert results == [True, False, False, False, False]
            assert store.is_rebuilding is True
        finally:
            release.set()

        deadline = time.monotonic() + 5
        while store.is_rebuilding and time.monotonic() < deadline:
            time.sleep(0.01)
        assert store.current().generation == 1

    def test_background_failure_releases_lock(self, store, tmp_path):
        store.library_root = tmp_path / "gone"
        assert store.trigger_rebuild() is True

        deadline = time.monotonic() + 5
        while store.is_rebuilding and time.monotonic() < deadline:
            time.sleep(0.01)

        assert store.is_rebuilding is False
        assert store.last_error is not None
        assert store.trigger_rebuild() is True

    def test_from_config(self, library):
        config = MusicConfig(library_path=str(library), supported_formats=[".flac"])
        store = CatalogStore.from_config(config)
        assert store.library_root == library
        assert store.supported_formats == [".flac"]


class TestLibraryRescanner:
    def test_disabled_when_interval_zero(self, store):
        rescanner = LibraryRescanner(store, 0)
        rescanner.start()
        assert rescanner.running is False

    def test_periodic_rebuilds(self, store):
        rescanner = LibraryRescanner(store, 0.05)
        rescanner.start()
        try:
            deadline = time.monotonic() + 5
            while (not store.is_ready or store.current().generation < 2) and time.monotonic() < deadline:
                time.sleep(0.01)
        finally:
            rescanner.stop()

        assert store.current().generation >= 2
        assert rescanner.running is False
