"""Tests for library scanning and catalog assembly."""

import os
from pathlib import Path

import pytest

from music_streamer.core.errors import (
    CatalogIntegrityError,
    ConfigurationError,
    ExtractionError,
)
from music_streamer.domain.library.models import BuildSummary, Song, SongMetadata
from music_streamer.domain.library.scanner import (
    assemble_catalog,
    build_catalog,
    build_song,
    generate_song_id,
    is_supported_format,
    iter_library_files,
    normalize_name,
)

FORMATS = [".mp3", ".flac"]


def fake_extractor(path: Path) -> SongMetadata:
    """Derive tags from the file body: 'artist|album|year'."""
    text = path.read_text()
    if text == "corrupt":
        raise ExtractionError(path, "corrupt container")
    artist, album, year = (text.split("|") + ["", "", ""])[:3]
    return SongMetadata(
        title=path.stem.title(),
        artist=artist or None,
        album=album or None,
        year=int(year) if year else None,
        duration_seconds=120,
    )


def touch(root: Path, relative: str, body: str = "") -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body)
    return path


class TestHelpers:
    def test_is_supported_format_case_insensitive(self):
        assert is_supported_format("Song.MP3", FORMATS)
        assert not is_supported_format("cover.jpg", FORMATS)

    def test_song_id_is_stable_and_fixed_width(self):
        first = generate_song_id("Artist/song.mp3")
        assert first == generate_song_id("Artist/song.mp3")
        assert len(first) == 16
        assert int(first, 16) >= 0
        assert first != generate_song_id("Artist/song2.mp3")

    def test_normalize_name(self):
        assert normalize_name("  Daft   Punk ") == "Daft Punk"
        assert normalize_name("   ") is None
        assert normalize_name(None) is None

    def test_build_song_falls_back_to_stem(self):
        song = build_song("dir/track.FLAC", SongMetadata(title=None, duration_seconds=-3))
        assert song.title == "track"
        assert song.format == "flac"
        assert song.duration_seconds == 0
        assert song.id == generate_song_id("dir/track.FLAC")


class TestIterLibraryFiles:
    def test_sorted_relative_posix_paths(self, library):
        touch(library, "b.mp3")
        touch(library, "a/z.flac")
        touch(library, "a/c.mp3")
        touch(library, "notes.txt")

        assert list(iter_library_files(library, FORMATS)) == ["a/c.mp3", "a/z.flac", "b.mp3"]

    def test_symlink_outside_root_skipped(self, library, tmp_path):
        outside = touch(tmp_path, "outside.mp3")
        (library / "escape.mp3").symlink_to(outside)
        touch(library, "inside.mp3")

        assert list(iter_library_files(library, FORMATS)) == ["inside.mp3"]

    def test_symlinked_directory_followed_only_when_enabled(self, library):
        touch(library, "real/song.mp3")
        (library / "alias").symlink_to(library / "real", target_is_directory=True)

        assert list(iter_library_files(library, FORMATS)) == ["real/song.mp3"]

        # With following enabled, the real directory is still visited once
        found = list(iter_library_files(library, FORMATS, follow_symlinks=True))
        assert len(found) == 1

    def test_directory_named_like_audio_is_ignored(self, library):
        (library / "folder.mp3").mkdir()
        assert list(iter_library_files(library, FORMATS)) == []


class TestBuildCatalog:
    def test_indexes_and_skips(self, library):
        touch(library, "a.mp3", "X||2020")
        touch(library, "b.flac", "Y")
        touch(library, "c.mp3", "corrupt")

        catalog = build_catalog(library, FORMATS, extractor=fake_extractor)

        assert [s.relative_path for s in catalog.songs] == ["a.mp3", "b.flac"]
        assert catalog.summary.indexed == 2
        assert catalog.summary.skipped == 1
        assert catalog.get(generate_song_id("a.mp3")).year == 2020
        assert catalog.get_by_path("b.flac").artist == "Y"

    def test_unreadable_file_is_skipped(self, library):
        touch(library, "ok.mp3", "X")
        touch(library, "bad.mp3", "X")

        def flaky(path: Path) -> SongMetadata:
            if path.name == "bad.mp3":
                raise OSError("permission denied")
            return fake_extractor(path)

        catalog = build_catalog(library, FORMATS, extractor=flaky)
        assert len(catalog) == 1
        assert catalog.summary.skipped == 1

    def test_repeated_builds_are_identical(self, library):
        for name in ["c.mp3", "a.mp3", "sub/b.mp3"]:
            touch(library, name, "X|Album")

        first = build_catalog(library, FORMATS, extractor=fake_extractor)
        second = build_catalog(library, FORMATS, extractor=fake_extractor)

        assert first.songs == second.songs

    def test_artist_and_album_indexes_casefolded(self, library):
        touch(library, "1.mp3", "Daft Punk|Discovery")
        touch(library, "2.mp3", "daft punk|Discovery")
        touch(library, "3.mp3", "Air")

        catalog = build_catalog(library, FORMATS, extractor=fake_extractor)

        assert len(catalog.by_artist["daft punk"]) == 2
        assert catalog.artist_names["daft punk"] == "Daft Punk"
        assert catalog.by_album["discovery"] == (
            generate_song_id("1.mp3"),
            generate_song_id("2.mp3"),
        )

    def test_empty_library(self, library):
        catalog = build_catalog(library, FORMATS, extractor=fake_extractor)
        assert len(catalog) == 0
        assert catalog.summary == BuildSummary(indexed=0, skipped=0, elapsed_seconds=catalog.summary.elapsed_seconds)

    def test_progress_callback(self, library):
        touch(library, "a.mp3", "X")
        touch(library, "b.mp3", "corrupt")
        seen = []

        build_catalog(
            library,
            FORMATS,
            extractor=fake_extractor,
            progress_callback=lambda path, song: seen.append((path, song is not None)),
        )

        assert seen == [("a.mp3", True), ("b.mp3", False)]

    def test_missing_root_is_fatal(self, tmp_path):
        with pytest.raises(ConfigurationError):
            build_catalog(tmp_path / "missing", FORMATS, extractor=fake_extractor)

    def test_root_is_file_is_fatal(self, tmp_path):
        root = tmp_path / "file"
        root.write_text("")
        with pytest.raises(ConfigurationError):
            build_catalog(root, FORMATS, extractor=fake_extractor)

    @pytest.mark.skipif(os.geteuid() == 0, reason="root ignores directory permissions")
    def test_unreadable_subdirectory_is_not_fatal(self, library):
        touch(library, "ok.mp3", "X")
        locked = library / "locked"
        touch(library, "locked/hidden.mp3", "X")
        locked.chmod(0)
        try:
            catalog = build_catalog(library, FORMATS, extractor=fake_extractor)
        finally:
            locked.chmod(0o755)

        assert [s.relative_path for s in catalog.songs] == ["ok.mp3"]


class TestAssembleCatalog:
    def test_id_collision_raises(self):
        first = Song(id="0000000000000000", relative_path="a.mp3", title="A")
        second = Song(id="0000000000000000", relative_path="b.mp3", title="B")

        with pytest.raises(CatalogIntegrityError):
            assemble_catalog([first, second], BuildSummary(indexed=2, skipped=0))
