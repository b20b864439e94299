"""Pytest configuration for backend tests.

Builds a small on-disk library (raw .mp3 payloads plus tagged FLAC files)
and an app instance per test.
"""

from pathlib import Path
from typing import Callable

import pytest
from fastapi.testclient import TestClient

from music_streamer.core.config import Config
from music_streamer.domain.library.metadata import extract_metadata
from music_streamer.domain.library.models import SongMetadata
from web.backend.main import create_app

PAYLOAD = bytes(range(100))
COVER_PNG = b"\x89PNG\r\n\x1a\n" + b"\x01" * 24

MP3_TAGS = {
    "a.mp3": SongMetadata(title="Alpha", artist="X", genre="Pop", year=2020, duration_seconds=200),
    "air.mp3": SongMetadata(title="Sexy Boy", artist="Air", album="Moon Safari", year=1998),
}


def mixed_extractor(path: Path) -> SongMetadata:
    """Real tags for FLAC; the .mp3 fixtures are raw bytes with canned tags."""
    if path.suffix == ".flac":
        return extract_metadata(path)
    return MP3_TAGS.get(path.name, SongMetadata(title=path.stem))


@pytest.fixture
def music_dir(tmp_path, flac_writer):
    root = tmp_path / "music"
    root.mkdir()
    (root / "a.mp3").write_bytes(PAYLOAD)
    (root / "air.mp3").write_bytes(PAYLOAD[:40])
    flac_writer(
        root / "Daft Punk" / "Discovery" / "01 One More Time.flac",
        seconds=1,
        cover=COVER_PNG,
        title="One More Time",
        artist="Daft Punk",
        album="Discovery",
        date="2001",
    )
    flac_writer(root / "b.flac", seconds=1, title="No Year", artist="Y")
    (tmp_path / "secret.mp3").write_bytes(b"top secret")
    return root


@pytest.fixture
def make_config(music_dir) -> Callable[..., Config]:
    def _make(api_tokens=None, cors_origins=None) -> Config:
        config = Config()
        config.music.library_path = str(music_dir)
        if api_tokens is not None:
            config.auth.api_tokens = api_tokens
        if cors_origins is not None:
            config.server.cors_origins = cors_origins
        return config

    return _make


@pytest.fixture
def client(app_factory):
    with TestClient(app_factory()) as test_client:
        yield test_client


@pytest.fixture
def app_factory(make_config):
    """Build an app over the fixture library with per-test config tweaks."""

    def _factory(**config_kwargs):
        return create_app(make_config(**config_kwargs), extractor=mixed_extractor)

    return _factory


@pytest.fixture
def payload() -> bytes:
    return PAYLOAD


@pytest.fixture
def cover_png() -> bytes:
    return COVER_PNG
