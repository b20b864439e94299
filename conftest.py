"""Fixtures shared by every test tree: tiny but valid FLAC files built on the fly."""

import struct
from pathlib import Path
from typing import Optional

import pytest
from mutagen.flac import FLAC, Picture


def _streaminfo(seconds: int, sample_rate: int = 44100) -> bytes:
    total_samples = sample_rate * seconds
    packed = (sample_rate << 44) | ((2 - 1) << 41) | ((16 - 1) << 36) | total_samples
    return (
        struct.pack(">HH", 4096, 4096)
        + (0).to_bytes(3, "big")
        + (0).to_bytes(3, "big")
        + packed.to_bytes(8, "big")
        + b"\x00" * 16
    )


def write_flac(
    path: Path,
    seconds: int = 3,
    cover: Optional[bytes] = None,
    cover_mime: str = "image/png",
    **tags: str,
) -> Path:
    """Write a header-only FLAC file and tag it with mutagen."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"fLaC" + bytes([0x80]) + (34).to_bytes(3, "big") + _streaminfo(seconds))

    audio = FLAC(str(path))
    for key, value in tags.items():
        audio[key] = value
    if cover is not None:
        picture = Picture()
        picture.type = 3
        picture.mime = cover_mime
        picture.data = cover
        audio.add_picture(picture)
    audio.save()
    return path


@pytest.fixture
def flac_writer():
    return write_flac
