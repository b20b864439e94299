"""
Music metadata extraction.

Reads tags, stream length and embedded pictures from audio files using
Mutagen. Extraction is read-only and never caches picture bytes: indexing only
records whether a picture exists, and the cover endpoint extracts it again.
"""

import base64
from pathlib import Path
from typing import Any, Optional, Union

from loguru import logger
from mutagen import File as MutagenFile
from mutagen import MutagenError
from mutagen.flac import Picture
from mutagen.mp4 import MP4Cover

from music_streamer.core.errors import ExtractionError

from .models import CoverArt, SongMetadata

# ID3 (MP3/AIFF/WAV), MP4, Vorbis/Opus/FLAC, ASF (WMA) and APEv2 spellings
TITLE_TAGS = ["TIT2", "\xa9nam", "title", "Title"]
ARTIST_TAGS = ["TPE1", "\xa9ART", "artist", "Author", "Artist"]
ALBUM_TAGS = ["TALB", "\xa9alb", "album", "WM/AlbumTitle", "Album"]
GENRE_TAGS = ["TCON", "\xa9gen", "genre", "WM/Genre", "Genre"]
YEAR_TAGS = ["TDRC", "TYER", "\xa9day", "date", "year", "WM/Year", "Year"]
TRACK_TAGS = ["TRCK", "trkn", "tracknumber", "WM/TrackNumber", "Track"]

ID3_FRONT_COVER = 3
DEFAULT_IMAGE_TYPE = "image/jpeg"


def get_tag_value(tags: Any, tag_names: list[str]) -> Optional[Any]:
    """Get tag value, trying multiple possible tag names.

    Returns the first non-empty value as found (str for text frames,
    tuple for MP4 number pairs), or None.
    """
    if tags is None:
        return None

    for tag_name in tag_names:
        try:
            if tag_name not in tags:
                continue
            value = tags[tag_name]
        except (KeyError, ValueError):
            # Some formats (like Vorbis) raise ValueError for invalid keys
            continue

        # ID3 frames keep their values in .text
        if hasattr(value, "text"):
            value = value.text
        if isinstance(value, list):
            value = value[0] if value else None
        if value is None:
            continue
        if isinstance(value, tuple):
            return value

        text = str(value).strip()
        if text:
            return text
    return None


def _clean_text(value: Optional[Any]) -> Optional[str]:
    if value is None:
        return None
    text = " ".join(str(value).split())
    return text or None


def parse_track_number(value: Optional[Any]) -> Optional[int]:
    """Parse '5', '5/12' or an MP4 (5, 12) pair into the track number."""
    if value is None:
        return None
    if isinstance(value, tuple):
        value = value[0] if value else None
        if value is None:
            return None
    try:
        number = int(str(value).split("/")[0].strip())
    except (ValueError, TypeError):
        return None
    return number if number > 0 else None


def parse_year(value: Optional[Any]) -> Optional[int]:
    """Extract the year from '2020', '2020-05-01' or '2020-05-01T10:00'."""
    if value is None:
        return None
    try:
        year = int(str(value).strip()[:4])
    except (ValueError, TypeError):
        return None
    if 1000 <= year <= 9999:
        return year
    return None


def title_from_filename(local_path: Union[str, Path]) -> tuple[str, Optional[str]]:
    """Extract (title, artist) from the filename as fallback.

    "Artist - Title.mp3" yields both; anything else yields the stem as
    title and no artist.
    """
    title = Path(local_path).stem
    artist = None

    if " - " in title:
        parts = title.split(" - ", 1)
        if parts[0].strip() and parts[1].strip():
            artist = parts[0].strip()
            title = parts[1].strip()

    return title, artist


def sniff_image_type(data: bytes) -> str:
    """Guess an image content type from its magic bytes."""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8"):
        return "image/jpeg"
    if data.startswith((b"GIF87a", b"GIF89a")):
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data.startswith(b"BM"):
        return "image/bmp"
    return DEFAULT_IMAGE_TYPE


def _content_type(mime: Optional[str], data: bytes) -> str:
    if mime and mime.lower().startswith("image/"):
        return "image/jpeg" if mime.lower() == "image/jpg" else mime.lower()
    return sniff_image_type(data)


def _pick_front(pictures: list[tuple[int, Optional[str], bytes]]) -> Optional[CoverArt]:
    """Choose the front cover if tagged as such, otherwise the first picture."""
    usable = [p for p in pictures if p[2]]
    if not usable:
        return None
    chosen = next((p for p in usable if p[0] == ID3_FRONT_COVER), usable[0])
    _, mime, data = chosen
    return CoverArt(data=bytes(data), content_type=_content_type(mime, data))


def find_cover(audio_file: Any) -> Optional[CoverArt]:
    """Locate embedded artwork in a loaded Mutagen file.

    Handles ID3 APIC frames, FLAC picture blocks, MP4 covr atoms,
    Vorbis/Opus METADATA_BLOCK_PICTURE comments and APEv2 cover items.
    """
    pictures: list[tuple[int, Optional[str], bytes]] = []

    # FLAC picture blocks
    for picture in getattr(audio_file, "pictures", None) or []:
        pictures.append((picture.type, picture.mime, picture.data))

    tags = getattr(audio_file, "tags", None)
    if tags is not None:
        # ID3 APIC
        if hasattr(tags, "getall"):
            for apic in tags.getall("APIC"):
                pictures.append((apic.type, apic.mime, apic.data))

        # MP4 covr
        covers = _safe_get(tags, "covr") or []
        for cover in covers:
            mime = "image/png" if getattr(cover, "imageformat", None) == MP4Cover.FORMAT_PNG else None
            pictures.append((ID3_FRONT_COVER, mime, bytes(cover)))

        # Vorbis comment pictures (Ogg Vorbis / Opus)
        for encoded in _safe_get(tags, "metadata_block_picture") or []:
            try:
                picture = Picture(base64.b64decode(encoded))
            except (ValueError, TypeError, MutagenError) as e:
                logger.debug(f"Skipping unreadable METADATA_BLOCK_PICTURE: {e}")
                continue
            pictures.append((picture.type, picture.mime, picture.data))

        # APEv2: "filename\0<image bytes>"
        ape_cover = _safe_get(tags, "Cover Art (Front)")
        if ape_cover is not None and hasattr(ape_cover, "value"):
            raw = ape_cover.value
            if isinstance(raw, bytes) and b"\x00" in raw:
                pictures.append((ID3_FRONT_COVER, None, raw.split(b"\x00", 1)[1]))

    return _pick_front(pictures)


def _safe_get(tags: Any, key: str) -> Optional[Any]:
    try:
        if key in tags:
            return tags[key]
    except (KeyError, ValueError, TypeError):
        pass
    return None


def _open(local_path: Union[str, Path]) -> Any:
    """Open an audio file with Mutagen, classifying every failure."""
    try:
        audio_file = MutagenFile(str(local_path))
    except MutagenError as e:
        raise ExtractionError(local_path, f"corrupt container ({e})") from e
    except OSError as e:
        raise ExtractionError(local_path, f"unreadable file ({e})") from e
    except Exception as e:
        # Mutagen parsers can surface struct/index errors on truncated data
        raise ExtractionError(local_path, f"{type(e).__name__}: {e}") from e

    if audio_file is None:
        raise ExtractionError(local_path, "unsupported container")
    return audio_file


def extract_metadata(local_path: Union[str, Path]) -> SongMetadata:
    """Extract tags, duration and cover presence from an audio file.

    Raises:
        ExtractionError: If the file is unreadable, corrupt or not a
            container Mutagen understands
    """
    audio_file = _open(local_path)
    tags = audio_file.tags

    title = _clean_text(get_tag_value(tags, TITLE_TAGS))
    artist = _clean_text(get_tag_value(tags, ARTIST_TAGS))
    album = _clean_text(get_tag_value(tags, ALBUM_TAGS))
    genre = _clean_text(get_tag_value(tags, GENRE_TAGS))
    track_number = parse_track_number(get_tag_value(tags, TRACK_TAGS))
    year = parse_year(get_tag_value(tags, YEAR_TAGS))

    duration_seconds = 0
    info = getattr(audio_file, "info", None)
    length = getattr(info, "length", None)
    if length:
        try:
            duration_seconds = max(0, int(length))
        except (ValueError, TypeError, OverflowError):
            duration_seconds = 0

    # Fallback to filename if no title
    if not title:
        title, filename_artist = title_from_filename(local_path)
        artist = artist or filename_artist

    return SongMetadata(
        title=title,
        artist=artist,
        album=album,
        genre=genre,
        track_number=track_number,
        year=year,
        duration_seconds=duration_seconds,
        has_cover=find_cover(audio_file) is not None,
    )


def extract_cover(local_path: Union[str, Path]) -> Optional[CoverArt]:
    """Re-read an audio file and return its embedded cover art, if any.

    Raises:
        ExtractionError: If the file can no longer be parsed
    """
    return find_cover(_open(local_path))
