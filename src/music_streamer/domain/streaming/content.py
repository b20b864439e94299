"""
Content serving: song lookup, file resolution, byte streaming and cover art.

All functions are stateless. They read one catalog snapshot handed in by the
caller and only ever open files for reading.
"""

import mimetypes
import stat
from pathlib import Path
from typing import Callable, Iterator, NamedTuple, Optional, Union

from loguru import logger

from music_streamer.core.errors import (
    CoverNotFoundError,
    ExtractionError,
    SongNotFoundError,
)
from music_streamer.core.path_security import (
    normalize_relative_path,
    resolve_catalog_path,
    resolve_within_root,
)
from music_streamer.domain.library.metadata import extract_cover
from music_streamer.domain.library.models import Catalog, CoverArt, Song

from .ranges import ByteRange, parse_range_header

CHUNK_SIZE = 64 * 1024

AUDIO_MIME_TYPES: dict[str, str] = {
    ".mp3": "audio/mpeg",
    ".flac": "audio/flac",
    ".ogg": "audio/ogg",
    ".opus": "audio/opus",
    ".wav": "audio/wav",
    ".m4a": "audio/mp4",
    ".aac": "audio/aac",
    ".wma": "audio/x-ms-wma",
    ".aiff": "audio/aiff",
    ".ape": "audio/x-ape",
}


class StreamPlan(NamedTuple):
    """Everything the HTTP layer needs to answer a stream request."""

    song: Song
    path: Path
    size: int
    content_type: str
    byte_range: Optional[ByteRange]


def get_mime_type(file_path: Union[str, Path]) -> str:
    """Pure function - deterministic MIME type detection."""
    suffix = Path(file_path).suffix.lower()
    mime = AUDIO_MIME_TYPES.get(suffix)
    if mime:
        return mime
    guessed, _ = mimetypes.guess_type(f"file{suffix}")
    return guessed or "application/octet-stream"


def find_song(catalog: Catalog, library_root: Path, reference: str) -> Song:
    """Look up a song by id, or by its path relative to the library root.

    Raises:
        PathTraversalError: If a path reference escapes the root
        SongNotFoundError: If nothing in the catalog matches
    """
    song = catalog.get(reference) or catalog.get_by_path(reference)
    if song is not None:
        return song

    relative = normalize_relative_path(reference)
    song = catalog.get_by_path(relative)
    if song is None:
        # Surface traversal (e.g. an outward symlink) ahead of not-found
        resolve_within_root(library_root, relative)
        raise SongNotFoundError(reference)
    return song


def resolve_song(catalog: Catalog, library_root: Path, reference: str) -> tuple[Song, Path]:
    """Find a song and resolve its file to a canonical path under the root.

    The canonical check runs again at request time, so a file swapped for an
    outward symlink after indexing is still refused.
    """
    song = find_song(catalog, library_root, reference)
    return song, resolve_catalog_path(library_root, song.relative_path)


def plan_stream(
    catalog: Catalog,
    library_root: Path,
    reference: str,
    range_header: Optional[str] = None,
) -> StreamPlan:
    """Resolve a stream request down to a file, its size and the range to send.

    Raises:
        PathTraversalError: If the reference escapes the root
        SongNotFoundError: If the song is unknown or its file disappeared
        RangeNotSatisfiableError: If the Range header cannot be satisfied
    """
    song, path = resolve_song(catalog, library_root, reference)

    try:
        file_stat = path.stat()
    except OSError as e:
        logger.warning(f"Indexed file no longer readable: {song.relative_path} ({e})")
        raise SongNotFoundError(reference) from e
    if not stat.S_ISREG(file_stat.st_mode):
        raise SongNotFoundError(reference)

    size = file_stat.st_size
    return StreamPlan(
        song=song,
        path=path,
        size=size,
        content_type=get_mime_type(path),
        byte_range=parse_range_header(range_header, size),
    )


def iter_file_range(
    path: Path, start: int, end: int, chunk_size: int = CHUNK_SIZE
) -> Iterator[bytes]:
    """Yield bytes [start, end] of a file in chunks.

    An I/O error part-way through is logged and re-raised so the server
    aborts this response only.
    """
    remaining = end - start + 1
    try:
        with path.open("rb") as handle:
            handle.seek(start)
            while remaining > 0:
                chunk = handle.read(min(chunk_size, remaining))
                if not chunk:
                    raise OSError(f"Unexpected end of file with {remaining} bytes left")
                remaining -= len(chunk)
                yield chunk
    except OSError as e:
        logger.error(f"Stream aborted for {path.name}: {e}")
        raise


def get_cover(
    catalog: Catalog,
    library_root: Path,
    reference: str,
    extractor: Callable[[Path], Optional[CoverArt]] = extract_cover,
) -> CoverArt:
    """Extract the embedded cover of a song on demand (no caching).

    Raises:
        PathTraversalError: If the reference escapes the root
        SongNotFoundError: If the song is unknown
        CoverNotFoundError: If the song has no cover or it can no longer be read
    """
    song, path = resolve_song(catalog, library_root, reference)
    if not song.has_cover:
        raise CoverNotFoundError(reference)

    try:
        cover = extractor(path)
    except ExtractionError as e:
        logger.warning(f"Cover extraction failed for {song.relative_path}: {e.reason}")
        raise CoverNotFoundError(reference, e.reason) from e

    if cover is None:
        raise CoverNotFoundError(reference, "image no longer present")
    return cover
