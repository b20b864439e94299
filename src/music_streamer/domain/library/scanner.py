"""
Music library scanning.

Walks the library root, extracts metadata for every supported file and
assembles one immutable Catalog generation. Per-file failures are logged and
counted; only an unusable root aborts the build.
"""

import hashlib
import os
import stat
import time
from pathlib import Path, PurePosixPath
from typing import Callable, Iterator, Optional, Union

from loguru import logger

from music_streamer.core.config import DEFAULT_SUPPORTED_FORMATS, normalize_formats
from music_streamer.core.errors import (
    CatalogIntegrityError,
    ConfigurationError,
    ExtractionError,
)
from music_streamer.core.path_security import is_path_within_library

from .metadata import extract_metadata
from .models import BuildSummary, Catalog, Song, SongMetadata

ID_LENGTH = 16

Extractor = Callable[[Path], SongMetadata]


def is_supported_format(local_path: Union[str, Path], supported_formats: list[str]) -> bool:
    """Check if file format is supported."""
    return Path(local_path).suffix.lower() in supported_formats


def generate_song_id(relative_path: str) -> str:
    """Stable 16-hex-digit id derived from the POSIX relative path."""
    digest = hashlib.sha256(relative_path.encode("utf-8", "surrogateescape"))
    return digest.hexdigest()[:ID_LENGTH]


def normalize_name(value: Optional[str]) -> Optional[str]:
    """Collapse whitespace; empty names count as missing."""
    if value is None:
        return None
    collapsed = " ".join(value.split())
    return collapsed or None


def name_key(value: str) -> str:
    """Index key for artist/album/genre comparisons."""
    return value.casefold()


def _validate_root(root: Path) -> Path:
    if not root.exists():
        raise ConfigurationError(f"Music folder not found: {root}")
    if not root.is_dir():
        raise ConfigurationError(f"Music folder is not a directory: {root}")
    try:
        resolved = root.resolve(strict=True)
        os.listdir(resolved)
    except OSError as e:
        raise ConfigurationError(f"Music folder is not readable: {root} ({e})") from e
    return resolved


def iter_library_files(
    root: Path,
    supported_formats: list[str],
    follow_symlinks: bool = False,
) -> Iterator[str]:
    """Yield POSIX relative paths of eligible files, sorted lexicographically.

    Files whose extension is not supported are skipped silently. Entries
    (including symlinks) that resolve outside the root, or that are not
    regular files, are skipped with a warning. Symlinked directories are
    only descended into when follow_symlinks is set, and each real directory
    is visited once.
    """
    found: list[str] = []
    visited: set[Path] = set()

    def on_error(error: OSError) -> None:
        logger.warning(f"Cannot read directory {error.filename}: {error.strerror}")

    for dirpath, dirnames, filenames in os.walk(
        root, followlinks=follow_symlinks, onerror=on_error
    ):
        current = Path(dirpath)
        if follow_symlinks:
            real = current.resolve()
            if real in visited or not is_path_within_library(current, root):
                logger.warning(f"Skipping directory outside library or already visited: {current}")
                dirnames[:] = []
                continue
            visited.add(real)

        dirnames.sort()
        for filename in filenames:
            if not is_supported_format(filename, supported_formats):
                continue

            full_path = current / filename
            relative = PurePosixPath(full_path.relative_to(root).as_posix())

            if not is_path_within_library(full_path, root):
                logger.warning(f"Skipping {relative}: resolves outside the library")
                continue
            try:
                mode = full_path.stat().st_mode
            except OSError as e:
                logger.warning(f"Skipping {relative}: {e}")
                continue
            if not stat.S_ISREG(mode):
                continue

            found.append(str(relative))

    yield from sorted(found)


def _index(songs: list[Song], field_name: str) -> tuple[dict[str, tuple[str, ...]], dict[str, str]]:
    ids: dict[str, list[str]] = {}
    names: dict[str, str] = {}
    for song in songs:
        value = getattr(song, field_name)
        if not value:
            continue
        key = name_key(value)
        names.setdefault(key, value)
        ids.setdefault(key, []).append(song.id)
    return {key: tuple(values) for key, values in ids.items()}, names


def assemble_catalog(songs: list[Song], summary: BuildSummary, generation: int = 0) -> Catalog:
    """Create the derived indexes and freeze everything into a Catalog.

    Raises:
        CatalogIntegrityError: If two different paths share an id
    """
    by_id: dict[str, Song] = {}
    for song in songs:
        existing = by_id.get(song.id)
        if existing is not None and existing.relative_path != song.relative_path:
            raise CatalogIntegrityError(
                f"Song id collision: {existing.relative_path!r} and {song.relative_path!r} -> {song.id}"
            )
        by_id[song.id] = song

    by_artist, artist_names = _index(songs, "artist")
    by_album, album_names = _index(songs, "album")

    return Catalog(
        songs=tuple(songs),
        by_id=by_id,
        by_path={song.relative_path: song for song in songs},
        by_artist=by_artist,
        by_album=by_album,
        artist_names=artist_names,
        album_names=album_names,
        summary=summary,
        generation=generation,
    )


def build_song(relative_path: str, metadata: SongMetadata) -> Song:
    """Combine a relative path and extracted tags into a Song record."""
    title = normalize_name(metadata.title) or PurePosixPath(relative_path).stem
    return Song(
        id=generate_song_id(relative_path),
        relative_path=relative_path,
        title=title,
        artist=normalize_name(metadata.artist),
        album=normalize_name(metadata.album),
        genre=normalize_name(metadata.genre),
        track_number=metadata.track_number,
        year=metadata.year,
        duration_seconds=max(0, metadata.duration_seconds or 0),
        format=PurePosixPath(relative_path).suffix.lower().lstrip("."),
        has_cover=metadata.has_cover,
    )


def build_catalog(
    library_root: Union[str, Path],
    supported_formats: Optional[list[str]] = None,
    follow_symlinks: bool = False,
    extractor: Extractor = extract_metadata,
    generation: int = 0,
    progress_callback: Optional[Callable[[str, Optional[Song]], None]] = None,
) -> Catalog:
    """Scan the library root and build a complete Catalog.

    Args:
        library_root: Directory to scan recursively
        supported_formats: Dotted lowercase extensions (defaults to the built-in list)
        follow_symlinks: Descend into symlinked directories inside the root
        extractor: Metadata extractor, called with the absolute path
        generation: Generation number stamped on the catalog
        progress_callback: Optional callback(relative_path, song_or_None) per file

    Returns:
        Catalog with songs in lexicographic path order and its build summary

    Raises:
        ConfigurationError: If the root is missing, not a directory or unreadable
        CatalogIntegrityError: If two paths hash to the same id
    """
    started = time.monotonic()
    root = _validate_root(Path(library_root).expanduser())
    formats = normalize_formats(supported_formats or DEFAULT_SUPPORTED_FORMATS)

    logger.info(f"Scanning library: {root}")

    songs: list[Song] = []
    skipped = 0

    for relative_path in iter_library_files(root, formats, follow_symlinks):
        song: Optional[Song] = None
        try:
            metadata = extractor(root / relative_path)
            song = build_song(relative_path, metadata)
            songs.append(song)
        except ExtractionError as e:
            skipped += 1
            logger.warning(f"Skipping {relative_path}: {e.reason}")
        except OSError as e:
            skipped += 1
            logger.warning(f"Skipping {relative_path}: {e}")

        if progress_callback:
            progress_callback(relative_path, song)

    summary = BuildSummary(
        indexed=len(songs),
        skipped=skipped,
        elapsed_seconds=round(time.monotonic() - started, 3),
    )
    catalog = assemble_catalog(songs, summary, generation=generation)

    logger.info(
        f"Library scan complete: {summary.indexed} songs indexed, "
        f"{summary.skipped} skipped in {summary.elapsed_seconds:.2f}s"
    )
    return catalog
