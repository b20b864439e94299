"""
Music library domain models.

Contains the immutable song record, the catalog generation built from a scan,
and the query/page types answered by the query engine.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, NamedTuple, Optional

SortField = Literal["title", "artist", "album", "year", "duration"]
SortOrder = Literal["asc", "desc"]

DEFAULT_PER_PAGE = 50
MAX_PER_PAGE = 100


class SongMetadata(NamedTuple):
    """Tag fields read from one audio file by the metadata extractor."""

    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    genre: Optional[str] = None
    track_number: Optional[int] = None
    year: Optional[int] = None
    duration_seconds: int = 0
    has_cover: bool = False


class CoverArt(NamedTuple):
    """Embedded image bytes extracted on demand."""

    data: bytes
    content_type: str


class Song(NamedTuple):
    """Represents one audio file in the library.

    relative_path is POSIX-style and relative to the library root; id is
    derived from it, so it stays the same across rescans as long as the
    file is not moved.
    """

    id: str
    relative_path: str
    title: str
    artist: Optional[str] = None
    album: Optional[str] = None
    genre: Optional[str] = None
    track_number: Optional[int] = None
    year: Optional[int] = None
    duration_seconds: int = 0
    format: str = ""
    has_cover: bool = False


@dataclass(frozen=True)
class BuildSummary:
    """Outcome of one catalog build pass."""

    indexed: int
    skipped: int
    elapsed_seconds: float = 0.0


@dataclass(frozen=True)
class Catalog:
    """One complete, immutable generation of the library scan.

    songs is in discovery order (sorted relative paths). by_artist/by_album
    map a casefolded name to the ids of its songs in discovery order;
    artist_names/album_names keep the display form first seen for each key.
    """

    songs: tuple[Song, ...]
    by_id: dict[str, Song]
    by_path: dict[str, Song]
    by_artist: dict[str, tuple[str, ...]]
    by_album: dict[str, tuple[str, ...]]
    artist_names: dict[str, str]
    album_names: dict[str, str]
    summary: BuildSummary
    generation: int = 0
    built_at: datetime = field(default_factory=datetime.now)

    def __len__(self) -> int:
        return len(self.songs)

    def get(self, song_id: str) -> Optional[Song]:
        return self.by_id.get(song_id)

    def get_by_path(self, relative_path: str) -> Optional[Song]:
        return self.by_path.get(relative_path)


@dataclass(frozen=True)
class QueryParams:
    """Filters, sort and pagination for a song listing."""

    q: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    genre: Optional[str] = None
    sort: SortField = "title"
    order: SortOrder = "asc"
    page: int = 1
    per_page: int = DEFAULT_PER_PAGE


@dataclass(frozen=True)
class Page:
    """One page of query results."""

    items: list[Song]
    total: int
    page: int
    per_page: int
    total_pages: int
    has_next: bool
    has_prev: bool


class NameCount(NamedTuple):
    """Distinct artist/album name with the number of songs carrying it."""

    name: str
    song_count: int
