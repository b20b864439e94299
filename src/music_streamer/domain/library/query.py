"""
Catalog queries: filtering, search, sorting, pagination and name listings.

Everything here is a pure function of (Catalog, QueryParams): no I/O, no
mutation, deterministic output.
"""

import math
from typing import Any, Callable, Optional

from .models import (
    DEFAULT_PER_PAGE,
    MAX_PER_PAGE,
    Catalog,
    NameCount,
    Page,
    QueryParams,
    Song,
)
from .scanner import name_key

SORT_KEYS: dict[str, Callable[[Song], Optional[Any]]] = {
    "title": lambda s: name_key(s.title) if s.title else None,
    "artist": lambda s: name_key(s.artist) if s.artist else None,
    "album": lambda s: name_key(s.album) if s.album else None,
    "year": lambda s: s.year,
    "duration": lambda s: s.duration_seconds,
}


def clamp_per_page(per_page: Optional[int]) -> int:
    if per_page is None:
        return DEFAULT_PER_PAGE
    return max(1, min(MAX_PER_PAGE, per_page))


def clamp_page(page: Optional[int]) -> int:
    if page is None:
        return 1
    return max(1, page)


def _term(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = " ".join(value.split())
    return name_key(value) if value else None


def matches_search(song: Song, term: str) -> bool:
    """Case-insensitive substring match against title, artist, album, genre."""
    fields = (song.title, song.artist, song.album, song.genre)
    return any(term in name_key(field) for field in fields if field)


def _equals(value: Optional[str], expected: str) -> bool:
    return value is not None and name_key(value) == expected


def filter_songs(catalog: Catalog, params: QueryParams) -> list[Song]:
    """Apply q/artist/album/genre conjunctively, keeping discovery order."""
    q = _term(params.q)
    artist = _term(params.artist)
    album = _term(params.album)
    genre = _term(params.genre)

    # Narrow with the prebuilt indexes when an exact filter is present
    if artist is not None:
        candidates = [catalog.by_id[i] for i in catalog.by_artist.get(artist, ())]
    elif album is not None:
        candidates = [catalog.by_id[i] for i in catalog.by_album.get(album, ())]
    else:
        candidates = list(catalog.songs)

    results = []
    for song in candidates:
        if artist is not None and not _equals(song.artist, artist):
            continue
        if album is not None and not _equals(song.album, album):
            continue
        if genre is not None and not _equals(song.genre, genre):
            continue
        if q is not None and not matches_search(song, q):
            continue
        results.append(song)
    return results


def sort_songs(songs: list[Song], sort: str = "title", order: str = "asc") -> list[Song]:
    """Sort by one field; missing values always last, ties in input order.

    Python's sort is stable for reverse=True as well, so equal keys keep
    their discovery order in both directions.
    """
    key = SORT_KEYS.get(sort)
    if key is None:
        raise ValueError(f"Unknown sort field: {sort!r}")

    present = [s for s in songs if key(s) is not None]
    missing = [s for s in songs if key(s) is None]
    present.sort(key=key, reverse=(order == "desc"))
    return present + missing


def paginate(songs: list[Song], page: int, per_page: int) -> Page:
    """Slice one page out of an already filtered and sorted result."""
    page = clamp_page(page)
    per_page = clamp_per_page(per_page)
    total = len(songs)
    total_pages = max(1, math.ceil(total / per_page))
    start = (page - 1) * per_page
    items = songs[start:start + per_page] if page <= total_pages else []

    return Page(
        items=items,
        total=total,
        page=page,
        per_page=per_page,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


def query_catalog(catalog: Catalog, params: QueryParams) -> Page:
    """Answer a listing query against one catalog snapshot."""
    songs = filter_songs(catalog, params)
    songs = sort_songs(songs, params.sort, params.order)
    return paginate(songs, params.page, params.per_page)


def _list_names(index: dict[str, tuple[str, ...]], names: dict[str, str]) -> list[NameCount]:
    return [
        NameCount(name=names[key], song_count=len(index[key]))
        for key in sorted(index)
    ]


def list_artists(catalog: Catalog) -> list[NameCount]:
    """Distinct artist names with song counts, alphabetical."""
    return _list_names(catalog.by_artist, catalog.artist_names)


def list_albums(catalog: Catalog) -> list[NameCount]:
    """Distinct album names with song counts, alphabetical."""
    return _list_names(catalog.by_album, catalog.album_names)


def get_library_stats(catalog: Catalog) -> dict[str, Any]:
    """Get statistics about the music library."""
    formats: dict[str, int] = {}
    for song in catalog.songs:
        if song.format:
            formats[song.format] = formats.get(song.format, 0) + 1

    return {
        "total_songs": len(catalog.songs),
        "artists": len(catalog.by_artist),
        "albums": len(catalog.by_album),
        "total_duration_seconds": sum(s.duration_seconds for s in catalog.songs),
        "songs_with_cover": sum(1 for s in catalog.songs if s.has_cover),
        "formats": dict(sorted(formats.items())),
        "generation": catalog.generation,
        "built_at": catalog.built_at,
        "indexed": catalog.summary.indexed,
        "skipped": catalog.summary.skipped,
    }
