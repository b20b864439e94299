"""Library domain - scanning, metadata and catalog queries.

This domain handles:
- Song/Catalog data models
- Metadata extraction from audio files
- Library scanning into immutable catalog generations
- Filtering, sorting, pagination and name listings
"""

# Models
from .models import (
    BuildSummary,
    Catalog,
    CoverArt,
    NameCount,
    Page,
    QueryParams,
    Song,
    SongMetadata,
)

# Metadata extraction
from .metadata import (
    extract_cover,
    extract_metadata,
    get_tag_value,
    title_from_filename,
)

# Library scanning
from .scanner import (
    build_catalog,
    generate_song_id,
    is_supported_format,
    iter_library_files,
)

# Queries
from .query import (
    get_library_stats,
    list_albums,
    list_artists,
    query_catalog,
)

# Generation holder
from .store import CatalogStore, LibraryRescanner

__all__ = [
    # Models
    "BuildSummary",
    "Catalog",
    "CoverArt",
    "NameCount",
    "Page",
    "QueryParams",
    "Song",
    "SongMetadata",
    # Metadata
    "extract_cover",
    "extract_metadata",
    "get_tag_value",
    "title_from_filename",
    # Scanner
    "build_catalog",
    "generate_song_id",
    "is_supported_format",
    "iter_library_files",
    # Queries
    "get_library_stats",
    "list_albums",
    "list_artists",
    "query_catalog",
    # Store
    "CatalogStore",
    "LibraryRescanner",
]
