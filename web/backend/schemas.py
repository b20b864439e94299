from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel


class SongInfo(BaseModel):
    id: str
    title: str
    artist: Optional[str] = None
    album: Optional[str] = None
    genre: Optional[str] = None
    track_number: Optional[int] = None
    year: Optional[int] = None
    duration_seconds: int = 0
    format: str
    relative_path: str
    has_cover: bool

    model_config = {"frozen": True}  # Immutable


class SongPage(BaseModel):
    items: list[SongInfo]
    total: int
    page: int
    per_page: int
    total_pages: int
    has_next: bool
    has_prev: bool


class NameCountInfo(BaseModel):
    name: str
    song_count: int


class LibraryStats(BaseModel):
    total_songs: int
    artists: int
    albums: int
    total_duration_seconds: int
    songs_with_cover: int
    formats: dict[str, int]
    generation: int
    built_at: datetime
    indexed: int
    skipped: int


class RescanResponse(BaseModel):
    status: Literal["started", "already_running"]
    generation: int


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str


class ReadyResponse(BaseModel):
    status: Literal["ready", "not_ready"]
    library_root: bool
    catalog_loaded: bool
    generation: Optional[int] = None


class ErrorResponse(BaseModel):
    error: str
    detail: str
