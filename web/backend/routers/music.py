from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response, StreamingResponse
from loguru import logger

from music_streamer.domain.library.models import Catalog, QueryParams, SortField, SortOrder
from music_streamer.domain.library.query import (
    get_library_stats,
    list_albums,
    list_artists,
    query_catalog,
)
from music_streamer.domain.library.store import CatalogStore
from music_streamer.domain.streaming.content import get_cover, iter_file_range, plan_stream

from ..deps import get_catalog, get_library_root, get_store, require_user
from ..schemas import (
    ErrorResponse,
    LibraryStats,
    NameCountInfo,
    RescanResponse,
    SongInfo,
    SongPage,
)

router = APIRouter(
    dependencies=[Depends(require_user)],
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)

COVER_CACHE_CONTROL = "public, max-age=86400"


@router.get("/music/list", response_model=SongPage)
def list_music(
    q: Optional[str] = None,
    artist: Optional[str] = None,
    album: Optional[str] = None,
    genre: Optional[str] = None,
    page: int = Query(1),
    per_page: int = Query(50),
    sort: SortField = "title",
    order: SortOrder = "asc",
    catalog: Catalog = Depends(get_catalog),
):
    params = QueryParams(
        q=q,
        artist=artist,
        album=album,
        genre=genre,
        sort=sort,
        order=order,
        page=page,
        per_page=per_page,
    )
    result = query_catalog(catalog, params)
    return SongPage(
        items=[SongInfo(**song._asdict()) for song in result.items],
        total=result.total,
        page=result.page,
        per_page=result.per_page,
        total_pages=result.total_pages,
        has_next=result.has_next,
        has_prev=result.has_prev,
    )


@router.get("/music/stream/{reference:path}")
def stream_music(
    reference: str,
    request: Request,
    catalog: Catalog = Depends(get_catalog),
    library_root: Path = Depends(get_library_root),
):
    plan = plan_stream(catalog, library_root, reference, request.headers.get("range"))
    headers = {"Accept-Ranges": "bytes"}

    if plan.byte_range is None:
        logger.info(f"Streaming {plan.song.relative_path} ({plan.size} bytes)")
        headers["Content-Length"] = str(plan.size)
        return StreamingResponse(
            iter_file_range(plan.path, 0, plan.size - 1),
            status_code=200,
            media_type=plan.content_type,
            headers=headers,
        )

    byte_range = plan.byte_range
    logger.debug(f"Streaming {plan.song.relative_path} {byte_range.content_range}")
    headers["Content-Range"] = byte_range.content_range
    headers["Content-Length"] = str(byte_range.length)
    return StreamingResponse(
        iter_file_range(plan.path, byte_range.start, byte_range.end),
        status_code=206,
        media_type=plan.content_type,
        headers=headers,
    )


@router.get("/music/cover/{reference:path}")
def get_cover_art(
    reference: str,
    catalog: Catalog = Depends(get_catalog),
    library_root: Path = Depends(get_library_root),
):
    cover = get_cover(catalog, library_root, reference)
    return Response(
        content=cover.data,
        media_type=cover.content_type,
        headers={"Cache-Control": COVER_CACHE_CONTROL},
    )


@router.get("/music/artists", response_model=list[NameCountInfo])
def get_artists(catalog: Catalog = Depends(get_catalog)):
    return [NameCountInfo(name=n.name, song_count=n.song_count) for n in list_artists(catalog)]


@router.get("/music/albums", response_model=list[NameCountInfo])
def get_albums(catalog: Catalog = Depends(get_catalog)):
    return [NameCountInfo(name=n.name, song_count=n.song_count) for n in list_albums(catalog)]


@router.get("/music/stats", response_model=LibraryStats)
def get_stats(catalog: Catalog = Depends(get_catalog)):
    return LibraryStats(**get_library_stats(catalog))


@router.post("/music/rescan", response_model=RescanResponse, status_code=202)
def rescan_library(store: CatalogStore = Depends(get_store)):
    """Kick off a background rebuild; the current catalog keeps serving."""
    started = store.trigger_rebuild()
    if started:
        logger.info("Library rescan requested")
    generation = store.current().generation if store.is_ready else 0
    return RescanResponse(
        status="started" if started else "already_running",
        generation=generation,
    )
