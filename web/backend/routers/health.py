from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from music_streamer import __version__
from music_streamer.domain.library.store import CatalogStore

from ..deps import get_store
from ..schemas import HealthResponse, ReadyResponse

router = APIRouter()

SERVICE_NAME = "music-streamer"


@router.get("/health", response_model=HealthResponse)
def health_check():
    return HealthResponse(status="healthy", service=SERVICE_NAME, version=__version__)


@router.get("/ready", response_model=ReadyResponse)
def readiness_check(store: CatalogStore = Depends(get_store)):
    """Ready once the library root is usable and a catalog is published."""
    root_ok = store.library_root.is_dir()
    catalog_loaded = store.is_ready
    ready = root_ok and catalog_loaded

    body = ReadyResponse(
        status="ready" if ready else "not_ready",
        library_root=root_ok,
        catalog_loaded=catalog_loaded,
        generation=store.current().generation if catalog_loaded else None,
    )
    return JSONResponse(status_code=200 if ready else 503, content=body.model_dump())
