from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from loguru import logger
from starlette.concurrency import run_in_threadpool

from music_streamer import __version__
from music_streamer.core.config import Config, load_config
from music_streamer.core.errors import MusicStreamerError, RangeNotSatisfiableError
from music_streamer.domain.library.metadata import extract_metadata
from music_streamer.domain.library.scanner import Extractor
from music_streamer.domain.library.store import CatalogStore, LibraryRescanner
from music_streamer.domain.streaming.ranges import unsatisfiable_content_range

from .deps import StaticTokenVerifier


def create_app(
    config: Optional[Config] = None,
    extractor: Extractor = extract_metadata,
) -> FastAPI:
    """Build the API application.

    The catalog is built once during startup, before any request is served;
    a library root that cannot be scanned aborts startup.
    """
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        config.validate()

        store = CatalogStore.from_config(config.music, extractor=extractor)
        await run_in_threadpool(store.rebuild)
        app.state.store = store

        rescanner = LibraryRescanner(store, config.music.rescan_interval_seconds)
        rescanner.start()
        logger.info(f"Music streamer ready, serving {store.library_root}")
        try:
            yield
        finally:
            rescanner.stop()
            logger.info("Music streamer stopped")

    app = FastAPI(title="Music Streamer API", version=__version__, lifespan=lifespan)
    app.state.config = config

    if config.auth.api_tokens:
        app.state.token_verifier = StaticTokenVerifier(config.auth.api_tokens)
    else:
        app.state.token_verifier = None
        logger.warning("No API tokens configured, music endpoints are open")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials="*" not in config.server.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Range", "Accept-Ranges", "Content-Length"],
    )

    @app.exception_handler(MusicStreamerError)
    async def handle_app_error(request: Request, exc: MusicStreamerError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc.message}")
        else:
            logger.debug(f"{request.method} {request.url.path}: {exc.message}")

        if isinstance(exc, RangeNotSatisfiableError):
            return Response(
                status_code=exc.status_code,
                headers={"Content-Range": unsatisfiable_content_range(exc.size)},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.error_code, "detail": exc.message},
        )

    # Include routers
    from web.backend.routers import health, music

    app.include_router(health.router, tags=["health"])
    app.include_router(music.router, prefix="/api", tags=["music"])

    return app
