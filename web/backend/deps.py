import hmac
from pathlib import Path
from typing import Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from music_streamer.core.config import Config
from music_streamer.domain.library.models import Catalog
from music_streamer.domain.library.store import CatalogStore

bearer_scheme = HTTPBearer(auto_error=False)


class StaticTokenVerifier:
    """Accepts a fixed set of bearer tokens (from [auth].api_tokens)."""

    def __init__(self, tokens: list[str]):
        self._tokens = [t for t in tokens if t]

    def __call__(self, token: str) -> Optional[str]:
        for index, expected in enumerate(self._tokens):
            if hmac.compare_digest(token.encode(), expected.encode()):
                return f"token-{index + 1}"
        return None


def get_config(request: Request) -> Config:
    """FastAPI dependency for configuration."""
    return request.app.state.config


def get_store(request: Request) -> CatalogStore:
    """FastAPI dependency for the catalog store."""
    return request.app.state.store


def get_library_root(store: CatalogStore = Depends(get_store)) -> Path:
    return store.library_root


def get_catalog(store: CatalogStore = Depends(get_store)) -> Catalog:
    """Pin one catalog generation for the whole request."""
    return store.current()


def require_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """FastAPI dependency guarding the music endpoints.

    Token checking belongs to the verifier on app.state; with no verifier
    configured every request is let through.
    """
    verifier = getattr(request.app.state, "token_verifier", None)
    if verifier is None:
        return None

    if credentials is None:
        raise HTTPException(
            401, "Missing bearer token", headers={"WWW-Authenticate": "Bearer"}
        )

    user = verifier(credentials.credentials)
    if user is None:
        raise HTTPException(
            401, "Invalid or expired token", headers={"WWW-Authenticate": "Bearer"}
        )
    return user
