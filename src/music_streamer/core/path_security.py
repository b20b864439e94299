"""
Path security validation utilities for Music Streamer.

Every path handed to the streaming layer goes through here. Containment is
checked on canonical (fully resolved) paths, never by string prefix, so ``..``
segments, absolute-looking input, encoded separators and symlinks pointing out
of the library are all rejected the same way.
"""

import re
from pathlib import Path, PurePosixPath
from typing import Union

from loguru import logger

from .errors import PathTraversalError

_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")


def normalize_relative_path(raw: str) -> str:
    """Lexically normalize a client-supplied library path.

    Backslashes count as separators, empty and ``.`` segments are dropped and
    ``..`` pops the previous segment. Input that is absolute, carries a drive
    prefix, contains NUL, or climbs above the root is rejected.

    Args:
        raw: Path relative to the library root, as received from the client

    Returns:
        POSIX-style relative path with no ``.``/``..`` segments

    Raises:
        PathTraversalError: If the path cannot stay inside the root
    """
    if not raw or not raw.strip():
        raise PathTraversalError("Invalid path: empty path")
    if "\x00" in raw:
        raise PathTraversalError()

    candidate = raw.replace("\\", "/")
    if candidate.startswith("/") or _DRIVE_PREFIX.match(candidate):
        raise PathTraversalError()

    parts: list[str] = []
    for segment in candidate.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not parts:
                raise PathTraversalError()
            parts.pop()
            continue
        parts.append(segment)

    if not parts:
        raise PathTraversalError("Invalid path: empty path")

    return str(PurePosixPath(*parts))


def is_path_within_library(file_path: Path, library_root: Union[str, Path]) -> bool:
    """Pure function - validates path is within the library root.

    Uses Path.resolve() to handle symlinks and relative paths, then checks if the
    resolved path is a child of the resolved library root.

    Args:
        file_path: The file path to validate
        library_root: Allowed library root

    Returns:
        True if path is within library boundaries, False otherwise
    """
    try:
        # Resolve symlinks and relative paths to get absolute canonical path
        resolved_path = file_path.resolve()
        lib_path = Path(library_root).resolve(strict=True)
        # relative_to raises ValueError if path is not a subpath
        resolved_path.relative_to(lib_path)
        return True
    except ValueError:
        return False
    except (OSError, RuntimeError):
        # Path.resolve() can raise OSError for invalid paths or RuntimeError for recursion
        return False


def resolve_within_root(library_root: Union[str, Path], relative_path: str) -> Path:
    """Resolve a relative library path to a canonical absolute path.

    Args:
        library_root: Library root directory
        relative_path: Client-supplied or catalog path relative to the root

    Returns:
        Canonical absolute path guaranteed to be under the root

    Raises:
        PathTraversalError: If the path escapes the root after normalization
            or symlink resolution
    """
    normalized = normalize_relative_path(relative_path)
    root = Path(library_root)
    candidate = root / normalized

    if not is_path_within_library(candidate, root):
        logger.warning(
            f"Blocked access outside library: {relative_path!r} (root={root})"
        )
        raise PathTraversalError()

    return candidate.resolve()


def resolve_catalog_path(library_root: Union[str, Path], relative_path: str) -> Path:
    """Resolve an indexed song's stored path to a canonical absolute path.

    Catalog paths are POSIX paths produced by the scanner, so they are joined
    segment by segment as-is: a backslash or a leading ``C:`` is part of a
    filename here, not a separator or a drive.

    Raises:
        PathTraversalError: If the file now resolves outside the root
            (e.g. it was replaced by an outward symlink after indexing)
    """
    root = Path(library_root)
    candidate = root.joinpath(*PurePosixPath(relative_path).parts)

    if not is_path_within_library(candidate, root):
        logger.warning(
            f"Blocked access outside library: {relative_path!r} (root={root})"
        )
        raise PathTraversalError()

    return candidate.resolve()
