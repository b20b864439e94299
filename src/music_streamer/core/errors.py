"""
Error taxonomy for Music Streamer.

Every error knows its stable ``error_code`` and the HTTP status the web layer
should answer with, so routers raise domain errors and never build responses
for failures themselves.
"""

from pathlib import Path
from typing import Optional, Union


class MusicStreamerError(Exception):
    """Base class for all application errors."""

    error_code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(MusicStreamerError):
    """Library root missing/unreadable or invalid settings. Fatal at startup."""

    error_code = "CONFIGURATION_ERROR"
    status_code = 500


class ExtractionError(MusicStreamerError):
    """A single file could not be parsed. The builder skips the file."""

    error_code = "EXTRACTION_ERROR"
    status_code = 500

    def __init__(self, path: Union[str, Path], reason: str):
        super().__init__(f"Could not read metadata from {path}: {reason}")
        self.path = str(path)
        self.reason = reason


class CatalogIntegrityError(MusicStreamerError):
    """Two different relative paths produced the same song id."""

    error_code = "CATALOG_INTEGRITY_ERROR"
    status_code = 500


class CatalogNotReadyError(MusicStreamerError):
    """No catalog generation has been published yet."""

    error_code = "CATALOG_NOT_READY"
    status_code = 503

    def __init__(self, message: str = "Library is still being indexed"):
        super().__init__(message)


class PathTraversalError(MusicStreamerError):
    """Requested path resolves outside the library root."""

    error_code = "PATH_TRAVERSAL"
    status_code = 403

    def __init__(self, message: str = "Invalid path: access outside the library is not allowed"):
        super().__init__(message)


class NotFoundError(MusicStreamerError):
    """Unknown song, missing file or missing cover."""

    error_code = "NOT_FOUND"
    status_code = 404


class SongNotFoundError(NotFoundError):
    def __init__(self, reference: str):
        super().__init__(f"Song not found: {reference}")
        self.reference = reference


class CoverNotFoundError(NotFoundError):
    def __init__(self, reference: str, reason: Optional[str] = None):
        message = f"No cover art available for: {reference}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.reference = reference


class RangeNotSatisfiableError(MusicStreamerError):
    """Range header cannot be served against a resource of ``size`` bytes."""

    error_code = "RANGE_NOT_SATISFIABLE"
    status_code = 416

    def __init__(self, size: int, header: str = ""):
        super().__init__(f"Requested range not satisfiable: {header!r} (size={size})")
        self.size = size
        self.header = header
