"""Streaming domain - serving song bytes and cover art from the library."""

from .content import (
    AUDIO_MIME_TYPES,
    StreamPlan,
    find_song,
    get_cover,
    get_mime_type,
    iter_file_range,
    plan_stream,
    resolve_song,
)
from .ranges import ByteRange, parse_range_header, unsatisfiable_content_range

__all__ = [
    "AUDIO_MIME_TYPES",
    "ByteRange",
    "StreamPlan",
    "find_song",
    "get_cover",
    "get_mime_type",
    "iter_file_range",
    "parse_range_header",
    "plan_stream",
    "resolve_song",
    "unsatisfiable_content_range",
]
