"""
HTTP byte-range arithmetic (RFC 7233, single range).

Policy:
- no header, or a unit other than ``bytes``: serve the whole file (200)
- ``bytes=a-b`` / ``bytes=a-`` / ``bytes=-n``: one range (206); an end past
  the last byte is clamped to ``size - 1``
- several comma-separated ranges: only the first one is served
- anything malformed, ``start >= size``, a zero suffix, or any range on an
  empty file: 416 with the total size
"""

from typing import NamedTuple, Optional

from music_streamer.core.errors import RangeNotSatisfiableError


class ByteRange(NamedTuple):
    """Inclusive byte interval [start, end] of a resource of ``size`` bytes."""

    start: int
    end: int
    size: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.size}"


def unsatisfiable_content_range(size: int) -> str:
    return f"bytes */{size}"


def _parse_int(value: str) -> Optional[int]:
    value = value.strip()
    if not (value.isascii() and value.isdigit()):
        return None
    return int(value)


def parse_range_header(header: Optional[str], size: int) -> Optional[ByteRange]:
    """Turn a Range header into the single byte range to serve.

    Args:
        header: Raw Range header value, or None
        size: Total resource size in bytes

    Returns:
        ByteRange to serve with 206, or None to serve the full resource

    Raises:
        RangeNotSatisfiableError: If the range is malformed or outside the resource
    """
    if header is None or not header.strip():
        return None

    unit, sep, value = header.strip().partition("=")
    if not sep or unit.strip().lower() != "bytes":
        return None

    first = value.split(",", 1)[0].strip()
    if "-" not in first:
        raise RangeNotSatisfiableError(size, header)

    start_str, end_str = first.split("-", 1)

    if start_str.strip() == "":
        # Suffix form: last N bytes
        suffix = _parse_int(end_str)
        if suffix is None or suffix == 0 or size == 0:
            raise RangeNotSatisfiableError(size, header)
        start = max(size - suffix, 0)
        return ByteRange(start=start, end=size - 1, size=size)

    start = _parse_int(start_str)
    if start is None or start >= size:
        raise RangeNotSatisfiableError(size, header)

    if end_str.strip() == "":
        end = size - 1
    else:
        end = _parse_int(end_str)
        if end is None or end < start:
            raise RangeNotSatisfiableError(size, header)
        end = min(end, size - 1)

    return ByteRange(start=start, end=end, size=size)
