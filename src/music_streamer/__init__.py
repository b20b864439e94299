"""Music Streamer - index a local music folder and stream it over HTTP."""

__version__ = "0.3.0"
