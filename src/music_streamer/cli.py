"""
Music Streamer CLI - Entry point

``serve`` runs the HTTP API, ``scan`` indexes a library once and prints a
summary without starting a server.
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from music_streamer.core.config import Config, load_config
from music_streamer.core.console import get_console, print_build_summary, print_error
from music_streamer.core.errors import MusicStreamerError
from music_streamer.core.output import setup_logging


def _load(config_path: Optional[str]) -> Config:
    return load_config(Path(config_path).expanduser() if config_path else None)


def run_scan(config: Config, library_path: Optional[str] = None) -> int:
    """Build a catalog once and print its statistics.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    from music_streamer.domain.library.query import get_library_stats
    from music_streamer.domain.library.scanner import build_catalog

    root = Path(library_path).expanduser() if library_path else config.library_root
    console = get_console()

    try:
        with console.status(f"Scanning {root}..."):
            catalog = build_catalog(
                root,
                supported_formats=config.music.supported_formats,
                follow_symlinks=config.music.follow_symlinks,
            )
    except MusicStreamerError as e:
        print_error(e.message)
        return 1

    print_build_summary(get_library_stats(catalog), root)
    return 0


def run_server(config: Config) -> int:
    """Validate the configuration and serve the API until interrupted."""
    import uvicorn

    from web.backend.main import create_app

    try:
        config.validate()
    except MusicStreamerError as e:
        print_error(e.message)
        return 1

    app = create_app(config)
    logger.info(f"Starting server on {config.server.host}:{config.server.port}")
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level.lower(),
    )
    return 0


def main() -> None:
    """Main entry point for the music-streamer command."""
    parser = argparse.ArgumentParser(
        description="Music Streamer - index a music folder and stream it over HTTP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Path to config.toml")

    subparsers = parser.add_subparsers(dest="subcommand", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", help="Bind address (overrides config)")
    serve_parser.add_argument("--port", type=int, help="Port (overrides config)")
    serve_parser.add_argument("--music-folder", help="Library root (overrides config)")

    scan_parser = subparsers.add_parser("scan", help="Index the library and print a summary")
    scan_parser.add_argument("path", nargs="?", help="Library root (defaults to config)")

    args = parser.parse_args()

    try:
        config = _load(args.config)
    except MusicStreamerError as e:
        print_error(e.message)
        sys.exit(1)

    if args.subcommand == "scan":
        config.logging.console_output = False
        setup_logging(config.logging)
        sys.exit(run_scan(config, args.path))

    # Default: serve
    if getattr(args, "host", None):
        config.server.host = args.host
    if getattr(args, "port", None):
        config.server.port = args.port
    if getattr(args, "music_folder", None):
        config.music.library_path = args.music_folder

    setup_logging(config.logging)
    sys.exit(run_server(config))


if __name__ == "__main__":
    main()
