"""Rich console output for the command-line entry points."""

from pathlib import Path

from rich.console import Console
from rich.table import Table

_console: Console | None = None


def get_console() -> Console:
    """Get or create the global Rich Console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def print_error(message: str) -> None:
    get_console().print(f"Error: {message}", style="bold red")


def print_build_summary(stats: dict, library_root: Path) -> None:
    """Render the result of a library scan as a two-column table.

    Args:
        stats: Output of get_library_stats for the freshly built catalog
        library_root: Scanned directory, shown in the table title
    """
    table = Table(title=f"Library: {library_root}", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    minutes, seconds = divmod(stats["total_duration_seconds"], 60)
    hours, minutes = divmod(minutes, 60)

    table.add_row("Songs indexed", str(stats["indexed"]))
    table.add_row("Files skipped", str(stats["skipped"]))
    table.add_row("Artists", str(stats["artists"]))
    table.add_row("Albums", str(stats["albums"]))
    table.add_row("With cover art", str(stats["songs_with_cover"]))
    table.add_row("Total duration", f"{hours}:{minutes:02d}:{seconds:02d}")
    for fmt, count in stats["formats"].items():
        table.add_row(f"  .{fmt}", str(count))

    get_console().print(table)
