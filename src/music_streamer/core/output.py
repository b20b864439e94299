"""
Logging setup using Loguru.
Configures the file sink (with rotation) and the optional stderr sink.
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import LoggingConfig, get_data_dir

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}"


def get_log_file_path() -> Path:
    """Get the path to the log file."""
    return get_data_dir() / "music-streamer.log"


def setup_logging(config: LoggingConfig, log_file: Optional[Path] = None) -> Path:
    """
    Configure loguru sinks for the server process.

    Args:
        config: Logging section of the application config
        log_file: Override for the log file path (mainly for tests)

    Returns:
        Path of the log file in use
    """
    level = config.level.upper()
    log_path = log_file or (Path(config.log_file) if config.log_file else get_log_file_path())
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # Remove default handler
    logger.remove()

    logger.add(
        log_path,
        rotation=f"{config.max_file_size_mb} MB",
        retention=config.backup_count,
        level=level,
        format=LOG_FORMAT,
        enqueue=True,  # Request handlers log from worker threads
    )

    if config.console_output:
        logger.add(sys.stderr, level=level, format=LOG_FORMAT)

    logger.info(
        f"Logging initialized: {log_path} (level={level}, "
        f"max_size={config.max_file_size_mb}MB, backups={config.backup_count})"
    )
    return log_path
