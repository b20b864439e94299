"""
Configuration management for Music Streamer
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from loguru import logger

from .errors import ConfigurationError

DEFAULT_SUPPORTED_FORMATS = [
    ".mp3",
    ".flac",
    ".ogg",
    ".wav",
    ".m4a",
    ".aac",
    ".wma",
    ".opus",
    ".aiff",
    ".ape",
]


@dataclass
class MusicConfig:
    """Configuration for music library settings."""

    library_path: str = "./music"
    supported_formats: List[str] = field(
        default_factory=lambda: list(DEFAULT_SUPPORTED_FORMATS)
    )
    follow_symlinks: bool = False
    rescan_interval_seconds: int = 0  # 0 = scan once at startup


@dataclass
class ServerConfig:
    """Configuration for the HTTP server."""

    host: str = "0.0.0.0"
    port: int = 8080
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class AuthConfig:
    """Bearer tokens accepted by the music endpoints (empty = auth disabled)."""

    api_tokens: List[str] = field(default_factory=list)


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: Optional[str] = (
        None  # Custom log file path (default: ~/.local/share/music-streamer/music-streamer.log)
    )
    max_file_size_mb: int = 10  # Maximum log file size before rotation
    backup_count: int = 5  # Number of backup files to keep
    console_output: bool = True  # Also output to stderr


@dataclass
class Config:
    """Main configuration object."""

    music: MusicConfig = field(default_factory=MusicConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def library_root(self) -> Path:
        return Path(self.music.library_path).expanduser()

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigurationError: If the library root is unusable or values are invalid
        """
        root = self.library_root
        if not root.exists():
            raise ConfigurationError(f"Music folder not found: {root}")
        if not root.is_dir():
            raise ConfigurationError(f"Music folder is not a directory: {root}")
        if not os.access(root, os.R_OK | os.X_OK):
            raise ConfigurationError(f"Music folder is not readable: {root}")
        if not 1 <= self.server.port <= 65535:
            raise ConfigurationError(f"Invalid port: {self.server.port}")
        if self.music.rescan_interval_seconds < 0:
            raise ConfigurationError(
                f"rescan_interval_seconds must be >= 0, got {self.music.rescan_interval_seconds}"
            )


def normalize_formats(formats: List[str]) -> List[str]:
    """Lowercase extensions and make sure each one starts with a dot."""
    normalized = []
    for ext in formats:
        ext = ext.strip().lower()
        if not ext:
            continue
        if not ext.startswith("."):
            ext = f".{ext}"
        if ext not in normalized:
            normalized.append(ext)
    return normalized


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "music-streamer"
    return Path.home() / ".config" / "music-streamer"


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. MUSIC_STREAMER_CONFIG environment variable
    2. Current working directory
    3. XDG_CONFIG_HOME/music-streamer (or ~/.config/music-streamer)
    """
    explicit = os.environ.get("MUSIC_STREAMER_CONFIG")
    if explicit:
        return Path(explicit).expanduser()

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "music-streamer"
    return Path.home() / ".local" / "share" / "music-streamer"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Music Streamer Configuration

[music]
# Folder that holds your music (scanned recursively)
library_path = "./music"

# Supported audio file formats
supported_formats = [".mp3", ".flac", ".ogg", ".wav", ".m4a", ".aac", ".wma", ".opus", ".aiff", ".ape"]

# Descend into symlinked directories (targets outside the library are always skipped)
follow_symlinks = false

# Rescan the library every N seconds (0 = only at startup)
rescan_interval_seconds = 0

[server]
host = "0.0.0.0"
port = 8080

# Allowed CORS origins ("*" for any)
cors_origins = ["*"]

[auth]
# Bearer tokens accepted by /api/music/* (leave empty to disable auth)
api_tokens = []

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/music-streamer/music-streamer.log)
# log_file = "/path/to/custom/music-streamer.log"

# Maximum log file size in MB before rotation
max_file_size_mb = 10

# Number of backup log files to keep
backup_count = 5

# Also output logs to stderr
console_output = true
""".strip()


def config_from_toml(toml_data: dict) -> Config:
    """Build a Config from parsed TOML data, falling back to defaults per key."""
    config = Config()

    if "music" in toml_data:
        music_data = toml_data["music"]
        config.music = MusicConfig(
            library_path=str(
                Path(music_data.get("library_path", config.music.library_path)).expanduser()
            ),
            supported_formats=normalize_formats(
                music_data.get("supported_formats", config.music.supported_formats)
            ),
            follow_symlinks=music_data.get(
                "follow_symlinks", config.music.follow_symlinks
            ),
            rescan_interval_seconds=int(
                music_data.get(
                    "rescan_interval_seconds", config.music.rescan_interval_seconds
                )
            ),
        )

    if "server" in toml_data:
        server_data = toml_data["server"]
        config.server = ServerConfig(
            host=server_data.get("host", config.server.host),
            port=int(server_data.get("port", config.server.port)),
            cors_origins=list(server_data.get("cors_origins", config.server.cors_origins)),
        )

    if "auth" in toml_data:
        auth_data = toml_data["auth"]
        config.auth = AuthConfig(
            api_tokens=[str(t) for t in auth_data.get("api_tokens", [])],
        )

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        if log_file:
            log_file = str(Path(log_file).expanduser())
        config.logging = LoggingConfig(
            level=logging_data.get("level", config.logging.level).upper(),
            log_file=log_file,
            max_file_size_mb=logging_data.get(
                "max_file_size_mb", config.logging.max_file_size_mb
            ),
            backup_count=logging_data.get("backup_count", config.logging.backup_count),
            console_output=logging_data.get(
                "console_output", config.logging.console_output
            ),
        )

    return config


def apply_env_overrides(config: Config) -> Config:
    """Override configuration values with environment variables if present.

    - MUSIC_FOLDER, HOST, PORT, CORS_ORIGINS, API_TOKENS, LOG_LEVEL, RESCAN_INTERVAL
    """
    music_folder = os.environ.get("MUSIC_FOLDER")
    if music_folder:
        config.music.library_path = str(Path(music_folder).expanduser())

    host = os.environ.get("HOST")
    if host:
        config.server.host = host

    port = os.environ.get("PORT")
    if port:
        try:
            config.server.port = int(port)
        except ValueError as e:
            raise ConfigurationError(f"PORT must be an integer, got {port!r}") from e

    cors_origins = os.environ.get("CORS_ORIGINS")
    if cors_origins:
        config.server.cors_origins = _split_list(cors_origins)

    api_tokens = os.environ.get("API_TOKENS")
    if api_tokens:
        config.auth.api_tokens = _split_list(api_tokens)

    log_level = os.environ.get("LOG_LEVEL")
    if log_level:
        config.logging.level = log_level.upper()

    rescan_interval = os.environ.get("RESCAN_INTERVAL")
    if rescan_interval:
        try:
            config.music.rescan_interval_seconds = int(rescan_interval)
        except ValueError as e:
            raise ConfigurationError(
                f"RESCAN_INTERVAL must be an integer, got {rescan_interval!r}"
            ) from e

    return config


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values (see apply_env_overrides).

    Raises:
        ConfigurationError: If the config file exists but cannot be parsed
    """
    # Load .env file from config directory if it exists
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = config_path or get_config_path()

    if not config_path.exists():
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(config_path, "w", encoding="utf-8") as f:
                f.write(create_default_config())
            logger.info(f"Created default configuration at: {config_path}")
        except OSError as e:
            logger.warning(f"Could not write default configuration to {config_path}: {e}")
        return apply_env_overrides(Config())

    try:
        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(
            f"Error loading configuration from {config_path}: {e}"
        ) from e

    return apply_env_overrides(config_from_toml(toml_data))
