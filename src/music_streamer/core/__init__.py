"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML + environment)
- Error taxonomy
- Logging (Loguru)
- Path containment checks

Clean architecture principle: The core layer has no dependencies on
domain or application layers.
"""

# Configuration
from .config import (
    Config,
    load_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    create_default_config,
)

# Errors
from .errors import (
    MusicStreamerError,
    ConfigurationError,
    ExtractionError,
    CatalogIntegrityError,
    CatalogNotReadyError,
    PathTraversalError,
    NotFoundError,
    SongNotFoundError,
    CoverNotFoundError,
    RangeNotSatisfiableError,
)

# Logging
from .output import setup_logging

# Path security
from .path_security import (
    is_path_within_library,
    normalize_relative_path,
    resolve_catalog_path,
    resolve_within_root,
)

__all__ = [
    # Config
    "Config",
    "load_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "create_default_config",
    # Errors
    "MusicStreamerError",
    "ConfigurationError",
    "ExtractionError",
    "CatalogIntegrityError",
    "CatalogNotReadyError",
    "PathTraversalError",
    "NotFoundError",
    "SongNotFoundError",
    "CoverNotFoundError",
    "RangeNotSatisfiableError",
    # Logging
    "setup_logging",
    # Path security
    "is_path_within_library",
    "normalize_relative_path",
    "resolve_catalog_path",
    "resolve_within_root",
]
