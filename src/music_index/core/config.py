"""
Configuration management for Music Index
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from loguru import logger

VALID_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class LibraryConfig:
    """Configuration for music library scanning."""

    library_paths: List[str] = field(
        default_factory=lambda: [str(Path.home() / "Music")]
    )
    supported_formats: List[str] = field(
        default_factory=lambda: [
            ".mp3",
            ".m4a",
            ".flac",
            ".ogg",
            ".opus",
            ".wav",
            ".aiff",
            ".wma",
            ".aac",
            ".ape",
            ".wv",
        ]
    )
    # Sidecar files that live next to audio but are never handed to the extractor
    ignored_formats: List[str] = field(
        default_factory=lambda: [
            ".jpg",
            ".jpeg",
            ".png",
            ".webp",
            ".gif",
            ".bmp",
            ".lrc",
            ".txt",
            ".nfo",
            ".cue",
            ".log",
            ".m3u",
            ".m3u8",
            ".pls",
            ".pdf",
            ".db",
            ".ini",
            ".json",
        ]
    )
    scan_recursive: bool = True
    follow_symlinks: bool = False


@dataclass
class CoversConfig:
    """Configuration for the cover file store."""

    covers_dir: Optional[str] = None  # Default: <data dir>/covers
    verify_before_clear: bool = True


@dataclass
class DatabaseConfig:
    """Configuration for the SQLite store."""

    lock_timeout: float = 30.0


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    log_file: Optional[str] = None  # Default: <data dir>/music-index.log
    max_file_size_mb: int = 10
    backup_count: int = 5
    console_output: bool = False


@dataclass
class Config:
    """Main configuration object."""

    library: LibraryConfig = field(default_factory=LibraryConfig)
    covers: CoversConfig = field(default_factory=CoversConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "music-index"
    return Path.home() / ".config" / "music-index"


def get_data_dir() -> Path:
    """Get the data directory path."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "music-index"
    return Path.home() / ".local" / "share" / "music-index"


def get_covers_dir(config: Optional[Config] = None) -> Path:
    """Get the covers root (contains tracks/ and albums/)."""
    if config and config.covers.covers_dir:
        return Path(config.covers.covers_dir).expanduser()
    return get_data_dir() / "covers"


def _find_project_config() -> Optional[Path]:
    """Find config.toml in the project root (marked by pyproject.toml)."""
    current = Path(__file__).resolve().parent
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            config_path = parent / "config.toml"
            return config_path if config_path.exists() else None
    return None


def get_config_path() -> Path:
    """Get the main configuration file path.

    Checks for config.toml in the following order:
    1. Project root (detected via pyproject.toml) - for development
    2. Current working directory
    3. XDG_CONFIG_HOME/music-index (or ~/.config/music-index)
    """
    project_config = _find_project_config()
    if project_config:
        return project_config

    local_config = Path.cwd() / "config.toml"
    if local_config.exists():
        return local_config

    return get_config_dir() / "config.toml"


def create_default_config() -> str:
    """Create a default configuration TOML content."""
    return """
# Music Index Configuration

[library]
# Paths to scan for music files
library_paths = ["~/Music"]

# Audio file extensions
supported_formats = [".mp3", ".m4a", ".flac", ".ogg", ".opus", ".wav", ".aiff", ".wma", ".aac", ".ape", ".wv"]

# Sidecar extensions that are never treated as audio
ignored_formats = [".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp", ".lrc", ".txt", ".nfo", ".cue", ".log", ".m3u", ".m3u8", ".pls", ".pdf", ".db", ".ini", ".json"]

# Recursively scan subdirectories
scan_recursive = true

# Descend into symlinked directories
follow_symlinks = false

[covers]
# Root of the cover file store (default: ~/.local/share/music-index/covers)
# covers_dir = "/path/to/covers"

# Only clear inline cover blobs whose cover file exists on disk
verify_before_clear = true

[database]
# Seconds to wait for the store lock before giving up
lock_timeout = 30.0

[logging]
# Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
level = "INFO"

# Custom log file path (default: ~/.local/share/music-index/music-index.log)
# log_file = "/path/to/music-index.log"

# Maximum log file size in MB before rotation
max_file_size_mb = 10

# Number of rotated log files to keep
backup_count = 5

# Also output logs to stderr
console_output = false
""".strip()


def _normalize_extensions(extensions: List[str]) -> List[str]:
    normalized = []
    for ext in extensions:
        ext = ext.strip().lower()
        if not ext:
            continue
        normalized.append(ext if ext.startswith(".") else f".{ext}")
    return normalized


def parse_config(toml_data: dict) -> Config:
    """Build a Config from parsed TOML data, keeping defaults for missing keys."""
    config = Config()

    if "library" in toml_data:
        library_data = toml_data["library"]
        config.library = LibraryConfig(
            library_paths=[
                str(Path(p).expanduser())
                for p in library_data.get("library_paths", config.library.library_paths)
            ],
            supported_formats=_normalize_extensions(
                library_data.get("supported_formats", config.library.supported_formats)
            ),
            ignored_formats=_normalize_extensions(
                library_data.get("ignored_formats", config.library.ignored_formats)
            ),
            scan_recursive=library_data.get(
                "scan_recursive", config.library.scan_recursive
            ),
            follow_symlinks=library_data.get(
                "follow_symlinks", config.library.follow_symlinks
            ),
        )

    if "covers" in toml_data:
        covers_data = toml_data["covers"]
        covers_dir = covers_data.get("covers_dir")
        config.covers = CoversConfig(
            covers_dir=str(Path(covers_dir).expanduser()) if covers_dir else None,
            verify_before_clear=covers_data.get(
                "verify_before_clear", config.covers.verify_before_clear
            ),
        )

    if "database" in toml_data:
        database_data = toml_data["database"]
        lock_timeout = database_data.get("lock_timeout", config.database.lock_timeout)
        if not isinstance(lock_timeout, (int, float)) or lock_timeout <= 0:
            logger.warning(
                f"Invalid database.lock_timeout {lock_timeout!r}, using default"
            )
            lock_timeout = DatabaseConfig().lock_timeout
        config.database = DatabaseConfig(lock_timeout=float(lock_timeout))

    if "logging" in toml_data:
        logging_data = toml_data["logging"]
        log_file = logging_data.get("log_file")
        if log_file:
            log_file = str(Path(log_file).expanduser())
        level = str(logging_data.get("level", config.logging.level)).upper()
        if level not in VALID_LOG_LEVELS:
            logger.warning(f"Invalid logging.level {level!r}, using INFO")
            level = "INFO"
        config.logging = LoggingConfig(
            level=level,
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


def _apply_env_overrides(config: Config) -> None:
    library_paths = os.environ.get("MUSIC_INDEX_LIBRARY_PATHS")
    if library_paths:
        config.library.library_paths = [
            str(Path(p).expanduser())
            for p in library_paths.split(os.pathsep)
            if p.strip()
        ]

    covers_dir = os.environ.get("MUSIC_INDEX_COVERS_DIR")
    if covers_dir:
        config.covers.covers_dir = str(Path(covers_dir).expanduser())


def load_config() -> Config:
    """Load configuration from file or create default.

    Environment variables override TOML values:
    - MUSIC_INDEX_LIBRARY_PATHS (os.pathsep separated)
    - MUSIC_INDEX_COVERS_DIR
    """
    from dotenv import load_dotenv

    env_path = get_config_dir() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    config_path = get_config_path()

    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_default_config())
        logger.info(f"Created default configuration at: {config_path}")
        config = Config()
    else:
        try:
            with open(config_path, "rb") as f:
                toml_data = tomllib.load(f)
            config = parse_config(toml_data)
        except (tomllib.TOMLDecodeError, OSError) as e:
            logger.warning(f"Could not load config from {config_path}: {e}")
            logger.warning("Using default configuration.")
            config = Config()

    _apply_env_overrides(config)
    return config


def ensure_directories(config: Optional[Config] = None) -> None:
    """Ensure config, data and cover directories exist."""
    get_config_dir().mkdir(parents=True, exist_ok=True)
    get_data_dir().mkdir(parents=True, exist_ok=True)
    covers_dir = get_covers_dir(config)
    (covers_dir / "tracks").mkdir(parents=True, exist_ok=True)
    (covers_dir / "albums").mkdir(parents=True, exist_ok=True)
