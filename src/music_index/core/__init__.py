"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML)
- Database operations (SQLite)
- Logging setup (Loguru)
"""

from .config import (
    Config,
    load_config,
    parse_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    get_covers_dir,
    create_default_config,
    ensure_directories,
)

from .database import (
    DatabaseLockError,
    DatabaseUnavailableError,
    get_database_path,
    get_db_connection,
    init_database,
    ensure_database,
    migrate_database,
    set_lock_timeout,
)

from .output import setup_loguru, setup_logging_from_config

__all__ = [
    # Config
    "Config",
    "load_config",
    "parse_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "get_covers_dir",
    "create_default_config",
    "ensure_directories",
    # Database
    "DatabaseLockError",
    "DatabaseUnavailableError",
    "get_database_path",
    "get_db_connection",
    "init_database",
    "ensure_database",
    "migrate_database",
    "set_lock_timeout",
    # Logging
    "setup_loguru",
    "setup_logging_from_config",
]
