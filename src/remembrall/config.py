"""Configuration and DB path resolution for remembrall."""

import os
import sys
from pathlib import Path

from .errors import StoreError


APP_DIR_NAME = "rmbrl"
DB_FILE_NAME = "rmbrl.db"

DB_ENV_VAR = "REMEMBRALL_DB"
LOG_LEVEL_ENV_VAR = "REMEMBRALL_LOG_LEVEL"


def get_data_dir() -> Path:
    """Get the per-user application data directory.

    - Windows: %APPDATA%\\rmbrl
    - macOS:   ~/Library/Application Support/rmbrl
    - other:   $XDG_DATA_HOME/rmbrl or ~/.local/share/rmbrl

    Raises:
        StoreError: on Windows when APPDATA is not set
    """
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if not appdata:
            raise StoreError("locate data directory", "APPDATA environment variable not found")
        return Path(appdata) / APP_DIR_NAME

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME

    xdg_data = os.environ.get("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data) / APP_DIR_NAME
    return Path.home() / ".local" / "share" / APP_DIR_NAME


def get_db_path(override: str | None = None) -> Path:
    """Resolve database path.

    Priority:
    1. explicit override (tests, embedding)
    2. REMEMBRALL_DB env var
    3. per-user data directory

    Args:
        override: Explicit database file path

    Returns:
        Path to the SQLite database file
    """
    if override:
        return Path(override).expanduser().resolve()

    env_path = os.environ.get(DB_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser().resolve()

    return get_data_dir() / DB_FILE_NAME


def ensure_db_dir(db_path: Path) -> None:
    """Ensure the parent directory for the database exists."""
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise StoreError(f"create path {db_path.parent}", exc.strerror or str(exc)) from exc


def get_log_level() -> str:
    """Logging level name from REMEMBRALL_LOG_LEVEL (default WARNING)."""
    return os.environ.get(LOG_LEVEL_ENV_VAR, "WARNING").upper()
