"""Locations of the session database and log file."""

from __future__ import annotations

import os
from pathlib import Path

from platformdirs import PlatformDirs

APP_NAME = "UsageTracker"
APP_AUTHOR = "UsageTracker"

DATA_DIR_ENV = "USAGE_TRACKER_HOME"
DB_PATH_ENV = "USAGE_TRACKER_DB"


def get_data_dir() -> Path:
    """Return the base directory for persistent data, creating it if needed.

    ``$USAGE_TRACKER_HOME`` takes precedence over the platform data directory.
    """
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        path = Path(override).expanduser()
    else:
        path = PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=True).user_data_path
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_db_path() -> Path:
    override = os.environ.get(DB_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return get_data_dir() / "sessions.sqlite3"


def get_log_path() -> Path:
    return get_data_dir() / "tracker.log"
