from __future__ import annotations

import os
import platform
from pathlib import Path

APP_NAME = "random-mac"

DEFAULT_SOURCE_URL = "https://maclookup.app/downloads/json-database/get-db"
DEFAULT_SOURCE_NAME = "maclookupapp"

DATASOURCE_FILE = "datasource.json"
DATABASE_FILE = "database.json"


def app_dir() -> Path:
    """Get the platform-appropriate data directory."""
    if platform.system() == "Windows":
        base = os.environ.get("APPDATA", os.path.expanduser("~"))
        return Path(base) / APP_NAME
    elif platform.system() == "Darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME
    base = os.environ.get("XDG_DATA_HOME") or os.path.expanduser("~/.local/share")
    return Path(base) / APP_NAME


def default_datasource_path() -> Path:
    return app_dir() / DATASOURCE_FILE


def default_database_path() -> Path:
    return app_dir() / DATABASE_FILE
