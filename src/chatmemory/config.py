"""Environment-driven configuration for the ChatMemory server."""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_DB_DIR = Path.home() / ".chatmemory"
DEFAULT_DB_PATH = DEFAULT_DB_DIR / "memory.db"

DEFAULT_MODEL = "claude-sonnet-4-5"


def db_path() -> Path:
    """Database location: CHATMEMORY_DB_PATH, then MEMORY_DB_PATH, then the default."""
    value = os.environ.get("CHATMEMORY_DB_PATH") or os.environ.get("MEMORY_DB_PATH")
    return Path(value).expanduser() if value else DEFAULT_DB_PATH


def model() -> str:
    return os.environ.get("CHATMEMORY_MODEL", DEFAULT_MODEL)


def api_key_configured() -> bool:
    return bool(os.environ.get("ANTHROPIC_API_KEY"))


def debug_enabled() -> bool:
    return os.environ.get("DEBUG", "").lower() in ("1", "true")
