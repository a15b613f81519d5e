"""Runtime configuration.

Everything can be overridden through environment variables, defaults are
suitable for local play against a SQLite file.
"""

import os
from dataclasses import dataclass

DEFAULT_DATABASE_URL = "sqlite:///trapbox.db"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_ROOM_CODE_ATTEMPTS = 10

_TRUTHY = {"1", "true", "yes", "on"}


def get_database_url() -> str:
    """Get configured database URL from environment."""
    return os.environ.get("TRAPBOX_DATABASE_URL", DEFAULT_DATABASE_URL)


def get_sql_echo() -> bool:
    """Should SQLAlchemy echo its statements?"""
    return os.environ.get("TRAPBOX_SQL_ECHO", "false").strip().lower() in _TRUTHY


def get_log_level() -> str:
    return os.environ.get("TRAPBOX_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()


def get_room_code_attempts() -> int:
    """How many times to draw a new room code when the previous one is taken."""
    raw = os.environ.get("TRAPBOX_ROOM_CODE_ATTEMPTS")
    if raw is None:
        return DEFAULT_ROOM_CODE_ATTEMPTS
    try:
        attempts = int(raw)
    except ValueError:
        return DEFAULT_ROOM_CODE_ATTEMPTS
    return max(attempts, 1)


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    sql_echo: bool = False
    log_level: str = DEFAULT_LOG_LEVEL
    room_code_attempts: int = DEFAULT_ROOM_CODE_ATTEMPTS


def load_settings() -> Settings:
    """Collect all settings from the environment."""
    return Settings(
        database_url=get_database_url(),
        sql_echo=get_sql_echo(),
        log_level=get_log_level(),
        room_code_attempts=get_room_code_attempts(),
    )
