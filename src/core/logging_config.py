"""Logging setup for processes embedding the backend (the library itself only creates module loggers)."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = logging.INFO) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # SQLAlchemy has its own echo flag, keep its loggers quiet otherwise
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
