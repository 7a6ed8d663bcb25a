"""Helpers for resolving the database location used by migrations and seeds."""

from __future__ import annotations

import os
from pathlib import Path

_DEFAULT_SQLITE_PATH = Path("data") / "articles.sqlite3"


def get_database_path() -> Path:
    """Return the resolved database file path.

    Articles live in a local SQLite file. When the ``DATABASE_URL`` environment
    variable is provided with a ``sqlite:///`` URI we honour the path. Otherwise
    we fall back to ``data/articles.sqlite3``.
    """

    raw_url = os.environ.get("DATABASE_URL")
    if raw_url and raw_url.startswith("sqlite://"):
        _, _, sqlite_path = raw_url.partition("sqlite:///")
        if sqlite_path:
            return Path(sqlite_path).expanduser().resolve()
    return (_DEFAULT_SQLITE_PATH).expanduser().resolve()
