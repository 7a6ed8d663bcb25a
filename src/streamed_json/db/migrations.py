"""Idempotent migrations for the SQLite articles database."""

from __future__ import annotations

import sqlite3
from contextlib import closing
from pathlib import Path

from streamed_json.db.engine import get_database_path

# ``IF NOT EXISTS`` guards keep repeated executions harmless, both on application
# startup and in CI pipelines reusing cached workspaces.
_SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS articles (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        description TEXT NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    );
    """,
)


def _ensure_parent_directory(path: Path) -> None:
    """Create the parent directory for the SQLite database if missing."""
    path.parent.mkdir(parents=True, exist_ok=True)


def run_migrations(database_path: Path | None = None) -> Path:
    """Apply idempotent schema migrations and return the database path.

    Parameters
    ----------
    database_path:
        Optional override when tests want to operate on a temporary database. By
        default the path is resolved from :func:`streamed_json.db.engine.get_database_path`.

    """
    path = database_path or get_database_path()
    _ensure_parent_directory(path)
    with closing(sqlite3.connect(path)) as connection:
        cursor = connection.cursor()
        for statement in _SCHEMA_STATEMENTS:
            cursor.executescript(statement)
        connection.commit()
    return path


if __name__ == "__main__":
    target = run_migrations()
    print(f"Migrations applied to {target}")
