"""Database utilities for :mod:`streamed_json` with lightweight import wrappers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .engine import get_database_path

if TYPE_CHECKING:  # pragma: no cover - import-time hints only
    from pathlib import Path

__all__ = ["get_database_path", "run_migrations", "run_seed"]


def run_migrations(database_path: "Path | None" = None) -> "Path":
    """Import and execute :func:`streamed_json.db.migrations.run_migrations` lazily."""
    from .migrations import run_migrations as _run_migrations

    return _run_migrations(database_path)


def run_seed(database_path: "Path | None" = None, *, count: int | None = None) -> "Path":
    """Import and execute :func:`streamed_json.db.seed.run_seed` lazily."""
    from .seed import DEFAULT_ARTICLE_COUNT
    from .seed import run_seed as _run_seed

    return _run_seed(database_path, count=DEFAULT_ARTICLE_COUNT if count is None else count)
