"""Seed helpers inserting deterministic article fixtures."""

from __future__ import annotations

import sqlite3
from contextlib import closing
from itertools import islice
from pathlib import Path
from typing import Iterator, Tuple

from loguru import logger

from streamed_json.db.migrations import run_migrations

DEFAULT_ARTICLE_COUNT = 100_000
_INSERT_BATCH_SIZE = 100


def fixture_rows(count: int) -> Iterator[Tuple[str, str]]:
    """Yield ``(title, description)`` pairs for ``count`` fixture articles."""
    for index in range(count):
        yield f"Title {index}", f"Description {index}\nMore description text ...."


def _is_empty(connection: sqlite3.Connection) -> bool:
    (existing,) = connection.execute("SELECT COUNT(*) FROM articles").fetchone()
    return existing == 0


def _seed_articles(connection: sqlite3.Connection, count: int) -> int:
    """Insert fixtures in small committed batches to bound transaction size."""

    rows = fixture_rows(count)
    inserted = 0
    while True:
        batch = list(islice(rows, _INSERT_BATCH_SIZE))
        if not batch:
            break
        connection.executemany(
            "INSERT INTO articles(title, description) VALUES (?, ?)",
            batch,
        )
        connection.commit()
        inserted += len(batch)
    return inserted


def run_seed(database_path: Path | None = None, *, count: int = DEFAULT_ARTICLE_COUNT) -> Path:
    """Populate an empty database with ``count`` fixture articles and return the path.

    Seeding only happens when the ``articles`` table holds no rows, which keeps
    repeated runs (every application startup) idempotent.
    """

    if count < 0:
        raise ValueError("count must not be negative")
    path = run_migrations(database_path)
    with closing(sqlite3.connect(path)) as connection:
        if _is_empty(connection):
            inserted = _seed_articles(connection, count)
            logger.bind(database=str(path), articles=inserted).info("db.seeded")
    return path


if __name__ == "__main__":
    target = run_seed()
    print(f"Seed data inserted into {target}")
