"""Read access to the article table exposed as lazy row sources."""

from __future__ import annotations

import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Iterator, Tuple

from streamed_json.schemas.articles import Article

_SELECT_ARTICLES = "SELECT id, title, description FROM articles ORDER BY id LIMIT ?"


class ArticleRepository:
    """Repository handing out single-pass article iterators.

    Iterators open their own connection on the first pull and release it once
    exhausted or closed, so a caller that stops early (client disconnect) does
    not leak cursors. Rows are fetched ``batch_size`` at a time to keep memory
    bounded regardless of the table size.
    """

    def __init__(self, database_path: Path, *, batch_size: int = 500) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.database_path = database_path
        self.batch_size = batch_size

    def _connect(self) -> sqlite3.Connection:
        # Successive pulls may run on different worker threads of the server pool.
        return sqlite3.connect(self.database_path, check_same_thread=False)

    def count(self, *, limit: int | None = None) -> int:
        """Return the number of articles, capped by ``limit`` when provided."""
        with closing(self._connect()) as connection:
            (total,) = connection.execute("SELECT COUNT(*) FROM articles").fetchone()
        return total if limit is None else min(total, limit)

    def iter_articles(self, *, limit: int | None = None) -> Iterator[Article]:
        """Yield articles ordered by identifier."""
        connection = self._connect()
        try:
            # SQLite treats a negative LIMIT as "no limit".
            cursor = connection.execute(_SELECT_ARTICLES, (-1 if limit is None else limit,))
            while True:
                rows = cursor.fetchmany(self.batch_size)
                if not rows:
                    break
                for article_id, title, description in rows:
                    yield Article(id=article_id, title=title, description=description)
        finally:
            connection.close()

    def iter_articles_by_id(self, *, limit: int | None = None) -> Iterator[Tuple[str, Article]]:
        """Yield ``(id, article)`` pairs; string keys always render as a JSON object."""
        articles = self.iter_articles(limit=limit)
        try:
            for article in articles:
                yield str(article.id), article
        finally:
            articles.close()

    def list_articles(self, *, limit: int | None = None) -> list[Article]:
        """Return all articles materialized in memory."""
        return list(self.iter_articles(limit=limit))


__all__ = ["ArticleRepository"]
