"""Test fixtures for streamed_json."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Iterator, List

import pytest
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

_DATA_DIR = Path(tempfile.mkdtemp(prefix="streamed-json-tests-"))

os.environ.setdefault("DATABASE_URL", f"sqlite:///{_DATA_DIR / 'articles.sqlite3'}")
os.environ.setdefault("SEED_ARTICLE_COUNT", "25")
os.environ.setdefault("FLUSH_SIZE", "10")

from streamed_json.app import create_app  # noqa: E402
from streamed_json.db.seed import run_seed  # noqa: E402
from streamed_json.services.articles import ArticleRepository  # noqa: E402
from streamed_json.services.metrics import metrics  # noqa: E402

ARTICLE_COUNT = 25


class RecordingWriter:
    """In-memory transport recording writes and flushes in call order."""

    def __init__(self) -> None:
        self.events: List[tuple[str, str]] = []

    def write(self, text: str) -> None:
        self.events.append(("write", text))

    def flush(self) -> None:
        self.events.append(("flush", ""))

    @property
    def text(self) -> str:
        return "".join(payload for kind, payload in self.events if kind == "write")

    @property
    def flush_count(self) -> int:
        return sum(1 for kind, _ in self.events if kind == "flush")


class CountingSource:
    """Iterable recording every pull so tests can assert single-pass behaviour."""

    def __init__(self, values, log: List[str] | None = None, name: str = "source") -> None:  # type: ignore[no-untyped-def]
        self._values = list(values)
        self.pulls = 0
        self.closed = False
        self.log = log if log is not None else []
        self.name = name

    def __iter__(self) -> "CountingSource":
        return self

    def __next__(self) -> object:
        if self.pulls >= len(self._values):
            raise StopIteration
        value = self._values[self.pulls]
        self.pulls += 1
        self.log.append(f"{self.name}:{self.pulls}")
        return value

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def anyio_backend() -> str:
    """Run async tests on asyncio only."""
    return "asyncio"


@pytest.fixture()
def writer() -> RecordingWriter:
    return RecordingWriter()


@pytest.fixture()
def make_source():  # type: ignore[no-untyped-def]
    """Return the :class:`CountingSource` factory."""
    return CountingSource


@pytest.fixture()
def article_db(tmp_path: Path) -> Path:
    """Return a freshly seeded SQLite database holding ``ARTICLE_COUNT`` articles."""
    return run_seed(tmp_path / "articles.sqlite3", count=ARTICLE_COUNT)


@pytest.fixture()
def repository(article_db: Path) -> ArticleRepository:
    return ArticleRepository(article_db, batch_size=7)


@pytest.fixture()
def test_app(repository: ArticleRepository):
    metrics.reset()
    app = create_app()
    app.state.article_repository = repository
    return app


@pytest.fixture()
def client(test_app) -> Iterator[TestClient]:
    with TestClient(test_app) as client:
        yield client
