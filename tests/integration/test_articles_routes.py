"""Integration tests for the article listing endpoints."""

from __future__ import annotations

import json
import sqlite3

from fastapi.testclient import TestClient


def test_streamed_articles_match_buffered_baseline(client: TestClient) -> None:
    """Both endpoints describe the same document; only delivery differs."""
    streamed = client.get("/articles.json")
    buffered = client.get("/old-articles.json")

    assert streamed.status_code == 200
    assert buffered.status_code == 200
    assert streamed.json() == buffered.json()

    payload = streamed.json()
    assert payload["total"] == 25
    assert len(payload["embedded"]["articles"]) == 25
    assert payload["embedded"]["articles"][0] == {
        "id": 1,
        "title": "Title 0",
        "description": "Description 0\nMore description text ....",
    }
    # The streamed body is compact JSON with the template's key order.
    assert streamed.text == json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    assert streamed.text.startswith('{"embedded":{"articles":[{"id":1,')
    assert streamed.text.endswith('}],"total":25}')


def test_streamed_articles_expose_streaming_headers(client: TestClient) -> None:
    with client.stream("GET", "/articles.json", headers={"X-Trace-Id": "trace-abc"}) as response:
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["x-accel-buffering"] == "no"
        assert response.headers["x-trace-id"] == "trace-abc"
        body = "".join(response.iter_text())

    assert json.loads(body)["total"] == 25


def test_limit_caps_the_document(client: TestClient) -> None:
    payload = client.get("/articles.json", params={"limit": 3, "flush_size": 1}).json()
    assert payload["total"] == 3
    assert [article["id"] for article in payload["embedded"]["articles"]] == [1, 2, 3]


def test_articles_by_id_render_as_object(client: TestClient) -> None:
    """String keys switch the lazy region to the object shape."""
    response = client.get("/articles/by-id.json", params={"limit": 2})

    assert response.status_code == 200
    assert response.text.startswith('{"embedded":{"articles":{"1":{"id":1,')
    payload = response.json()
    assert payload["total"] == 2
    assert list(payload["embedded"]["articles"]) == ["1", "2"]
    assert payload["embedded"]["articles"]["2"]["title"] == "Title 1"


def test_invalid_flush_size_is_rejected(client: TestClient) -> None:
    response = client.get("/articles.json", params={"flush_size": 0})
    assert response.status_code == 422
    payload = response.json()
    assert payload["error"]["code"] == "validation_error"


def test_empty_table_streams_empty_list(client: TestClient, repository) -> None:  # type: ignore[no-untyped-def]
    """An empty source is rendered as an empty JSON array."""
    with sqlite3.connect(repository.database_path) as connection:
        connection.execute("DELETE FROM articles")

    response = client.get("/articles.json")
    assert response.text == '{"embedded":{"articles":[]},"total":0}'


def test_openapi_documents_article_routes(client: TestClient) -> None:
    paths = client.get("/openapi.json").json()["paths"]
    assert {"/articles.json", "/articles/by-id.json", "/old-articles.json"} <= set(paths)
