"""Routes rendering the article collection as JSON documents."""

from __future__ import annotations

from typing import Annotated, cast

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import ORJSONResponse

from streamed_json.schemas.articles import ArticleCollection, ArticleIndex
from streamed_json.services.articles import ArticleRepository
from streamed_json.services.encoder import LazyRegion
from streamed_json.utils.json_response import StreamedJsonResponse
from streamed_json.utils.logging import set_request_metadata

router = APIRouter(tags=["articles"])

LimitQuery = Annotated[
    int | None,
    Query(ge=1, le=1_000_000, description="Maximum number of articles to include."),
]
FlushSizeQuery = Annotated[
    int | None,
    Query(ge=1, le=100_000, description="Override the configured number of items per flush."),
]


def get_repository(request: Request) -> ArticleRepository:
    """Retrieve the article repository from application state."""
    return cast(ArticleRepository, request.app.state.article_repository)


@router.get(
    "/articles.json",
    response_class=StreamedJsonResponse,
    responses={200: {"model": ArticleCollection}},
    summary="Stream every article as one JSON document",
    description=(
        "Sends the document skeleton immediately and streams the article list row by row, "
        "flushing the transport every `flush_size` items."
    ),
    response_description="JSON document streamed incrementally.",
)
def stream_articles(
    repository: Annotated[ArticleRepository, Depends(get_repository)],
    limit: LimitQuery = None,
    flush_size: FlushSizeQuery = None,
) -> StreamedJsonResponse:
    """Stream ``{"embedded": {"articles": [...]}, "total": n}``."""
    set_request_metadata(resource="articles", limit=limit)
    structure = {
        "embedded": {"articles": LazyRegion(repository.iter_articles(limit=limit))},
        "total": repository.count(limit=limit),
    }
    return StreamedJsonResponse(structure, flush_size=flush_size)


@router.get(
    "/articles/by-id.json",
    response_class=StreamedJsonResponse,
    responses={200: {"model": ArticleIndex}},
    summary="Stream every article keyed by identifier",
    description="Same as `/articles.json` but the articles render as an object keyed by id.",
    response_description="JSON document streamed incrementally.",
)
def stream_articles_by_id(
    repository: Annotated[ArticleRepository, Depends(get_repository)],
    limit: LimitQuery = None,
    flush_size: FlushSizeQuery = None,
) -> StreamedJsonResponse:
    """Stream ``{"embedded": {"articles": {"<id>": {...}}}, "total": n}``."""
    set_request_metadata(resource="articles_by_id", limit=limit)
    structure = {
        "embedded": {
            "articles": LazyRegion.from_pairs(repository.iter_articles_by_id(limit=limit)),
        },
        "total": repository.count(limit=limit),
    }
    return StreamedJsonResponse(structure, flush_size=flush_size)


@router.get(
    "/old-articles.json",
    response_model=ArticleCollection,
    summary="Return every article in a single buffered document",
    description=(
        "Baseline materializing the full collection in memory before encoding it. "
        "Kept to compare latency and memory against the streamed endpoints."
    ),
    response_description="Fully buffered JSON document.",
)
def list_articles(
    repository: Annotated[ArticleRepository, Depends(get_repository)],
    limit: LimitQuery = None,
) -> ORJSONResponse:
    """Return the same document as ``/articles.json`` without streaming."""
    set_request_metadata(resource="articles", limit=limit)
    articles = [article.model_dump() for article in repository.list_articles(limit=limit)]
    return ORJSONResponse({"embedded": {"articles": articles}, "total": len(articles)})


__all__ = ["router", "get_repository"]
