"""FastAPI application factory for streamed_json."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse

from streamed_json import __version__
from streamed_json.config import get_settings
from streamed_json.db import get_database_path, run_migrations, run_seed
from streamed_json.routes import articles, health, metrics
from streamed_json.services.articles import ArticleRepository
from streamed_json.utils.errors import (
    ApiError,
    api_error_handler,
    http_exception_handler,
    request_validation_exception_handler,
    unexpected_exception_handler,
)
from streamed_json.utils.logging import configure_logging, logging_middleware

# Metadata used to document the public FastAPI surface in the generated OpenAPI
# specification.
OPENAPI_TAGS: list[dict[str, str]] = [
    {
        "name": "health",
        "description": "Monitoring endpoints exposing uptime and build metadata.",
    },
    {
        "name": "articles",
        "description": "Article listings streamed incrementally or buffered for comparison.",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Prepare the article database before serving requests."""
    settings = get_settings()
    repository: ArticleRepository = app.state.article_repository
    if settings.seed_on_startup:
        await asyncio.to_thread(
            run_seed, repository.database_path, count=settings.seed_article_count
        )
    else:
        await asyncio.to_thread(run_migrations, repository.database_path)
    yield


def create_app() -> FastAPI:
    """Instantiate FastAPI application with configured routes and services."""
    configure_logging()
    settings = get_settings()
    # ``ORJSONResponse`` keeps the buffered endpoints fast; streamed routes
    # return their own response class.
    app = FastAPI(
        title="streamed-json",
        description=(
            "Serves large collections as single JSON documents streamed incrementally, "
            "keeping memory bounded while clients receive bytes early."
        ),
        version=__version__,
        default_response_class=ORJSONResponse,
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )
    app.middleware("http")(logging_middleware)

    app.state.article_repository = ArticleRepository(
        get_database_path(), batch_size=settings.fetch_batch_size
    )

    app.include_router(health.router)
    app.include_router(metrics.router)
    app.include_router(articles.router)

    app.add_exception_handler(Exception, unexpected_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

    return app


app = create_app()
