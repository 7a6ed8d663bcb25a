"""Schemas describing article payloads."""

from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field


class Article(BaseModel):
    """Single article row as exposed by the API."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: int = Field(..., ge=1, description="Database identifier of the article.")
    title: str = Field(..., description="Headline of the article.")
    description: str = Field(..., description="Free-form body text, may span several lines.")


class EmbeddedArticles(BaseModel):
    """Container grouping the listed articles."""

    model_config = ConfigDict(extra="forbid")

    articles: List[Article]


class EmbeddedArticlesById(BaseModel):
    """Container grouping the listed articles keyed by their identifier."""

    model_config = ConfigDict(extra="forbid")

    articles: Dict[str, Article]


class ArticleCollection(BaseModel):
    """Document returned by the article listing endpoints."""

    model_config = ConfigDict(extra="forbid")

    embedded: EmbeddedArticles
    total: int = Field(..., ge=0, description="Number of articles contained in the document.")


class ArticleIndex(BaseModel):
    """Document returned by the keyed article endpoint."""

    model_config = ConfigDict(extra="forbid")

    embedded: EmbeddedArticlesById
    total: int = Field(..., ge=0, description="Number of articles contained in the document.")


__all__ = [
    "Article",
    "ArticleCollection",
    "ArticleIndex",
    "EmbeddedArticles",
    "EmbeddedArticlesById",
]
