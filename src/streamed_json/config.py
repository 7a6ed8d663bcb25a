"""Application configuration powered by Pydantic settings."""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:  # pragma: no cover - import-time hints only
    from streamed_json.services.encoder import EncodingOptions


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    host: str = Field("127.0.0.1", alias="HOST")
    port: int = Field(8000, alias="PORT", ge=1, le=65535)
    flush_size: int = Field(
        500,
        alias="FLUSH_SIZE",
        ge=1,
        le=100_000,
        description="Number of streamed items written between two transport flushes.",
    )
    json_escape_slashes: bool = Field(
        False,
        alias="JSON_ESCAPE_SLASHES",
        description="Emit '\\/' instead of '/' inside JSON strings.",
    )
    json_escape_unicode: bool = Field(
        False,
        alias="JSON_ESCAPE_UNICODE",
        description="Emit \\uXXXX escapes for non-ASCII characters.",
    )
    json_escape_html: bool = Field(
        False,
        alias="JSON_ESCAPE_HTML",
        description="Hex-escape '<', '>', '&' and apostrophes inside JSON strings.",
    )
    line_delimited: bool = Field(
        False,
        alias="LINE_DELIMITED",
        description="Place every streamed item on its own line for line-oriented clients.",
    )
    seed_on_startup: bool = Field(True, alias="SEED_ON_STARTUP")
    seed_article_count: int = Field(
        100_000,
        alias="SEED_ARTICLE_COUNT",
        ge=0,
        description="Number of fixture articles inserted when the database is empty.",
    )
    fetch_batch_size: int = Field(
        500,
        alias="FETCH_BATCH_SIZE",
        ge=1,
        le=10_000,
        description="Rows fetched from the database cursor per round trip.",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        validate_by_name=True,
    )

    @property
    def encoding_options(self) -> "EncodingOptions":
        """Return the JSON encoding flags configured for responses."""
        # Imported lazily: the encoder depends on the error helpers which read
        # settings through the logging module.
        from streamed_json.services.encoder import EncodingOptions

        return EncodingOptions(
            escape_slashes=self.json_escape_slashes,
            escape_unicode=self.json_escape_unicode,
            escape_html=self.json_escape_html,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()  # type: ignore[call-arg]


settings = get_settings()

__all__ = ["Settings", "get_settings", "settings"]
