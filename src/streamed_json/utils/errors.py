"""Error handling utilities providing uniform JSON responses.

Besides the HTTP facing :class:`ApiError` family the module defines the
failures raised while rendering streamed documents:

* :class:`EncodingError` is raised before a single byte is sent, so it is an
  :class:`ApiError` and renders as a regular error document.
* :class:`StreamingError` and :class:`TransportError` happen once the response
  is committed; they are reported through logs and metrics only.
"""

from __future__ import annotations

from typing import Optional, cast

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from streamed_json.types import JSONDict, JSONValue
from streamed_json.utils.logging import get_trace_id


def error_payload(code: str, message: object, details: JSONValue | None = None) -> JSONDict:
    """Build the ``{"error", "details", "trace_id"}`` document shared by every handler."""
    return {
        "error": {"code": code, "message": cast(JSONValue, message)},
        "details": details if details is not None else {},
        "trace_id": get_trace_id(),
    }


class ApiError(Exception):
    """Base application exception carrying a machine-friendly code."""

    status_code = 500
    code = "internal_error"

    def __init__(
        self,
        message: str,
        *,
        details: Optional[JSONValue] = None,
        code: str | None = None,
    ) -> None:
        """Capture the human message, optional structured details and override code."""
        super().__init__(message)
        self.message = message
        # ``details`` defaults to an empty dict so callers can attach structured
        # metadata without falling back to ``Any``.
        self.details: JSONValue = details if details is not None else {}
        self.code = code or self.__class__.code

    def to_payload(self) -> JSONDict:
        """Return the standard error document used across HTTP handlers."""
        return error_payload(self.code, self.message, self.details)


class EncodingError(ApiError):
    """A template node cannot be represented as JSON.

    Raised while encoding the document skeleton, before anything is written to
    the transport, so callers remain free to answer with another response.
    """

    status_code = 500
    code = "encoding_error"


class StreamingError(Exception):
    """A lazy region failed after part of the document was already written.

    The source either raised while being pulled or produced an item that is
    not JSON encodable. The response is committed at this point and ends up
    truncated.
    """

    def __init__(self, message: str, *, items_written: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.items_written = items_written


class TransportError(Exception):
    """The destination refused a write or flush (typically a client disconnect)."""


def api_error_handler(_: Request, exc: Exception) -> JSONResponse:
    """Return a standardized JSON response for custom exceptions."""
    assert isinstance(exc, ApiError)
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def http_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    """Translate FastAPI HTTPException into project JSON schema."""
    assert isinstance(exc, HTTPException)
    return JSONResponse(
        status_code=exc.status_code, content=error_payload("http_error", exc.detail)
    )


def unexpected_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected exceptions."""
    return JSONResponse(status_code=500, content=error_payload("internal_error", str(exc)))


def request_validation_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    """Return a consistent payload for FastAPI validation errors."""
    assert isinstance(exc, RequestValidationError)
    raw_errors = exc.errors()

    def _serialize(value: object) -> object:
        """Convert non-serializable values such as exceptions to strings."""
        if isinstance(value, Exception):
            return str(value)
        if isinstance(value, dict):
            return {str(k): _serialize(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [_serialize(item) for item in value]
        return value

    formatted_errors = [
        {str(key): _serialize(value) for key, value in error.items()} for error in raw_errors
    ]
    details: list[object] = [cast(object, error) for error in formatted_errors]
    return JSONResponse(
        status_code=422,
        content=error_payload("validation_error", "Request validation failed", details),
    )


__all__ = [
    "ApiError",
    "EncodingError",
    "StreamingError",
    "TransportError",
    "api_error_handler",
    "http_exception_handler",
    "unexpected_exception_handler",
    "request_validation_exception_handler",
    "error_payload",
]
