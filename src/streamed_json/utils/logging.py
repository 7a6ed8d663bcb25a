"""Structured logging utilities leveraging loguru.

A streamed response keeps producing output long after its route handler and
the HTTP middleware have returned. Every record therefore carries a
:class:`RequestLogContext`: the middleware opens one per request, routes add
the resource they render, and :class:`~streamed_json.utils.json_response.StreamedJsonResponse`
keeps a snapshot of it so the ``stream.*`` records emitted from the worker
thread still point at the originating request.
"""

from __future__ import annotations

import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Iterator

from fastapi import Request, Response
from loguru import logger

from streamed_json.config import get_settings

if TYPE_CHECKING:  # pragma: no cover - import-time hints only
    from loguru import Logger

_UNKNOWN_TRACE = "unknown"


@dataclass
class RequestLogContext:
    """State carried across the lifecycle of a request for logging.

    Attributes
    ----------
    trace_id:
        Identifier echoed in the ``X-Trace-Id`` header and in error documents.
    resource:
        Name of the collection being rendered (e.g. ``articles``). Populated by
        routes once the request parameters are validated.
    limit:
        Optional upper bound on the number of streamed items requested.
    stage:
        Name of the stage currently executing (``encode``, ``stream``).
    stage_started_at:
        ``time.perf_counter`` value recorded when the active stage began.

    """

    trace_id: str = _UNKNOWN_TRACE
    resource: str | None = None
    limit: int | None = None
    stage: str | None = None
    stage_started_at: float | None = None

    def fields(self) -> Dict[str, object]:
        """Return the keyword arguments bound onto every record."""
        return {
            "trace_id": self.trace_id,
            "request_id": self.trace_id,
            "resource": self.resource,
            "limit": self.limit,
            "stage": self.stage,
        }

    def snapshot(self) -> "RequestLogContext":
        """Return a detached copy, safe to read after the request context is reset."""
        return replace(self)


_REQUEST_CONTEXT: ContextVar[RequestLogContext | None] = ContextVar("request_context", default=None)


def configure_logging() -> None:
    """Configure loguru to output JSON logs on stdout."""
    settings = get_settings()
    logger.remove()
    logger.add(sys.stdout, level=settings.log_level.upper(), serialize=True)


def get_request_context() -> RequestLogContext:
    """Return the current structured logging context, creating it if needed."""
    context = _REQUEST_CONTEXT.get()
    if context is None:
        context = RequestLogContext()
        _REQUEST_CONTEXT.set(context)
    return context


def get_trace_id() -> str:
    """Return the current request trace identifier."""
    context = _REQUEST_CONTEXT.get()
    return context.trace_id if context is not None else _UNKNOWN_TRACE


def set_request_metadata(*, resource: str | None = None, limit: int | None = None) -> None:
    """Enrich the structured context with resource and limit information."""
    context = get_request_context()
    if resource is not None:
        context.resource = resource
    if limit is not None:
        context.limit = limit


def bind_context(context: RequestLogContext | None = None, **extra: object) -> "Logger":
    """Return a logger bound to ``context`` (the current one by default) and ``extra``."""
    fields = (context or get_request_context()).fields()
    fields.update(extra)
    return logger.bind(**fields)


@contextmanager
def log_stage(stage: str) -> Iterator[None]:
    """Log ``stage.completed`` or ``stage.failed`` with the latency of the block."""
    context = get_request_context()
    previous = (context.stage, context.stage_started_at)
    context.stage = stage
    context.stage_started_at = started = time.perf_counter()
    try:
        yield
    except Exception:
        bind_context(context, latency_ms=(time.perf_counter() - started) * 1000).exception(
            "stage.failed"
        )
        raise
    else:
        bind_context(context, latency_ms=(time.perf_counter() - started) * 1000).info(
            "stage.completed"
        )
    finally:
        context.stage, context.stage_started_at = previous


async def logging_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """FastAPI middleware opening a logging context with a trace identifier."""
    context = RequestLogContext(trace_id=request.headers.get("x-trace-id") or str(uuid.uuid4()))
    token = _REQUEST_CONTEXT.set(context)
    start = time.perf_counter()
    response: Response | None = None
    try:
        response = await call_next(request)
    finally:
        # For streamed bodies this is the time to first byte; the body logs
        # ``stream.completed`` on its own once drained.
        duration_ms = (time.perf_counter() - start) * 1000
        # Headers are never bound, so ``Authorization`` cannot reach the sink.
        bind_context(
            context,
            path=request.url.path,
            method=request.method,
            status_code=response.status_code if response is not None else 500,
            duration_ms=duration_ms,
            latency_ms=duration_ms,
            stage=context.stage or "request",
        ).info("request.completed")
        _REQUEST_CONTEXT.reset(token)
    if response is None:
        raise RuntimeError("Downstream middleware returned no response object")
    response.headers["X-Trace-Id"] = context.trace_id
    return response


__all__ = [
    "RequestLogContext",
    "bind_context",
    "configure_logging",
    "get_request_context",
    "get_trace_id",
    "log_stage",
    "logging_middleware",
    "set_request_metadata",
]
