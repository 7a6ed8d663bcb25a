"""Streamed JSON HTTP response built on the structure encoder and sequence streamer."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Iterator, Mapping

from starlette.background import BackgroundTask
from starlette.responses import StreamingResponse

from streamed_json.config import get_settings
from streamed_json.services.encoder import EncodingOptions, Skeleton, StructureEncoder
from streamed_json.services.metrics import metrics
from streamed_json.services.streamer import SequenceStreamer, StreamStats
from streamed_json.utils.errors import EncodingError, StreamingError
from streamed_json.utils.logging import bind_context, get_request_context, log_stage

if TYPE_CHECKING:  # pragma: no cover - import-time hints only
    from loguru import Logger

# Keeps reverse proxies (nginx) from holding flush batches back.
_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


class StreamedJsonResponse(StreamingResponse):
    """HTTP response rendering a template with lazy regions incrementally.

    The skeleton is encoded in the constructor so that an
    :class:`~streamed_json.utils.errors.EncodingError` surfaces while the route
    can still answer with a regular error document. The body then sends one
    chunk per flush batch; Starlette iterates it in the worker thread pool so
    blocking sources (database cursors) do not stall the event loop.

    A source failing mid-stream cannot be reported to the client any more: the
    body simply ends, leaving truncated JSON, and the failure is logged.
    """

    media_type = "application/json"

    def __init__(
        self,
        structure: object,
        status_code: int = 200,
        headers: Mapping[str, str] | None = None,
        *,
        flush_size: int | None = None,
        options: EncodingOptions | None = None,
        line_delimited: bool | None = None,
        background: BackgroundTask | None = None,
    ) -> None:
        settings = get_settings()
        self.options = options or settings.encoding_options
        self.flush_size = settings.flush_size if flush_size is None else flush_size
        delimited = settings.line_delimited if line_delimited is None else line_delimited
        self.skeleton = self._encode(structure)
        self.streamer = SequenceStreamer(
            self.flush_size, options=self.options, line_delimited=delimited
        )
        self.stats = StreamStats()
        self._log_context = get_request_context().snapshot()
        merged_headers = dict(_STREAM_HEADERS)
        if headers:
            merged_headers.update(headers)
        super().__init__(
            self._iter_body(),
            status_code=status_code,
            headers=merged_headers,
            media_type=self.media_type,
            background=background,
        )

    def _encode(self, structure: object) -> Skeleton:
        started = time.perf_counter()
        try:
            with log_stage("encode"):
                return StructureEncoder(self.options).encode(structure)
        except EncodingError:
            metrics.record_failure("encoding")
            raise
        finally:
            metrics.observe_stage_duration("encode", time.perf_counter() - started)

    def _iter_body(self) -> Iterator[str]:
        started = time.perf_counter()
        batches = self.streamer.iter_batches(self.skeleton, self.stats)
        try:
            tail = yield from batches
            if tail:
                yield tail
        except StreamingError as exc:
            metrics.record_failure("source")
            self._log(started).bind(error=exc.message).exception("stream.failed")
        except GeneratorExit:
            # The consumer stopped iterating: the client went away.
            metrics.record_failure("transport")
            self._log(started).info("stream.transport_closed")
            raise
        else:
            self._log(started).info("stream.completed")
        finally:
            batches.close()
            metrics.observe_stage_duration("stream", time.perf_counter() - started)
            metrics.record_stream(self.stats)

    def _log(self, started: float) -> "Logger":
        return bind_context(
            self._log_context,
            stage="stream",
            regions=len(self.stats.regions),
            items=self.stats.items,
            flushes=self.stats.flushes,
            flush_size=self.flush_size,
            latency_ms=(time.perf_counter() - started) * 1000,
        )


__all__ = ["StreamedJsonResponse"]
