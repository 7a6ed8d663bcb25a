"""Sequence streamer replaying a skeleton while draining its lazy regions.

The streamer walks the skeleton segments produced by
:class:`~streamed_json.services.encoder.StructureEncoder` and, between two
segments, pulls the corresponding region item by item. Output is grouped in
flush batches: :meth:`SequenceStreamer.iter_batches` yields one string per
batch and returns whatever was written after the last flush, while
:meth:`SequenceStreamer.stream` drives a :class:`JsonWriter` with explicit
``flush()`` calls.

A batch is cut once a region has emitted a multiple of ``flush_threshold``
items *and* the next item exists, so a region's last item never triggers a
flush on its own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generator, Iterator, List, Optional, Protocol, Tuple

from loguru import logger

from streamed_json.services.encoder import EncodingOptions, LazyRegion, Marker, Skeleton, StructureEncoder
from streamed_json.utils.errors import StreamingError, TransportError

DEFAULT_FLUSH_SIZE = 500


class JsonWriter(Protocol):
    """Destination accepting ordered text writes and explicit flushes."""

    def write(self, text: str) -> object:
        ...

    def flush(self) -> object:
        ...


class Shape(str, Enum):
    """Rendering of a lazy region, decided once from its first key."""

    LIST = "list"
    MAP = "map"

    @classmethod
    def from_first_key(cls, key: object) -> "Shape":
        """Return :attr:`LIST` when ``key`` is the integer ``0``, :attr:`MAP` otherwise."""
        if isinstance(key, int) and not isinstance(key, bool) and key == 0:
            return cls.LIST
        return cls.MAP

    @property
    def opening(self) -> str:
        return "[" if self is Shape.LIST else "{"

    @property
    def closing(self) -> str:
        return "]" if self is Shape.LIST else "}"


@dataclass
class RegionStats:
    """Outcome of streaming a single region."""

    path: str
    shape: Shape = Shape.LIST
    items: int = 0


@dataclass
class StreamStats:
    """Counters gathered while streaming one document."""

    regions: List[RegionStats] = field(default_factory=list)
    flushes: int = 0

    @property
    def items(self) -> int:
        """Return the number of items written across all regions."""
        return sum(region.items for region in self.regions)


class SequenceStreamer:
    """Emit a skeleton with its lazy regions expanded, in bounded batches."""

    def __init__(
        self,
        flush_threshold: int = DEFAULT_FLUSH_SIZE,
        *,
        options: EncodingOptions | None = None,
        line_delimited: bool = False,
    ) -> None:
        if isinstance(flush_threshold, bool) or not isinstance(flush_threshold, int):
            raise ValueError("flush_threshold must be a positive integer")
        if flush_threshold <= 0:
            raise ValueError("flush_threshold must be a positive integer")
        self.flush_threshold = flush_threshold
        self.options = options or EncodingOptions()
        self.line_delimited = line_delimited
        # Line-delimited framing keeps each item on its own line; still valid JSON.
        self._separator = ",\n" if line_delimited else ","
        self._padding = "\n" if line_delimited else ""

    def iter_batches(
        self, skeleton: Skeleton, stats: StreamStats | None = None
    ) -> Generator[str, None, str]:
        """Yield one string per flush batch and return the unflushed remainder.

        Regions are drained sequentially in document order; a region is
        exhausted before the next one is pulled from. Closing the generator
        early closes the region currently being streamed.
        """
        stats = stats if stats is not None else StreamStats()
        segments = skeleton.segments()
        buffer: List[str] = []
        for segment, marker in zip(segments, skeleton.markers):
            buffer.append(segment)
            region_stats = RegionStats(path=marker.path)
            stats.regions.append(region_stats)
            for batch in self._drain(marker, buffer, region_stats):
                stats.flushes += 1
                yield batch
        buffer.append(segments[-1])
        return "".join(buffer)

    def stream(self, skeleton: Skeleton, writer: JsonWriter) -> StreamStats:
        """Write the document to ``writer``, flushing after every full batch.

        A :class:`StreamingError` raised by a region propagates once its source
        has been closed; whatever was written so far stays written. Transport
        failures (:class:`TransportError` or :class:`ConnectionError` from the
        writer) stop the stream silently.
        """
        stats = StreamStats()
        batches = self.iter_batches(skeleton, stats)
        try:
            while True:
                try:
                    batch = next(batches)
                except StopIteration as stop:
                    writer.write(stop.value)
                    break
                writer.write(batch)
                writer.flush()
        except (TransportError, ConnectionError) as exc:
            batches.close()
            logger.bind(items=stats.items, flushes=stats.flushes, reason=str(exc)).info(
                "stream.transport_closed"
            )
        return stats

    def _drain(
        self, marker: Marker, buffer: List[str], region_stats: RegionStats
    ) -> Iterator[str]:
        """Append one region to ``buffer``, yielding the buffer at flush points."""
        region: LazyRegion = marker.region
        items = region.items()
        try:
            item = self._pull(items, region_stats)
            if item is None:
                # Nothing observed: default to the list shape.
                buffer.append("[]")
                return
            shape = Shape.from_first_key(item[0])
            region_stats.shape = shape
            buffer.append(shape.opening + self._padding)
            while True:
                if region_stats.items:
                    buffer.append(self._separator)
                buffer.append(self._encode_item(item, shape, region_stats))
                region_stats.items += 1
                item = self._pull(items, region_stats)
                if item is None:
                    break
                if region_stats.items % self.flush_threshold == 0:
                    batch = "".join(buffer)
                    buffer.clear()
                    yield batch
            buffer.append(self._padding + shape.closing)
        finally:
            region.close()

    def _pull(
        self, items: Iterator[object], region_stats: RegionStats
    ) -> Optional[Tuple[object, object]]:
        """Return the next ``(key, value)`` item, or ``None`` once exhausted."""
        try:
            item = next(items)
        except StopIteration:
            return None
        except Exception as exc:
            raise StreamingError(
                f"Lazy region {region_stats.path} failed after {region_stats.items} items: {exc}",
                items_written=region_stats.items,
            ) from exc
        try:
            key, value = item  # type: ignore[misc]
        except (TypeError, ValueError) as exc:
            raise StreamingError(
                f"Lazy region {region_stats.path} must yield (key, value) pairs, got {item!r}",
                items_written=region_stats.items,
            ) from exc
        return key, value

    def _encode_item(
        self, item: Tuple[object, object], shape: Shape, region_stats: RegionStats
    ) -> str:
        key, value = item
        try:
            encoded = self.options.dumps(value)
            if shape is Shape.MAP:
                return f"{self.options.encode_key(key)}:{encoded}"
            return encoded
        except (TypeError, ValueError) as exc:
            raise StreamingError(
                f"Item {region_stats.items} of lazy region {region_stats.path} "
                f"cannot be encoded as JSON: {exc}",
                items_written=region_stats.items,
            ) from exc


def stream_json(
    template: object,
    writer: JsonWriter,
    *,
    flush_threshold: int = DEFAULT_FLUSH_SIZE,
    options: EncodingOptions | None = None,
    line_delimited: bool = False,
) -> StreamStats:
    """Encode ``template`` and stream it to ``writer`` in one call."""
    skeleton = StructureEncoder(options).encode(template)
    streamer = SequenceStreamer(flush_threshold, options=options, line_delimited=line_delimited)
    return streamer.stream(skeleton, writer)


__all__ = [
    "DEFAULT_FLUSH_SIZE",
    "JsonWriter",
    "RegionStats",
    "SequenceStreamer",
    "Shape",
    "StreamStats",
    "stream_json",
]
