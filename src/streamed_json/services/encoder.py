"""Structure encoder turning document templates into JSON skeletons.

A template is a tree of mappings, lists/tuples, scalars and
:class:`LazyRegion` leaves. :meth:`StructureEncoder.encode` serializes
everything except the regions right away and records, for every region, the
exact character span of the placeholder token standing in for it. The
:mod:`streamed_json.services.streamer` module later replays the skeleton
segment by segment while draining the regions in document order.

Splitting relies on the recorded spans rather than on searching the text, so a
user string that happens to equal a token is emitted untouched. Tokens are
still generated from :func:`secrets.token_hex` so that the skeleton text is
unambiguous on its own.
"""

from __future__ import annotations

import dataclasses
import json
import math
import secrets
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, List, Set, Tuple

from pydantic import BaseModel

from streamed_json.types import JSONKey
from streamed_json.utils.errors import EncodingError, StreamingError

_TOKEN_PREFIX = "__lazy_region_"
_TOKEN_SUFFIX = "__"
_TOKEN_ATTEMPTS = 8

# PHP-style JSON_HEX_TAG / JSON_HEX_AMP / JSON_HEX_APOS escapes.
_HTML_ESCAPES: Tuple[Tuple[str, str], ...] = (
    ("<", "\\u003C"),
    (">", "\\u003E"),
    ("&", "\\u0026"),
    ("'", "\\u0027"),
)

TokenFactory = Callable[[], str]


def new_placeholder_token() -> str:
    """Return a fresh, unguessable placeholder token."""
    return f"{_TOKEN_PREFIX}{secrets.token_hex(16)}{_TOKEN_SUFFIX}"


def _json_default(value: object) -> object:
    """Fallback used by :func:`json.dumps` for values outside the JSON core types."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def coerce_key(key: object) -> str:
    """Convert a mapping key to the string ``json.dumps`` would emit for it."""
    if isinstance(key, str):
        return key
    if key is True:
        return "true"
    if key is False:
        return "false"
    if key is None:
        return "null"
    if isinstance(key, int):
        return int.__repr__(key)
    if isinstance(key, float):
        if not math.isfinite(key):
            raise ValueError(f"Out of range float key is not JSON compliant: {key!r}")
        return float.__repr__(key)
    raise TypeError(f"keys must be str, int, float, bool or None, not {type(key).__name__}")


@dataclass(frozen=True)
class EncodingOptions:
    """Flags controlling how strings are escaped in the emitted JSON.

    Output is always compact (``,`` and ``:`` separators, no whitespace) and
    rejects ``NaN``/``Infinity`` so that every document stays strictly valid.
    """

    escape_slashes: bool = False
    escape_unicode: bool = False
    escape_html: bool = False

    def dumps(self, value: object) -> str:
        """Encode ``value`` honouring the configured flags.

        Raises ``TypeError`` or ``ValueError`` like :func:`json.dumps`, plus
        ``ValueError`` for strings that cannot be written as UTF-8.
        """
        text = json.dumps(
            value,
            ensure_ascii=self.escape_unicode,
            allow_nan=False,
            separators=(",", ":"),
            default=_json_default,
        )
        if not self.escape_unicode:
            # Raw output must be representable on the UTF-8 wire (no lone surrogates).
            try:
                text.encode("utf-8")
            except UnicodeEncodeError as exc:
                raise ValueError(f"String is not valid UTF-8: {exc.reason}") from exc
        # Compact JSON only carries these characters inside string literals.
        if self.escape_slashes:
            text = text.replace("/", "\\/")
        if self.escape_html:
            for char, escaped in _HTML_ESCAPES:
                text = text.replace(char, escaped)
        return text

    def encode_key(self, key: object) -> str:
        """Encode a mapping key as a JSON string literal."""
        return self.dumps(coerce_key(key))


class LazyRegion:
    """Template leaf backed by a single-pass source of ``(key, value)`` items.

    ``LazyRegion(values)`` enumerates plain values, producing the keys
    ``0, 1, 2...`` and therefore a JSON array. :meth:`from_pairs` and
    :meth:`from_items` take explicit keys; the first key decides whether the
    region renders as an array (integer ``0``) or as an object (anything else).
    """

    __slots__ = ("_source", "_keyed", "_consumed")

    def __init__(self, source: Iterable[object], *, keyed: bool = False) -> None:
        self._source = source
        self._keyed = keyed
        self._consumed = False

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[JSONKey, object]]) -> "LazyRegion":
        """Wrap a source yielding ``(key, value)`` tuples."""
        return cls(pairs, keyed=True)

    @classmethod
    def from_items(cls, mapping: Mapping[JSONKey, object]) -> "LazyRegion":
        """Stream the items of ``mapping`` without copying it."""
        return cls(mapping.items(), keyed=True)

    @property
    def consumed(self) -> bool:
        """Return whether :meth:`items` was already called."""
        return self._consumed

    def items(self) -> Iterator[object]:
        """Return the iterator over the region's ``(key, value)`` items.

        Regions are single-use: the source is never rewound.
        """
        if self._consumed:
            raise StreamingError("Lazy region has already been consumed")
        self._consumed = True
        if self._keyed:
            return iter(self._source)
        return enumerate(self._source)

    def close(self) -> None:
        """Release the underlying source when it supports it (generators, cursors)."""
        closer = getattr(self._source, "close", None)
        if callable(closer):
            closer()

    def __repr__(self) -> str:
        state = "consumed" if self._consumed else "pending"
        return f"LazyRegion({type(self._source).__name__}, keyed={self._keyed}, {state})"


@dataclass(frozen=True)
class Marker:
    """Position of a lazy region inside the skeleton text."""

    token: str
    region: LazyRegion
    start: int
    end: int
    path: str


@dataclass(frozen=True)
class Skeleton:
    """Encoded template with one placeholder per lazy region."""

    text: str
    markers: Tuple[Marker, ...] = ()

    def segments(self) -> List[str]:
        """Return the ``len(markers) + 1`` literal pieces surrounding the regions."""
        segments: List[str] = []
        cursor = 0
        for marker in self.markers:
            if self.text[marker.start + 1 : marker.end - 1] != marker.token:
                raise ValueError(f"Skeleton text does not hold the token of region {marker.path}")
            segments.append(self.text[cursor : marker.start])
            cursor = marker.end
        segments.append(self.text[cursor:])
        return segments


class _SkeletonBuilder:
    """Single-use accumulator for one :meth:`StructureEncoder.encode` call."""

    def __init__(self, options: EncodingOptions, token_factory: TokenFactory) -> None:
        self.options = options
        self.token_factory = token_factory
        self.parts: List[str] = []
        self.length = 0
        self.markers: List[Marker] = []
        self._active: Set[int] = set()
        self._regions: Set[int] = set()
        self._tokens: Set[str] = set()

    def emit(self, text: str) -> None:
        self.parts.append(text)
        self.length += len(text)

    def visit(self, node: object, path: str) -> None:
        if isinstance(node, LazyRegion):
            self._visit_region(node, node, path)
        elif isinstance(node, Mapping):
            self._visit_mapping(node, path)
        elif isinstance(node, (list, tuple)):
            self._visit_sequence(node, path)
        elif isinstance(node, Iterator):
            # Bare generators and iterators embedded in the template stream as lists.
            self._visit_region(node, LazyRegion(node), path)
        else:
            try:
                self.emit(self.options.dumps(node))
            except (TypeError, ValueError) as exc:
                raise EncodingError(
                    f"Value at {path} cannot be encoded as JSON: {exc}",
                    details={"path": path},
                ) from exc

    def _enter(self, node: object, path: str) -> int:
        node_id = id(node)
        if node_id in self._active:
            raise EncodingError(
                f"Circular reference detected at {path}",
                details={"path": path},
            )
        self._active.add(node_id)
        return node_id

    def _visit_mapping(self, node: Mapping[object, object], path: str) -> None:
        node_id = self._enter(node, path)
        try:
            self.emit("{")
            for index, (key, value) in enumerate(node.items()):
                child_path = f"{path}.{key}"
                try:
                    encoded_key = self.options.encode_key(key)
                except (TypeError, ValueError) as exc:
                    raise EncodingError(
                        f"Key {key!r} at {path} cannot be encoded as JSON: {exc}",
                        details={"path": path},
                    ) from exc
                if index:
                    self.emit(",")
                self.emit(encoded_key)
                self.emit(":")
                self.visit(value, child_path)
            self.emit("}")
        finally:
            self._active.discard(node_id)

    def _visit_sequence(self, node: Iterable[object], path: str) -> None:
        node_id = self._enter(node, path)
        try:
            self.emit("[")
            for index, value in enumerate(node):
                if index:
                    self.emit(",")
                self.visit(value, f"{path}[{index}]")
            self.emit("]")
        finally:
            self._active.discard(node_id)

    def _visit_region(self, source: object, region: LazyRegion, path: str) -> None:
        source_id = id(source)
        if source_id in self._regions or region.consumed:
            raise EncodingError(
                f"Lazy region at {path} is referenced more than once",
                details={"path": path},
            )
        self._regions.add(source_id)
        token = self._new_token(path)
        start = self.length
        self.emit(self.options.dumps(token))
        self.markers.append(Marker(token=token, region=region, start=start, end=self.length, path=path))

    def _new_token(self, path: str) -> str:
        for _ in range(_TOKEN_ATTEMPTS):
            token = self.token_factory()
            if token not in self._tokens:
                self._tokens.add(token)
                return token
        raise EncodingError(
            f"Unable to allocate a unique placeholder for the region at {path}",
            details={"path": path},
        )


class StructureEncoder:
    """Encode document templates into a :class:`Skeleton`."""

    def __init__(
        self,
        options: EncodingOptions | None = None,
        *,
        token_factory: TokenFactory | None = None,
    ) -> None:
        self.options = options or EncodingOptions()
        self.token_factory: TokenFactory = token_factory or new_placeholder_token

    def encode(self, template: object) -> Skeleton:
        """Serialize ``template`` with placeholders in place of its lazy regions.

        Markers are listed in document order (pre-order, depth-first,
        left-to-right). Region contents are not touched: failures inside a
        source only surface once the streamer pulls from it.

        Raises
        ------
        EncodingError
            When a node is cyclic, not JSON representable, or when the same
            region is reachable more than once.

        """
        builder = _SkeletonBuilder(self.options, self.token_factory)
        builder.visit(template, "$")
        return Skeleton(text="".join(builder.parts), markers=tuple(builder.markers))


__all__ = [
    "EncodingOptions",
    "LazyRegion",
    "Marker",
    "Skeleton",
    "StructureEncoder",
    "coerce_key",
    "new_placeholder_token",
]
