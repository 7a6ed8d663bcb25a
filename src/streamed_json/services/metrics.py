"""Prometheus metrics helpers used by the streamed JSON responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from streamed_json.services.streamer import StreamStats


@dataclass
class MetricsRegistry:
    """Container owning all Prometheus collectors exposed by the API.

    * ``stream_stage_duration_seconds`` records how long skeleton encoding and
      region streaming take per response.
    * ``stream_regions_total`` / ``stream_items_total`` count streamed regions
      and items grouped by the shape (``list`` or ``map``) they rendered as.
    * ``stream_flushes_total`` counts explicit transport flushes.
    * ``stream_failures_total`` counts failed responses by reason
      (``encoding``, ``source``, ``transport``).

    The class centralises the collectors to make resetting state in tests simple
    and to provide a consistent ``CollectorRegistry`` for the ``/metrics`` route.
    """

    registry: CollectorRegistry = field(init=False)
    stage_latency: Histogram = field(init=False)
    regions_streamed: Counter = field(init=False)
    items_streamed: Counter = field(init=False)
    flushes: Counter = field(init=False)
    failures: Counter = field(init=False)

    def __post_init__(self) -> None:
        self._initialise()

    def _initialise(self) -> None:
        """Instantiate collectors on a fresh registry."""
        # A private registry keeps unit tests isolated from the global default
        # registry shared by other libraries imported in the same process.
        self.registry = CollectorRegistry()
        self.stage_latency = Histogram(
            "stream_stage_duration_seconds",
            "Observed duration of each streaming stage in seconds.",
            ("stage",),
            registry=self.registry,
            buckets=(0.005, 0.025, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, float("inf")),
        )
        self.regions_streamed = Counter(
            "stream_regions_total",
            "Number of lazy regions streamed grouped by rendered shape.",
            ("shape",),
            registry=self.registry,
        )
        self.items_streamed = Counter(
            "stream_items_total",
            "Number of items written into lazy regions grouped by rendered shape.",
            ("shape",),
            registry=self.registry,
        )
        self.flushes = Counter(
            "stream_flushes_total",
            "Number of explicit transport flushes issued while streaming.",
            registry=self.registry,
        )
        self.failures = Counter(
            "stream_failures_total",
            "Number of streamed responses that failed grouped by reason.",
            ("reason",),
            registry=self.registry,
        )

    def reset(self) -> None:
        """Reset all collectors to an empty state (useful for deterministic tests)."""
        self._initialise()

    def observe_stage_duration(self, stage: str, seconds: float) -> None:
        """Record how long a stage took in seconds (clamped to >= 0)."""
        duration = max(0.0, float(seconds))
        self.stage_latency.labels(stage=stage).observe(duration)

    def record_stream(self, stats: StreamStats) -> None:
        """Account for the regions, items and flushes of one streamed document."""
        for region in stats.regions:
            self.regions_streamed.labels(shape=region.shape.value).inc()
            self.items_streamed.labels(shape=region.shape.value).inc(region.items)
        self.flushes.inc(stats.flushes)

    def record_failure(self, reason: str) -> None:
        """Increment the failure counter for ``reason``."""
        self.failures.labels(reason=reason or "unknown").inc()

    def render(self) -> bytes:
        """Return the latest metrics snapshot in Prometheus exposition format."""
        return generate_latest(self.registry)

    @property
    def content_type(self) -> str:
        """Expose the canonical content type for the Prometheus text format."""
        return CONTENT_TYPE_LATEST


# Singleton used across the application. Tests may call ``metrics.reset()`` to
# ensure a blank slate prior to exercising behaviours.
metrics: Final[MetricsRegistry] = MetricsRegistry()


__all__ = ["metrics", "MetricsRegistry"]
