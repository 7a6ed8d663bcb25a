"""Prometheus metrics exposition endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Response

from streamed_json.services.metrics import metrics

router = APIRouter(tags=["metrics"])


@router.get("/metrics", include_in_schema=False)
def metrics_endpoint() -> Response:
    """Expose stream counters and stage latencies in the Prometheus text format."""
    return Response(
        content=metrics.render(),
        media_type=metrics.content_type,
        headers={"Cache-Control": "no-store"},
    )


__all__ = ["router", "metrics_endpoint"]
