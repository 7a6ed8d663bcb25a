"""Health endpoint reporting service status."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter

from streamed_json import __version__
from streamed_json.config import settings

_router_start = time.time()

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    summary="Report service health",
    description="Expose service status, uptime and the active streaming configuration.",
    response_description="Current backend status.",
)
def health() -> Dict[str, object]:
    """Return uptime, version and flush configuration."""
    uptime = time.time() - _router_start
    return {
        "status": "ok",
        "version": __version__,
        "uptime": uptime,
        "flush_size": settings.flush_size,
        "line_delimited": settings.line_delimited,
        "checked_at": datetime.now(tz=timezone.utc).isoformat(),
    }
