"""Run the API with uvicorn: ``python -m streamed_json``."""

from __future__ import annotations

import uvicorn

from streamed_json.config import get_settings


def main() -> None:
    """Serve :mod:`streamed_json.app` on the configured host and port."""
    settings = get_settings()
    uvicorn.run(
        "streamed_json.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
