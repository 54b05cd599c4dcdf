"""Uvicorn entry point.

    python -m delivery_service.main
    uvicorn delivery_service.main:app
"""

from __future__ import annotations

import uvicorn

from delivery_service.app.main import create_app
from delivery_service.core.settings import get_app_settings

app = create_app()


def run() -> None:
    """Serve the API with uvicorn using APP_HOST/APP_PORT."""
    settings = get_app_settings()
    uvicorn.run(
        "delivery_service.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=None,
    )


if __name__ == "__main__":
    run()
