"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI
from prometheus_client import make_asgi_app

from delivery_service.app.exception_handlers import configure_exception_handlers
from delivery_service.app.lifespan import lifespan
from delivery_service.app.middleware import RequestIDMiddleware
from delivery_service.app.router import setup_routers
from delivery_service.core.settings import get_app_settings


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    app_settings = get_app_settings()

    app = FastAPI(
        title=app_settings.title,
        description=app_settings.description,
        version=app_settings.version,
        debug=app_settings.debug,
        lifespan=lifespan,
    )

    configure_exception_handlers(app)
    app.add_middleware(RequestIDMiddleware)
    setup_routers(app, app_settings.api_prefix)

    # Prometheus scrape endpoint
    app.mount("/metrics", make_asgi_app())

    @app.get("/health", tags=["health"], summary="Liveness check")
    async def health() -> dict[str, str]:
        return {"status": "ok", "service": app_settings.service_name}

    return app
