"""Startup and shutdown through the real application lifespan."""

from __future__ import annotations

from httpx import ASGITransport, AsyncClient
import pytest

from delivery_service.app.main import create_app
from delivery_service.features.pipeline import DeliveryPipeline


@pytest.fixture
def lifespan_env(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DB_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'lifespan.db'}")
    monkeypatch.setenv("DB_CREATE_TABLES", "true")
    monkeypatch.setenv("EMAIL_PROVIDER", "console")
    monkeypatch.setenv("SMS_PROVIDER", "console")
    monkeypatch.setenv("DELIVERY_SCHEDULER_ENABLED", "false")
    monkeypatch.setenv("LOG_CONSOLE_ENABLED", "false")


class TestLifespan:
    async def test_startup_wires_pipeline_and_creates_tables(self, lifespan_env) -> None:
        """Test that startup stores a working pipeline on app state."""
        app = create_app()

        async with app.router.lifespan_context(app):
            pipeline = app.state.pipeline
            assert isinstance(pipeline, DeliveryPipeline)
            assert pipeline.email.provider_name == "console"
            assert pipeline.sms.provider_name == "console"

            async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                health = await client.get("/health")
                listing = await client.get("/api/v1/notifications", params={"user_id": "nobody"})

            assert health.status_code == 200
            assert listing.status_code == 200
            assert listing.json()["total"] == 0

    async def test_scheduler_runs_when_enabled(self, lifespan_env, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DELIVERY_SCHEDULER_ENABLED", "true")
        app = create_app()

        async with app.router.lifespan_context(app):
            assert app.state.pipeline is not None
