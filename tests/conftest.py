"""Pytest configuration and shared fixtures.

Organization:
    - Fakes: clock, sleep recorder, email/SMS providers (see tests/utils.py)
    - Database Fixtures: temp-file SQLite engine and session factory
    - Pipeline Fixtures: settings, wired DeliveryPipeline, recipient factory
    - Application Fixtures: FastAPI app and HTTP client
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Any

from httpx import ASGITransport, AsyncClient
import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from delivery_service.core.database import Base
from delivery_service.core.settings import DeliverySettings, SmsSettings, clear_settings_cache
from delivery_service.features.notifications.models import Recipient
from delivery_service.features.pipeline import build_pipeline
from delivery_service.infra.database import build_session_factory
from tests.utils import FakeClock, FakeEmailProvider, FakeSmsProvider, SleepRecorder

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable

    from fastapi import FastAPI
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

    from delivery_service.features.pipeline import DeliveryPipeline

# Keep tests away from external providers and the in-process scheduler
os.environ.setdefault("EMAIL_PROVIDER", "console")
os.environ.setdefault("SMS_PROVIDER", "console")
os.environ.setdefault("DELIVERY_SCHEDULER_ENABLED", "false")
os.environ.setdefault("LOG_JSON", "false")


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> None:
    """Drop cached settings so each test sees the current environment."""
    clear_settings_cache()


# ============================================================================
# Fakes
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    """Controllable clock shared by every pipeline component."""
    return FakeClock()


@pytest.fixture
def sleeper() -> SleepRecorder:
    """Recording sleep used for bulk pacing and webhook lookups."""
    return SleepRecorder()


@pytest.fixture
def email_provider() -> FakeEmailProvider:
    return FakeEmailProvider()


@pytest.fixture
def sms_provider() -> FakeSmsProvider:
    return FakeSmsProvider()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine]:
    """Temp-file SQLite engine with every table created.

    NullPool gives each session its own connection so concurrent units of
    work behave as they would against a server database.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'delivery.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(db_engine)


# ============================================================================
# Pipeline Fixtures
# ============================================================================


@pytest.fixture
def delivery_settings() -> DeliverySettings:
    """Delivery settings with fast webhook lookups and no cron secret."""
    return DeliverySettings(
        max_retries=3,
        backoff_base_minutes=1.0,
        max_backoff_minutes=60.0,
        bulk_batch_size=50,
        bulk_pause_seconds=1.0,
        webhook_miss_retries=3,
        webhook_miss_delay_seconds=0.25,
        retention_days=90,
        scheduler_enabled=False,
        cron_secret=None,
    )


@pytest.fixture
def sms_settings() -> SmsSettings:
    return SmsSettings(provider="console", default_country_code="1", bulk_delay_seconds=0.1)


@pytest.fixture
def pipeline(
    session_factory: async_sessionmaker[AsyncSession],
    email_provider: FakeEmailProvider,
    sms_provider: FakeSmsProvider,
    delivery_settings: DeliverySettings,
    sms_settings: SmsSettings,
    clock: FakeClock,
    sleeper: SleepRecorder,
) -> DeliveryPipeline:
    """Fully wired pipeline over the test database and fake providers."""
    return build_pipeline(
        session_factory,
        email_provider=email_provider,
        sms_provider=sms_provider,
        delivery_settings=delivery_settings,
        sms_settings=sms_settings,
        clock=clock,
        sleep=sleeper,
    )


@pytest.fixture
def add_recipient(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[..., Awaitable[Recipient]]:
    """Factory inserting a Recipient row.

    Example:
        recipient = await add_recipient("u-1", phone="2125551234", preferences={...})
    """

    async def _add(
        user_id: str = "u-1",
        *,
        email: str = "jane@example.com",
        phone: str | None = None,
        first_name: str | None = "Jane",
        last_name: str | None = "Doe",
        preferences: dict[str, Any] | None = None,
    ) -> Recipient:
        recipient = Recipient(
            id=user_id,
            email=email,
            phone=phone,
            first_name=first_name,
            last_name=last_name,
            preferences=preferences or {},
        )
        async with session_factory() as session:
            session.add(recipient)
            await session.commit()
        return recipient

    return _add


# ============================================================================
# Application Fixtures
# ============================================================================


@pytest.fixture
def app(pipeline: DeliveryPipeline) -> FastAPI:
    """FastAPI app with the test pipeline attached (lifespan not run)."""
    from delivery_service.app.main import create_app

    application = create_app()
    application.state.pipeline = pipeline
    return application


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
