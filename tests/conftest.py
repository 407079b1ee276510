# tests/conftest.py
from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

# ============================================================
# DATABASE_URL must be set before app.config is imported
# ============================================================
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ALERT_SCAN_ENABLED", "false")

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app import models  # noqa: E402,F401
from app.api.deps import get_clock  # noqa: E402
from app.config import Settings, get_settings  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.services.order_lifecycle_service import OrderLifecycleService  # noqa: E402
from app.services.order_store import OrderStore  # noqa: E402

from tests.factories import make_manufacturer, make_product  # noqa: E402


TEST_START = datetime(2024, 10, 15, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when a test moves it."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now

    def set(self, now: datetime) -> datetime:
        self.now = now
        return self.now


# =========================================
# Fresh in-memory database per test
# =========================================
@pytest_asyncio.fixture(scope="function")
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture(scope="function")
def async_session_maker(async_engine: AsyncEngine):
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def session(async_session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as sess:
        try:
            yield sess
        finally:
            if sess.in_transaction():
                await sess.rollback()


@pytest.fixture
def store(session: AsyncSession) -> OrderStore:
    return OrderStore(session)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(TEST_START)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        TIMEZONE="UTC",
        ORDER_NUMBER_PREFIX="FI",
        FULFILLMENT_THRESHOLD_DAYS=5,
        DELAY_THRESHOLD_DAYS=3,
        TREND_DAYS=14,
    )


@pytest.fixture
def lifecycle(store: OrderStore, clock: FrozenClock, settings: Settings) -> OrderLifecycleService:
    return OrderLifecycleService(store, clock=clock, settings=settings)


@pytest_asyncio.fixture
async def manufacturer(session: AsyncSession):
    return await make_manufacturer(session)


@pytest_asyncio.fixture
async def product(session: AsyncSession, manufacturer):
    return await make_product(session, manufacturer)


# =========================================
# FastAPI / httpx AsyncClient
# =========================================
@pytest_asyncio.fixture(scope="function")
async def client(async_session_maker, clock: FrozenClock, settings: Settings) -> AsyncGenerator[httpx.AsyncClient, None]:
    async def _get_db():
        async with async_session_maker() as sess:
            try:
                yield sess
                await sess.commit()
            except Exception:
                await sess.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_settings] = lambda: settings

    transport = httpx.ASGITransport(app=app)
    try:
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
            yield c
    finally:
        app.dependency_overrides.clear()
