"""Shared fixtures for the ordering tests."""

from __future__ import annotations

import pathlib
import sys

import fakeredis.aioredis
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.pool import StaticPool

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from config import Settings  # noqa: E402
from tableorder.app.db import build_engine, build_sessionmaker, create_schema  # noqa: E402
from tableorder.app.main import app  # noqa: E402
from tableorder.app.services.notifier import RecordingNotifier  # noqa: E402
from tableorder.app.services.orders import OrderService  # noqa: E402
from tableorder.tests._seed import FakeGateway, seed_restaurant  # noqa: E402

@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
async def engine():
    engine = build_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def file_engine(tmp_path):
    """Engine over a database file so concurrent transactions use separate connections."""

    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        currency="INR",
        subscription_grace_days=7,
        plan_daily_order_limits={"starter": 2, "medium": 300, "pro": None},
        razorpay_webhook_secret="whsec_test",
    )


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def service(session_factory, gateway, notifier, settings) -> OrderService:
    return OrderService(session_factory, gateway, notifier, settings)


@pytest.fixture
async def seeded(session_factory):
    await seed_restaurant(session_factory)
    return session_factory


@pytest.fixture
async def client(seeded, gateway, notifier):
    app.state.sessionmaker = seeded
    app.state.gateway = gateway
    app.state.notifier = notifier
    app.state.redis = fakeredis.aioredis.FakeRedis()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()

