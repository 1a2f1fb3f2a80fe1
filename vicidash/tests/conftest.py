"""Async test fixtures for vicidash using SQLite and a fake VICIdial server."""

from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from vicidash.config import ViciSettings
from vicidash.database import get_db
from vicidash.models.base import Base
from vicidash.sync.name_cache import CampaignNameCache
from vicidash.sync.snapshots import SnapshotStore
from vicidash.sync.sync_engine import SyncRunner
from vicidash.vicidial.client import ViciClient

VICI_URL = "http://vici.test/vicidial/non_agent_api.php"

Reply = str | Exception | Callable[[dict[str, str]], Any]


class FakeVici:
    """Answers VICIdial calls by ``function`` name and records every query."""

    def __init__(self, responses: dict[str, Reply] | None = None):
        self.responses: dict[str, Reply] = dict(responses or {})
        self.calls: list[dict[str, str]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        params = dict(request.url.params)
        self.calls.append(params)
        reply = self.responses.get(params.get("function", ""), "")
        if callable(reply):
            reply = reply(params)
        if isinstance(reply, Exception):
            raise reply
        return httpx.Response(200, text=reply)

    def calls_for(self, function: str) -> list[dict[str, str]]:
        return [c for c in self.calls if c.get("function") == function]

    def client(self) -> ViciClient:
        return ViciClient(
            VICI_URL, "apiuser", "apipass", transport=httpx.MockTransport(self.handler)
        )


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_vici():
    return FakeVici()


@pytest_asyncio.fixture
async def vici(fake_vici):
    async with fake_vici.client() as client:
        yield client


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "vicidial"


@pytest.fixture
def test_settings(tmp_path, data_dir):
    return ViciSettings(
        vicidial_url=VICI_URL,
        vicidial_user="apiuser",
        vicidial_pass="apipass",
        data_dir=str(data_dir),
        campaign_map_paths=str(tmp_path / "missing_campaigns.json"),
        pace_delay_seconds=0,
        scheduler_enabled=False,
    )


@pytest.fixture
def store(data_dir):
    return SnapshotStore(data_dir)


@pytest.fixture
def name_cache(data_dir):
    return CampaignNameCache(data_dir / "campaign_name_cache.json")


@pytest.fixture
def sync_runner(fake_vici, name_cache, session_factory, test_settings):
    return SyncRunner(fake_vici.client, name_cache, session_factory, test_settings)


@pytest_asyncio.fixture
async def client(session_factory, fake_vici, name_cache, sync_runner, test_settings):
    """HTTPX async test client against the vicidash app."""
    from vicidash.app import app
    from vicidash import deps

    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_vici_client():
        async with fake_vici.client() as vici_client:
            yield vici_client

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_settings] = lambda: test_settings
    app.dependency_overrides[deps.get_vici_client] = override_get_vici_client
    app.dependency_overrides[deps.get_name_cache] = lambda: name_cache
    app.dependency_overrides[deps.get_sync_runner] = lambda: sync_runner

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
