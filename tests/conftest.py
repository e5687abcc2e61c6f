import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from smartmenu import database, main
from smartmenu.core.config import get_settings
from smartmenu.database import build_engine, get_db, init_db
from smartmenu.services.voice import reset_voice_service

TEST_DATABASE_URL = "sqlite+aiosqlite://"


def make_engine():
    return build_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture(autouse=True)
def fresh_services():
    get_settings.cache_clear()
    reset_voice_service()
    yield
    get_settings.cache_clear()
    reset_voice_service()


@pytest.fixture(name="run_db")
def run_db_fixture():
    """Run ``fn(session)`` against a fresh in-memory database on one event loop."""
    def _run(fn):
        async def _main():
            engine = make_engine()
            await init_db(engine)
            session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
            try:
                async with session_maker() as session:
                    return await fn(session)
            finally:
                await engine.dispose()

        return asyncio.run(_main())

    return _run


@pytest.fixture(name="exports")
def exports_fixture(monkeypatch):
    queued = []
    monkeypatch.setattr(main, "queue_order_export", lambda order: queued.append(order.id))
    return queued


def open_client(monkeypatch, **kwargs) -> TestClient:
    engine = make_engine()
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def _get_db_override():
        async with session_maker() as session:
            yield session

    monkeypatch.setattr(database, "engine", engine)
    monkeypatch.setitem(main.app.dependency_overrides, get_db, _get_db_override)
    return TestClient(main.app, **kwargs)


@pytest.fixture(name="client")
def client_fixture(monkeypatch, exports):
    with open_client(monkeypatch) as client:
        yield client
