from datetime import datetime

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from downtime_stats.core.database import ApiKey, Base, Heartbeat, Monitor
from downtime_stats.core.security import generate_api_key, get_key_prefix, hash_api_key


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """File-backed SQLite engine so concurrent sessions see the same data."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Async session bound to the test engine."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def add_monitor(session_factory):
    """Insert a monitor with heartbeats; returns the monitor id.

    ``beats`` is a list of ``(naive_utc_datetime, status)`` tuples.
    """
    async def _add(name: str, url: str | None = None, beats: list[tuple[datetime | None, int | None]] = ()) -> int:
        async with session_factory() as session:
            monitor = Monitor(name=name, url=url)
            session.add(monitor)
            await session.flush()
            for ts, status in beats:
                session.add(Heartbeat(monitor_id=monitor.id, time=ts, status=status))
            await session.commit()
            return monitor.id

    return _add


async def _create_key(session_factory, label: str) -> str:
    raw_key = generate_api_key()
    async with session_factory() as session:
        session.add(ApiKey(
            key_hash=hash_api_key(raw_key),
            key_prefix=get_key_prefix(raw_key),
            label=label,
            is_active=True,
        ))
        await session.commit()
    return raw_key


@pytest_asyncio.fixture
async def test_api_key(session_factory):
    """Create an API key and return the raw key."""
    return await _create_key(session_factory, "test-key")


@pytest_asyncio.fixture
async def app_with_db(db_engine, session_factory):
    """FastAPI app wired to the test database."""
    import downtime_stats.core.database as db_module
    import downtime_stats.core.middleware as mw_module

    # Patch the module-level engine and session factory
    original_engine = db_module.engine
    original_session = db_module.async_session
    original_mw_session = mw_module.async_session

    db_module.engine = db_engine
    db_module.async_session = session_factory

    # Also patch the middleware's imported async_session
    mw_module.async_session = session_factory

    from downtime_stats.dependencies import build_aggregator
    from downtime_stats.main import app

    app.state.downtime_aggregator = build_aggregator(session_factory)

    yield app

    db_module.engine = original_engine
    db_module.async_session = original_session
    mw_module.async_session = original_mw_session


@pytest_asyncio.fixture
async def auth_client(app_with_db, session_factory):
    """Authenticated async HTTP client with a valid API key."""
    raw_key = await _create_key(session_factory, "integration-test")

    transport = ASGITransport(app=app_with_db)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        client.headers["Authorization"] = f"Bearer {raw_key}"
        yield client


@pytest_asyncio.fixture
async def anon_client(app_with_db):
    """Unauthenticated async HTTP client."""
    transport = ASGITransport(app=app_with_db)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
