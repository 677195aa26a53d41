"""Shared test fixtures for cinecdc tests."""

from datetime import timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession

from cinecdc.core import database
from cinecdc.core.clock import utcnow
from cinecdc.core.config import get_settings
from cinecdc.core.database import init_engine, create_tables, dispose_engine
from cinecdc.daemon.main import create_app
from cinecdc.daemon.pipeline import Pipeline, set_pipeline
from cinecdc.schemas.booking import BookingCreate, BookingMutation, BookingUpdate
from cinecdc.services.capture_log import CaptureLog


@pytest.fixture
def env(tmp_path, monkeypatch):
    """Isolated settings: a SQLite file per test and no user config files."""
    monkeypatch.setenv("CINECDC_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cinecdc.db'}")
    monkeypatch.setenv("CINECDC_API_KEY", "test_key")
    monkeypatch.setenv("CINECDC_HOME", str(tmp_path / "home"))
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest_asyncio.fixture
async def db(env):
    init_engine(get_settings().database_url)
    await create_tables()
    yield
    await dispose_engine()


@pytest_asyncio.fixture
async def db_session(db) -> AsyncSession:
    """Get a database session for direct DB operations in tests."""
    async with database.async_session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def pipeline(db):
    _pipeline = Pipeline.from_settings(get_settings())
    set_pipeline(_pipeline)
    yield _pipeline
    set_pipeline(None)


@pytest_asyncio.fixture
async def app(pipeline):
    # ASGITransport does not run the lifespan; db and pipeline fixtures stand in for it
    return create_app()


@pytest_asyncio.fixture
async def client(app):
    """Async HTTP client pointed at the test app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": "Bearer test_key"},
    ) as c:
        yield c


@pytest_asyncio.fixture
async def unauthed_client(app):
    """Async HTTP client without auth."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


# ─── Helpers ───

YESTERDAY = utcnow().replace(microsecond=0) - timedelta(days=1)


def new_booking(booking_id: str = "B1", **overrides) -> BookingCreate:
    fields = {
        "booking_id": booking_id,
        "customer_id": "C1",
        "movie_id": "M1",
        "booking_date": YESTERDAY,
        "ticket_count": 2,
        "ticket_price": Decimal("150.00"),
    }
    fields.update(overrides)
    return BookingCreate(**fields)


async def capture(mutation: BookingMutation):
    async with database.async_session_factory() as session:
        return await CaptureLog(session).capture(mutation)


async def create(booking_id: str = "B1", **overrides):
    return await capture(BookingMutation.create(new_booking(booking_id, **overrides)))


async def update(booking_id: str, **changes):
    return await capture(BookingMutation.update(booking_id, BookingUpdate(**changes)))


async def delete(booking_id: str):
    return await capture(BookingMutation.delete(booking_id))


async def fetch(model, key):
    """Load one row in a fresh session, so stage commits from other sessions are visible."""
    async with database.async_session_factory() as session:
        return await session.get(model, key)
