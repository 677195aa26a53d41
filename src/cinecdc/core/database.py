"""Async engine and session factory shared by the API and the stages.

The engine is created once per process by init_engine(). Callers reach the
factory through this module (database.async_session_factory) at call time.
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

engine: AsyncEngine | None = None
async_session_factory: async_sessionmaker[AsyncSession] | None = None

# Seconds a SQLite connection waits on the write lock before failing
SQLITE_BUSY_TIMEOUT = 30


class Base(DeclarativeBase):
    pass


def is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def init_engine(database_url: str) -> AsyncEngine:
    global engine, async_session_factory
    connect_args = {}
    if is_sqlite(database_url):
        connect_args = {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT}
    engine = create_async_engine(database_url, echo=False, connect_args=connect_args)
    if is_sqlite(database_url):
        event.listen(engine.sync_engine, "connect", _sqlite_pragmas)
    async_session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return engine


def _sqlite_pragmas(dbapi_connection, _record):
    cursor = dbapi_connection.cursor()
    # WAL lets API reads proceed while a stage holds the write lock
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


async def get_session() -> AsyncSession:
    async with async_session_factory() as session:
        yield session


async def create_tables():
    # Registers every table on Base.metadata
    import cinecdc.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine():
    global engine, async_session_factory
    if engine is not None:
        await engine.dispose()
    engine = None
    async_session_factory = None
