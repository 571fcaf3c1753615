# backend/app/db/session.py
"""
Async database session management for SQLAlchemy.

- PostgreSQL (Supabase) through asyncpg with a small connection pool
- SQLite through aiosqlite for local development and the test suite

The database is the only shared mutable state of the API. Uniqueness rules
(emails, active partnership members, token hashes) live in its constraints,
so every request gets its own session and nothing is cached between them.
"""
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, AsyncAdaptedQueuePool

from backend.app.core.config import settings


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _create_async_engine() -> AsyncEngine:
    """
    Create and configure the async SQLAlchemy engine.

    SQLite uses NullPool (one connection per session) and has foreign key
    enforcement switched on per connection. PostgreSQL uses a queue pool with
    pre-ping and recycling, since hosted poolers drop idle connections.
    """
    if settings.is_sqlite:
        sqlite_engine = create_async_engine(
            settings.DATABASE_URL,
            echo=settings.DATABASE_ECHO,
            poolclass=NullPool,
            connect_args={"check_same_thread": False},
        )
        event.listen(sqlite_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return sqlite_engine

    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DATABASE_ECHO,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=300,
    )


# Created once at module load, reused across all requests
engine: AsyncEngine = _create_async_engine()


# expire_on_commit=False: attributes stay readable after commit
# autoflush=False: writes only happen on explicit flush/commit
AsyncSessionLocal: async_sessionmaker[AsyncSession] = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency generator for database sessions.

    Usage in FastAPI endpoints:
        @router.get("/transactions")
        async def list_transactions(db: AsyncSession = Depends(get_db)):
            ...

    The session is closed after the request. It does NOT auto-commit;
    services commit explicitly once their invariants are checked.
    """
    async with AsyncSessionLocal() as session:
        yield session
