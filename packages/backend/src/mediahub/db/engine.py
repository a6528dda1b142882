"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.
"""

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from mediahub.config import settings
from mediahub.errors import Conflict, PersistenceError

# Connection pool: min 5, max 20 connections (SQLite manages its own pool).
# echo=True in dev to see SQL queries.
_pool_kwargs = (
    {} if settings.database_url.startswith("sqlite") else {"pool_size": 5, "max_overflow": 15}
)

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_pool_kwargs,
)

# Session factory: each request gets its own session.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncSession:
    """FastAPI dependency: yields a session per request, auto-closes."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_all() -> None:
    """Create every table from the ORM models (dev bootstrap, no Alembic)."""
    from mediahub.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def commit_or_raise(
    db: AsyncSession, conflict_message: str = "Record already exists"
) -> None:
    """Commit, translating driver errors into API errors.

    Unique-constraint violations become Conflict (409); any other database
    failure becomes PersistenceError (500). The session is rolled back
    either way, so the caller's in-memory changes are discarded.
    """
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise Conflict(conflict_message) from e
    except SQLAlchemyError as e:
        await db.rollback()
        raise PersistenceError() from e
