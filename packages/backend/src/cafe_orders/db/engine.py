"""Async SQLAlchemy engine and session factory.

One engine with connection pooling for the whole process; each request
gets its own AsyncSession through the get_db dependency.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from cafe_orders.config import settings

# SQLite (local dev) uses its own pool class and rejects sizing options.
_pool_options = (
    {}
    if settings.database_url.startswith("sqlite")
    else {"pool_size": 5, "max_overflow": 10}
)

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_pool_options,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncSession:
    """FastAPI dependency — yields a session per request, auto-closes."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    """Create all tables. Used by `cafe init-db` for local setups without Alembic."""
    from cafe_orders.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
