from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pricetracker.core.config import Settings
from pricetracker.db.base import Base


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (url.endswith("://") or ":memory:" in url)


def create_engine(settings: Settings) -> AsyncEngine:
    """Build the async engine for ``settings.DATABASE_URL``."""
    url = settings.DATABASE_URL
    kwargs = {"echo": settings.DATABASE_ECHO, "future": True}

    if _is_memory_sqlite(url):
        # A single shared connection, otherwise every session sees its own empty database
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    elif settings.DATABASE_SSL:
        # asyncpg takes ssl as a connect argument, not a URL parameter
        kwargs["connect_args"] = {"ssl": "require"}

    return create_async_engine(url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Create a configured "AsyncSession" factory bound to ``engine``."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine):
    """Initialize the database and create tables if they don't exist."""
    # Register the ORM models on Base.metadata
    import pricetracker.schemas  # noqa: F401

    async with engine.begin() as conn:
        try:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created/verified")
        except Exception as e:
            logger.error(f"Error creating database tables: {e}")
            raise


async def close_db_connection(engine: AsyncEngine):
    """
    Closes the database connection pool. This is called during application shutdown.
    """
    logger.info("Closing database connection pool.")
    await engine.dispose()
