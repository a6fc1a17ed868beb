"""
SQLAlchemy Async Database Configuration.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from uproar.config import get_settings
from uproar.models.base import Base  # Import from models package

settings = get_settings()


def _engine_options(database_url: str) -> dict:
    """Pool options for server databases; SQLite picks its own pool."""
    if database_url.startswith("sqlite"):
        return {}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        # Max wait for a pooled connection
        "pool_timeout": settings.INVENTORY_TX_MAX_WAIT_SECONDS,
        "pool_recycle": 900,
        "pool_pre_ping": True,
    }


# Async Engine with connection pool configuration
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    future=True,
    **_engine_options(settings.DATABASE_URL),
)

# Async Session Factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncSession:
    """Dependency for FastAPI routes to get database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


__all__ = ["Base", "engine", "async_session_maker", "get_db"]
