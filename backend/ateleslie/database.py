"""
Atelier Leslie Database Configuration
Async SQLAlchemy engine and session management.
"""

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

from ateleslie.config import settings


def _engine_options(url: str) -> dict:
    options = {"echo": settings.debug, "future": True, "pool_pre_ping": True}
    # SQLite (local runs and tests) does not accept the pooling arguments
    if not url.startswith("sqlite"):
        options.update(
            pool_size=10,
            max_overflow=20,
            pool_recycle=3600,  # Recycle connections every hour
        )
    return options


# Create async engine
engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

# Base class for all models
Base = declarative_base()


async def get_db() -> AsyncSession:
    """
    Dependency that provides a database session.
    Use with FastAPI's Depends().
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db():
    """
    Create database tables.
    For development only - use Alembic migrations in production.
    """
    # Import models so they are registered on Base.metadata
    import ateleslie.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Close database connections."""
    await engine.dispose()
