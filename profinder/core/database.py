"""
Async engine and session factory for the relationship store.
"""
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from profinder.config import settings


def _engine_options(url: str) -> dict:
    options = {"echo": settings.debug, "pool_pre_ping": True}
    # SQLite pools take no sizing arguments
    if not url.startswith("sqlite"):
        options.update(pool_size=20, max_overflow=10)
    return options


engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# One session per store call; RelationshipStore commits or rolls back
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)
