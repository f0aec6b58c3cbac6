"""
Database session management with SQLAlchemy async
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
)
from sqlalchemy.pool import NullPool
from core.config import settings
from models.base import Base
import logging

logger = logging.getLogger(__name__)


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the given URL"""
    return create_async_engine(
        database_url,
        echo=echo,
        poolclass=NullPool,  # One connection per session, bound to the caller's loop
        future=True
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Create the session factory handed to business entities"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create every table registered on the declarative base"""
    # Importing the package registers all mapped tables
    import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema created")


# Create async engine
engine = build_engine(
    settings.DATABASE_URL,
    echo=settings.DATABASE_ECHO
)

# Create session factory
async_session_maker = build_session_factory(engine)
