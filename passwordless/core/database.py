"""Async database engine and session management.

Configures the SQLAlchemy async engine with connection pooling and
provides the unit-of-work helper every passwordless operation runs in.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from passwordless.core.config import settings

engine = create_async_engine(
    settings.database_url,
    echo=settings.environment == "development",
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@asynccontextmanager
async def transaction(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Run a block as one atomic unit of work.

    Commits on normal exit. Any exception rolls back the writes made since
    the last commit and is re-raised unchanged. A block that must keep its
    writes and still fail (attempt counting) commits explicitly before
    raising.

    Args:
        session_factory: Factory producing AsyncSession instances.

    Yields:
        Session with an open transaction.
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
