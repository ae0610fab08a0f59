"""
Database engine and session factory.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool


def create_engine(
    database_url: str,
    echo: bool = False,
    use_null_pool: bool = False,
) -> AsyncEngine:
    """
    Create the async engine.

    Args:
        database_url: SQLAlchemy async URL (postgresql+asyncpg://...)
        echo: Log SQL statements
        use_null_pool: Disable pooling, used by short-lived worker tasks

    Returns:
        AsyncEngine
    """
    if use_null_pool:
        return create_async_engine(database_url, echo=echo, poolclass=NullPool)
    return create_async_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
    )


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory with objects kept usable after commit."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
