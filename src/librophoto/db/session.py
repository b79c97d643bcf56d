"""Async database engine and session factory using SQLAlchemy 2.0 patterns."""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from librophoto.db.base import Base


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for the metadata store.

    SQLite connections get foreign key enforcement switched on so deleting
    a book cascades to its captures as it does on PostgreSQL.
    """
    engine = create_async_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,  # Verify connections before using
    )

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory with recommended settings."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Records are mapped to dataclasses after commit
        autoflush=False,
    )


async def init_models(engine: AsyncEngine) -> None:
    """Create the books and captures tables if they don't exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
