"""Async database engine and session factory."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from vault_casino.config import get_settings


def create_engine(database_url: str | None = None) -> AsyncEngine:
    """Create async database engine (defaults to the configured URL)."""
    settings = get_settings()
    return create_async_engine(
        database_url or settings.database_url,
        echo=settings.debug,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory shared by the ledger, the actor directory and handlers.

    Built at startup and handed around explicitly, so importing handlers or
    services never opens a database connection.
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
