from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from config.settings import IS_PRODUCTION

# Default to SQLite with aiosqlite, but allow override via DATABASE_URL env var
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./cohost.db"

# Create declarative base for models
Base = declarative_base()


def normalize_database_url(database_url: str) -> str:
    """Map plain postgres URLs onto the async psycopg driver."""
    if database_url.startswith("postgres://"):
        database_url = "postgresql://" + database_url[len("postgres://"):]
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return database_url


def build_engine(database_url: str = None) -> AsyncEngine:
    """
    Create the async engine for the given URL.

    Production deployments must point at PostgreSQL; SQLite is refused there.
    """
    if IS_PRODUCTION:
        if not database_url:
            raise RuntimeError("DATABASE_URL must be set in production. SQLite is not allowed in production.")
        if "sqlite" in database_url.lower():
            raise RuntimeError("SQLite is forbidden in production. Use a PostgreSQL DATABASE_URL.")

    return create_async_engine(
        normalize_database_url(database_url or DEFAULT_DATABASE_URL),
        echo=False,
        future=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Create the async session factory bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine):
    """
    Initialize the database by creating all tables.
    This should be called on application startup.
    """
    async with engine.begin() as conn:
        # Import models here to ensure they're registered with Base
        import database_models  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)


async def ping_db(session: AsyncSession) -> None:
    """Run a trivial query; raises if the store is unreachable."""
    await session.execute(text("SELECT 1"))


async def close_db(engine: AsyncEngine) -> None:
    """Dispose the engine's connection pool."""
    await engine.dispose()


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function that yields a database session.

    The session factory is built at startup and stored on ``app.state``.
    The session is committed when the handler returns and rolled back if it
    raises.

    Example:
        @router.get("/tasks")
        async def list_tasks(db: AsyncSession = Depends(get_db)):
            ...
    """
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
