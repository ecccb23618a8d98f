"""Database handle: connection pool, sessions, and transaction helpers."""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .config import settings
from .logger import logger

# Base class for ORM models
Base = declarative_base()

T = TypeVar("T")


class Database:
    """Owns one async engine and its session factory.

    Built once by the application lifespan and handed to request handlers
    through the ``get_db`` dependency, so tests can swap in their own
    instance without touching module state.
    """

    def __init__(self, url: str, **engine_options: Any):
        self.url = url
        self.engine = create_async_engine(url, **engine_options)
        self.session_factory = async_sessionmaker(
            self.engine, expire_on_commit=False, class_=AsyncSession
        )

    @classmethod
    def from_settings(cls) -> "Database":
        """Create the pooled production handle from application settings."""
        options: dict[str, Any] = {"echo": False, "pool_pre_ping": True}
        if settings.is_postgres:
            options.update(
                pool_size=settings.DB_POOL_SIZE,
                max_overflow=settings.DB_MAX_OVERFLOW,
                pool_timeout=settings.DB_POOL_TIMEOUT,
                pool_recycle=settings.DB_POOL_RECYCLE,
                connect_args={"timeout": settings.DB_CONNECT_TIMEOUT},
            )
        database = cls(settings.DB_URL, **options)
        logger.info(
            f"Database engine configured: pool_size={settings.DB_POOL_SIZE}, "
            f"max_overflow={settings.DB_MAX_OVERFLOW}, timeout={settings.DB_POOL_TIMEOUT}s"
        )
        return database

    def session(self) -> AsyncSession:
        """Open a new session. Use as ``async with db.session() as session``."""
        return self.session_factory()

    # ==================== Query Helpers ====================

    async def fetch_all(self, statement, params: dict | None = None) -> list[dict]:
        """Run one statement and return every row as a plain dict."""
        async with self.session() as session:
            result = await session.execute(statement, params or {})
            return [dict(row) for row in result.mappings().all()]

    async def fetch_one(self, statement, params: dict | None = None) -> dict | None:
        """Run one statement and return the first row as a dict, or None."""
        async with self.session() as session:
            result = await session.execute(statement, params or {})
            row = result.mappings().first()
            return dict(row) if row is not None else None

    async def run_in_transaction(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run ``work(session)`` inside one transaction.

        Commits when ``work`` returns, rolls back when it raises. The
        connection goes back to the pool on every exit path.
        """
        async with self.session() as session:
            try:
                async with session.begin():
                    return await work(session)
            except Exception as e:
                logger.debug(f"Transaction rolled back: {type(e).__name__}: {e}")
                raise

    # ==================== Lifecycle ====================

    async def check_connection(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {str(e)}")
            return False

    async def create_all(self) -> None:
        """Create every mapped table. Production schemas come from Alembic."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def dispose(self) -> None:
        """Close all pooled connections. Called from the application shutdown."""
        logger.info("Disposing database engine and closing connections")
        await self.engine.dispose()
        logger.info("Database connections closed successfully")
