"""
Async Database Manager for PostgreSQL with SQLAlchemy
- Model registration from settings
- Table initialization on startup
- Session lifecycle with commit/rollback
"""
import logging
from importlib import import_module
from asyncio import current_task
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_scoped_session,
    create_async_engine,
    async_sessionmaker,
    AsyncEngine
)
from internlink.core.config import settings
from internlink.models.base import Base

logger = logging.getLogger(__name__)


def register_models():
    """Import every model module so the declarative metadata is complete."""
    for model in settings.DB_MODELS:
        import_module(model)
    return Base.metadata


class DatabaseSessionManager:
    """Manages async database sessions and schema setup."""

    def __init__(self):
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None

    async def init(self, database_url: Optional[str] = None):
        """Initialize the engine, create tables and build the session factory."""
        db_url = database_url or settings.DATABASE_URL
        engine_kwargs = {"echo": settings.DATABASE_ECHO, "pool_pre_ping": True}
        if db_url.startswith("postgresql"):
            engine_kwargs.update(
                pool_size=15,
                max_overflow=5,
                pool_timeout=30,
                pool_recycle=300,
            )

        try:
            self.engine = create_async_engine(db_url, **engine_kwargs)
            async with self.engine.begin() as conn:
                await self._setup_database(conn)

            self.session_factory = async_sessionmaker(
                bind=self.engine,
                expire_on_commit=False,
                autoflush=False
            )
        except Exception as e:
            logger.error(f"❌ Database initialization failed: {e}")
            raise

    async def _setup_database(self, conn):
        """Initialize database schema"""
        await conn.execute(text("SELECT 1"))
        metadata = register_models()
        logger.info(f"📝 Models registered: {list(metadata.tables.keys())}")
        await conn.run_sync(metadata.create_all)

    @property
    def session(self) -> async_scoped_session:
        """Scoped session for the current async task"""
        if not self.session_factory:
            raise RuntimeError("DatabaseSessionManager not initialized")
        return async_scoped_session(
            self.session_factory,
            scopefunc=current_task
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Context manager for safe session handling"""
        async with self.session() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def close(self):
        """Cleanup connection pool"""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None


# Initialize session manager
session_manager = DatabaseSessionManager()


async def aget_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions
    Usage:
    @router.get("/")
    async def endpoint(db: AsyncSession = Depends(aget_db)):
        ...
    """
    async with session_manager.get_session() as session:
        yield session
