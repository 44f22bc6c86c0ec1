"""Database engine and session management."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from influencesnap.core.exceptions import StoreError
from influencesnap.models.schema import Base
from influencesnap.utils.config import DB_URL
from influencesnap.utils.logging import get_logger

logger = get_logger(__name__)


class Database:
    """
    Owns the async engine and its connection pool.
    
    The pool is shared by every session handed out, so overlapping
    requests each get their own session on a pooled connection.
    """
    
    def __init__(self, url: str = DB_URL):
        """
        Initialize engine and session factory.
        
        Args:
            url: Async SQLAlchemy database URL
        """
        self.url = url
        self.engine = create_async_engine(url, echo=False)
        
        if url.startswith("sqlite"):
            # Enable foreign keys for SQLite
            @event.listens_for(self.engine.sync_engine, "connect")
            def set_sqlite_pragma(dbapi_conn, connection_record):
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()
        
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    
    async def init(self) -> None:
        """
        Connect and create all tables.
        
        Raises:
            StoreError: If the store cannot be reached
        """
        logger.info(f"Initializing database at: {self.engine.url.render_as_string(hide_password=True)}")
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            raise StoreError(f"Cannot connect to store: {e}") from e
        logger.info("Database initialized successfully")
    
    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a session that commits on success and rolls back on error.
        
        Usage:
            async with database.session() as session:
                await session.execute(...)
        """
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
    
    async def close(self) -> None:
        """Clean up database connections."""
        await self.engine.dispose()
        logger.info("Database connections closed")


# Global database instance
_global_database: Optional[Database] = None


def get_database() -> Database:
    """
    Get the global database instance, created on first use.
    
    Returns:
        Database instance bound to the configured URL
    """
    global _global_database
    if _global_database is None:
        _global_database = Database()
    return _global_database
