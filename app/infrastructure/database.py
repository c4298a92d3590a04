"""Database Session Manager — async engine, per-call sessions, and error mapping.

Invariants:
    - A session that raises is rolled back before the error leaves the context
    - SQLAlchemy exceptions never escape: each is mapped to DatabaseError
      (core/errors.py) with the stage that failed
    - Sessions are never shared between concurrent tasks: each per-record
      update of the identity store opens its own

Design Decisions:
    - Singleton db_manager initialized in the FastAPI lifespan, read at request time
    - expire_on_commit=False: rows stay readable after commit in async code
    - SQLite URLs skip pool sizing: aiosqlite brings its own pool class
    - Mapping table ordered most-specific first: IntegrityError and
      OperationalError are both DBAPIError subclasses
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

from app.core.errors import DatabaseError

logger = logging.getLogger(__name__)

_ERROR_MAP: tuple[tuple[type[SQLAlchemyError], str, str], ...] = (
    (IntegrityError, "Relation constraint violated", "commit"),
    (OperationalError, "Store unreachable or busy", "execute"),
    (DBAPIError, "Driver rejected the statement", "query"),
    (SQLAlchemyError, "Store operation failed", "unknown"),
)


def _to_database_error(exc: SQLAlchemyError) -> DatabaseError:
    for exc_type, message, stage in _ERROR_MAP:
        if isinstance(exc, exc_type):
            return DatabaseError(message, stage)
    return DatabaseError("Store operation failed", "unknown")


class DatabaseSessionManager:
    """Owns the async engine; hands out one short-lived session per store call."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        engine_kwargs: dict = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_recycle=3600,
            )
        self.engine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @property
    def dialect_name(self) -> str:
        """'postgresql' or 'sqlite': selects the ON CONFLICT insert construct."""
        return self.engine.dialect.name

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Session for one unit of work; rolled back and mapped on failure."""
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            mapped = _to_database_error(e)
            logger.error(
                f"Store {mapped.operation} failed ({type(e).__name__}): {e}",
            )
            raise mapped from e
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """SELECT 1 round trip for the readiness probe."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Store health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


# Singleton (initialized on startup)
db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    return db_manager


def get_db_manager() -> DatabaseSessionManager:
    """Return the process-wide manager; fails loudly before startup."""
    if db_manager is None:
        raise RuntimeError("Database not initialized")
    return db_manager
