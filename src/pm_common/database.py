from collections.abc import AsyncGenerator

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config.settings import settings
from src.pm_common.errors import AppError, ConcurrencyConflictError, StorageFaultError


engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_size=20,
    max_overflow=10,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# serialization_failure, deadlock_detected, lock_not_available
_CONTENTION_SQLSTATES = frozenset({"40001", "40P01", "55P03"})


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: yields an AsyncSession, auto-closes after request."""
    async with async_session_factory() as session:
        yield session


def translate_db_error(exc: SQLAlchemyError) -> AppError:
    """Map a driver failure to ConcurrencyConflict (retryable) or StorageFault (fatal)."""
    if isinstance(exc, DBAPIError):
        orig = exc.orig
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if sqlstate in _CONTENTION_SQLSTATES:
            return ConcurrencyConflictError()
    return StorageFaultError(f"Storage failure, operation not applied: {type(exc).__name__}")
