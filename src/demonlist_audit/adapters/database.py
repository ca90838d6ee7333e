"""Database engine lifecycle for the SQL backend.

Key exports:
- init_database(...)      — Call at startup to create the engine
- close_database()        — Call at shutdown to dispose the engine
- get_session_factory()   — Session factory for SqlUnitOfWork
- create_tables()         — Create all tables (bootstrap and tooling)
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from demonlist_audit.core.models import Base
from demonlist_audit.errors import DatabaseNotInitializedError
from demonlist_audit.observability import get_logger

logger = get_logger(__name__)

# Module-level engine and session factory, initialized by init_database()
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_database(
    database_url: str,
    pool_size: int = 5,
    max_overflow: int = 2,
    pool_timeout: int = 30,
    echo: bool = False,
) -> None:
    """Create the engine and session factory.

    Must be called once at startup before any unit of work is opened.

    Args:
        database_url: SQLAlchemy async URL (e.g. postgresql+asyncpg://...).
        pool_size: Connection pool size.
        max_overflow: Max overflow connections above pool_size.
        pool_timeout: Seconds to wait for a connection before raising.
        echo: Echo SQL statements.
    """
    global _engine, _session_factory  # noqa: PLW0603

    logger.info("Initializing database engine", pool_size=pool_size, max_overflow=max_overflow)

    _engine = create_async_engine(
        database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        echo=echo,
        pool_pre_ping=True,
    )
    _session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def close_database() -> None:
    """Dispose the engine. A later init_database() call may re-create it."""
    global _engine, _session_factory  # noqa: PLW0603

    if _engine is not None:
        logger.info("Disposing database engine")
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the session factory.

    Raises:
        DatabaseNotInitializedError: If init_database() has not been called.
    """
    if _session_factory is None:
        raise DatabaseNotInitializedError()
    return _session_factory


async def create_tables() -> None:
    """Create every table declared on Base.metadata if missing.

    Raises:
        DatabaseNotInitializedError: If init_database() has not been called.
    """
    if _engine is None:
        raise DatabaseNotInitializedError()
    async with _engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured", tables=sorted(Base.metadata.tables))
