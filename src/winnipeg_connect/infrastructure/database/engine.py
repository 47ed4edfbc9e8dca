"""Async database engine and session management.

Provides:
    - get_async_session: FastAPI dependency that yields a session per request.
    - get_session_factory: Session factory for work outside a request
      (the quote expiry sweep, scripts).
    - init_db / close_db: Lifecycle hooks for FastAPI's lifespan.

Usage in FastAPI:
    @router.get("/jobs")
    async def list_jobs(session: AsyncSession = Depends(get_async_session)):
        ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from winnipeg_connect.config import get_settings
from winnipeg_connect.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy.ext.asyncio import AsyncEngine

logger = get_logger(__name__)

# Module-level singletons (initialized in init_db)
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let SQLAlchemy own BEGIN on SQLite so SAVEPOINTs (begin_nested) work.

    The sqlite3 driver defers BEGIN on its own, which breaks nested
    transactions; this hands transaction control back to SQLAlchemy.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):  # noqa: ANN001
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):  # noqa: ANN001
        conn.exec_driver_sql("BEGIN")


def _get_engine() -> AsyncEngine:
    """Get or create the async engine (lazy singleton)."""
    global _engine
    if _engine is None:
        settings = get_settings()
        kwargs: dict = {"echo": settings.db_echo_sql, "pool_pre_ping": True}
        is_sqlite = settings.database_url.startswith("sqlite")
        if not is_sqlite:
            kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_timeout=settings.db_pool_timeout,
            )
        _engine = create_async_engine(settings.database_url, **kwargs)
        if is_sqlite:
            enable_sqlite_savepoints(_engine)
        logger.info(
            "database.engine_created",
            dialect=_engine.dialect.name,
            pool_size=kwargs.get("pool_size"),
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory (lazy singleton)."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=_get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async database session.

    The session is committed on success or rolled back on error, so every
    request is a single unit of work: a failed gateway call or a lost race
    leaves no partial writes behind.
    """
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Initialize the database engine and create tables if they don't exist.

    Called during FastAPI's lifespan startup. Outside development, run the
    Alembic migrations instead of create_all.
    """
    from winnipeg_connect.infrastructure.database.orm_models import Base

    engine = _get_engine()
    settings = get_settings()

    if settings.is_development:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("database.tables_created")
    else:
        logger.info("database.skipping_create_all", reason="not in development mode")


async def close_db() -> None:
    """Dispose of the database engine. Called during FastAPI's lifespan shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("database.engine_disposed")
        _engine = None
        _session_factory = None
