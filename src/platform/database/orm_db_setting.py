"""
SQLAlchemy async engine and session management

This module provides:
1. AsyncEngineManager: event-loop-aware engine + session maker
2. Base: declarative base for every checkout table
3. Database class (for DI, exposes a session() context manager)

Backends:
- PostgreSQL via asyncpg (production): listing rows are locked with SELECT ... FOR UPDATE
- SQLite via aiosqlite (local/test): every transaction starts with BEGIN IMMEDIATE so
  concurrent checkouts serialize on the database write lock instead of interleaving
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Optional

from sqlalchemy import event
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger


# SQLSTATE codes PostgreSQL uses when it aborts a transaction because of a concurrent writer
_PG_CONFLICT_SQLSTATES = frozenset({'40001', '40P01', '55P03'})


# =============================================================================
# Event-loop-aware Engine Manager
# =============================================================================


class AsyncEngineManager:
    """
    Manages the SQLAlchemy async engine with event loop awareness.

    Ensures the engine is always bound to the current event loop to prevent
    "Task got Future attached to a different loop" errors (TestClient and
    pytest-asyncio run on different loops).
    """

    def __init__(self) -> None:
        self._engine: Optional[AsyncEngine] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    def get_engine(self) -> AsyncEngine:
        try:
            current_loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop running, create engine without loop tracking
            if self._engine is None:
                self._engine = self._create_engine()
            return self._engine

        if self._loop is not current_loop:
            if self._engine is not None:
                Logger.base.warning('🔄 [DB] Event loop changed, replacing engine...')
                self._session_maker = None

            Logger.base.info(f'🔗 [DB] Creating engine for event loop {id(current_loop)}')
            self._engine = self._create_engine()
            self._loop = current_loop

        # pyrefly: ignore  # bad-return
        return self._engine

    def get_session_maker(self) -> async_sessionmaker[AsyncSession]:
        engine = self.get_engine()
        if self._session_maker is None:
            self._session_maker = async_sessionmaker(
                engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._session_maker

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_maker = None
        self._loop = None

    def _create_engine(self) -> AsyncEngine:
        if settings.IS_SQLITE:
            # Connections are never kept across event loops
            engine = create_async_engine(
                settings.DATABASE_URL_ASYNC, echo=False, poolclass=NullPool
            )
            _install_sqlite_listeners(engine)
            return engine

        return create_async_engine(
            settings.DATABASE_URL_ASYNC,
            echo=False,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_POOL_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_pre_ping=settings.DB_POOL_PRE_PING,
        )


def _install_sqlite_listeners(engine: AsyncEngine) -> None:
    """
    https://docs.sqlalchemy.org/en/20/dialects/sqlite.html#serializable-isolation-savepoints-transactional-ddl-asyncio-version

    The driver's own implicit BEGIN is disabled so SQLAlchemy can emit
    BEGIN IMMEDIATE, which takes the write lock up front.
    """

    @event.listens_for(engine.sync_engine, 'connect')
    def _sqlite_pragmas(dbapi_connection: Any, _: Any) -> None:
        dbapi_connection.isolation_level = None
        cur = dbapi_connection.cursor()
        cur.execute('PRAGMA journal_mode=WAL;')
        cur.execute(f'PRAGMA busy_timeout={settings.SQLITE_BUSY_TIMEOUT_MS};')
        cur.execute('PRAGMA synchronous=NORMAL;')
        cur.close()

    @event.listens_for(engine.sync_engine, 'begin')
    def _sqlite_begin_immediate(conn: Any) -> None:
        conn.exec_driver_sql('BEGIN IMMEDIATE')


# Global engine manager
_engine_manager = AsyncEngineManager()


def get_engine() -> AsyncEngine:
    return _engine_manager.get_engine()


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    return _engine_manager.get_session_maker()


async def dispose_engine() -> None:
    await _engine_manager.dispose()


# =============================================================================
# Base Model
# =============================================================================


class Base(DeclarativeBase):
    pass


# =============================================================================
# Table Creation
# =============================================================================


async def create_db_and_tables() -> None:
    """Create database tables if they don't exist"""
    # Register every mapped table on Base.metadata
    import src.service.checkout.driven_adapter.model  # noqa: F401

    try:
        async with get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    except Exception as e:
        error_msg = str(e).lower()
        if any(
            keyword in error_msg
            for keyword in ['already exists', 'duplicate key', 'unique constraint']
        ):
            Logger.base.info('Tables already exist, skipping creation')
        else:
            Logger.base.error(f'Error creating tables: {e}')
            raise


async def drop_db_and_tables() -> None:
    import src.service.checkout.driven_adapter.model  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# =============================================================================
# Helpers shared by repositories
# =============================================================================


def is_write_conflict(exc: BaseException) -> bool:
    """True when the database rejected the transaction because another writer holds the data."""
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    sqlstate = getattr(orig, 'sqlstate', None) or getattr(orig, 'pgcode', None)
    if sqlstate in _PG_CONFLICT_SQLSTATES:
        return True
    return 'database is locked' in str(orig).lower()


def ensure_utc(value: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


# =============================================================================
# Database Class (for DI)
# =============================================================================


class Database:
    """Session factory handed to repositories that run outside a unit of work."""

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session_maker = get_session_maker()
        async with session_maker() as session:
            yield session
