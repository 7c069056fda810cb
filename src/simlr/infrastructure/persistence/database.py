"""Async engine and per-request session scopes."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from simlr.config import Settings
from simlr.config.settings import DatabaseSettings

logger = logging.getLogger(__name__)

# Seconds a SQLite writer waits on the database lock before "database is locked"
SQLITE_BUSY_TIMEOUT = 30


def engine_options(db: DatabaseSettings) -> dict[str, Any]:
    """create_async_engine kwargs for the configured backend."""
    options: dict[str, Any] = {"echo": db.echo, "pool_pre_ping": db.pool_pre_ping}
    if db.is_sqlite:
        options["connect_args"] = {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT}
    else:
        options |= {
            "pool_size": db.pool_size,
            "max_overflow": db.max_overflow,
            "pool_timeout": db.pool_timeout,
            "pool_recycle": db.pool_recycle,
        }
    return options


def _sqlite_foreign_keys_on(dbapi_conn: Any, _record: Any) -> None:
    # SQLite ships with FK enforcement off, per connection
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the engine and hands out one transactional session per unit of work."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        db = settings.database

        if db.sqlite_path is not None:
            db.sqlite_path.parent.mkdir(parents=True, exist_ok=True)

        self._engine = create_async_engine(db.url, **engine_options(db))
        if db.is_sqlite:
            event.listen(self._engine.sync_engine, "connect", _sqlite_foreign_keys_on)

        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """One transaction: committed on clean exit, rolled back (and re-raised) on error.

        Everything written inside the block, e.g. an edge upsert and its reason
        upsert, lands together or not at all.
        """
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> bool:
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def create_tables(self) -> None:
        from simlr.infrastructure.persistence.models import Base

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ready (%s)", self._engine.dialect.name)

    async def close(self) -> None:
        await self._engine.dispose()
