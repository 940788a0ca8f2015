from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional

from sqlalchemy import event, inspect, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from .models import DatabaseConfig
from .schema import REQUIRED_TABLES, metadata

LOGGER = logging.getLogger("gwr.buildingdata.db")


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """Turn on foreign key enforcement for every new SQLite connection.

    SQLite ignores ``ON DELETE CASCADE`` unless the pragma is set per connection.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class DatabaseSession:
    """Manage the SQLAlchemy engine of the building metadata store."""

    def __init__(self, config: DatabaseConfig) -> None:
        self._config = config
        self._engine: Optional[AsyncEngine] = None

    async def open(self) -> AsyncEngine:
        if self._engine is not None:
            return self._engine

        deadline = time.time() + self._config.connect_timeout
        attempts = 0
        while True:
            attempts += 1
            try:
                LOGGER.info("Creating SQLAlchemy engine (attempt %s)", attempts)
                async_engine = create_async_engine(self._config.url)
                if async_engine.dialect.name == "sqlite":
                    enable_sqlite_foreign_keys(async_engine)
                async with async_engine.connect() as connection:
                    await connection.execute(text("SELECT 1"))
                self._engine = async_engine
                LOGGER.info("Connected to database")
                break
            except OperationalError as exc:
                if time.time() >= deadline:
                    raise RuntimeError("Database connection timed out") from exc
                LOGGER.warning("Database not ready yet (%s), retrying...", exc)
                await asyncio.sleep(min(2 * attempts, 10))

        if self._config.apply_schema:
            LOGGER.info("Applying database schema as requested by configuration")
            await self.ensure_schema()
        return self._engine

    async def ensure_schema(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Engine not initialised; call open()")
        return self._engine

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None


def create_source_engine(url: str) -> AsyncEngine:
    """Engine for the registry export; a missing file fails on first use."""
    return create_async_engine(url)


async def schema_ready(conn: AsyncConnection) -> bool:
    """Return True if every building metadata table exists."""

    def _has_tables(sync_conn) -> bool:
        inspector = inspect(sync_conn)
        return all(inspector.has_table(name) for name in REQUIRED_TABLES)

    return await conn.run_sync(_has_tables)
