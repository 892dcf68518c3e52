"""SQLAlchemy engine backed connection pool for stored routine calls."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncTransaction, create_async_engine

from ..core.config import Settings
from .base import RawResult, RoutineConnection, Table
from .binder import BoundRoutine

logger = logging.getLogger(__name__)


def _advance(cursor: Any) -> bool:
    """Move ``cursor`` to its next result set; ``False`` once there is none."""
    next_set = getattr(cursor, "nextset", None)
    if next_set is None:
        return False
    try:
        more = next_set()
    except (AttributeError, NotImplementedError):
        # the sqlite adapters expose nextset without driver support
        return False
    if more is None:
        # SQLAlchemy's asyncio cursor adapters discard the driver's return value
        return cursor.description is not None or cursor.rowcount != -1
    return bool(more)


def read_result_sets(cursor: Any) -> tuple[list[Table], int]:
    """Drain every result set from a DBAPI ``cursor``.

    Returns the row-returning sets as lists of dicts and the summed row counts
    of the statements that did not return rows. Works with plain pyodbc
    cursors and with the asyncio adapters handed out under ``run_sync``.
    """
    tables: list[Table] = []
    rows_affected = 0
    while True:
        if cursor.description:
            columns = [column[0] for column in cursor.description]
            tables.append([dict(zip(columns, row)) for row in cursor.fetchall()])
        elif cursor.rowcount and cursor.rowcount > 0:
            rows_affected += cursor.rowcount
        if not _advance(cursor):
            break
    return tables, rows_affected


def _execute_on_cursor(sync_connection: Connection, bound: BoundRoutine, commit: bool) -> RawResult:
    dbapi_connection = sync_connection.connection.dbapi_connection
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute(bound.statement, bound.values)
        tables, rows_affected = read_result_sets(cursor)
    finally:
        cursor.close()
    if commit:
        dbapi_connection.commit()
    return RawResult(tables=tables, rows_affected=rows_affected)


class EngineConnection:
    """:class:`RoutineConnection` over a SQLAlchemy ``AsyncConnection``."""

    supports_cancellation = False

    def __init__(self, connection: AsyncConnection) -> None:
        self._connection = connection
        self._transaction: AsyncTransaction | None = None

    @property
    def raw(self) -> AsyncConnection:
        return self._connection

    async def begin(self) -> None:
        self._transaction = await self._connection.begin()

    async def commit(self) -> None:
        if self._transaction is not None:
            await self._transaction.commit()
            self._transaction = None

    async def rollback(self) -> None:
        if self._transaction is not None:
            await self._transaction.rollback()
            self._transaction = None

    async def execute(self, bound: BoundRoutine) -> RawResult:
        return await self._connection.run_sync(
            _execute_on_cursor,
            bound,
            self._transaction is None,
        )

    async def close(self) -> None:
        await self._connection.close()


class EnginePool:
    """Borrow :class:`EngineConnection` objects from an ``AsyncEngine``.

    The pool does not create itself lazily; the process entry point builds it
    and calls :meth:`dispose` on shutdown.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    @classmethod
    def from_settings(cls, settings: Settings) -> "EnginePool":
        engine = create_async_engine(
            settings.database_url,
            echo=settings.db_echo,
            pool_pre_ping=True,
        )
        return cls(engine)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def acquire(self) -> EngineConnection:
        connection = await self._engine.connect()
        return EngineConnection(connection)

    async def release(self, connection: RoutineConnection) -> None:
        if isinstance(connection, EngineConnection):
            await connection.close()

    async def dispose(self) -> None:
        await self._engine.dispose()
        logger.info("Database connection pool closed")


__all__ = ["EngineConnection", "EnginePool", "read_result_sets"]
