"""Transaction lifecycle management over pooled routine connections."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from enum import Enum

from .base import ConnectionPool, RoutineConnection
from .exceptions import TransactionClosed, TransactionError

logger = logging.getLogger(__name__)


class TransactionState(str, Enum):
    """Lifecycle states of a :class:`TransactionContext`."""

    OPEN = "open"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    CLOSED = "closed"


class TransactionContext:
    """A transaction owning exactly one pooled connection."""

    def __init__(self, connection: RoutineConnection) -> None:
        self._connection = connection
        self._state = TransactionState.OPEN

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is TransactionState.OPEN

    @property
    def connection(self) -> RoutineConnection:
        """Return the underlying connection, refusing once the context is finished."""
        self.ensure_open()
        return self._connection

    def ensure_open(self) -> None:
        if self._state is not TransactionState.OPEN:
            raise TransactionClosed(f"Transaction is {self._state.value}.")


class TransactionManager:
    """Begin, commit and roll back transactions on connections from ``pool``."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    async def begin(self) -> TransactionContext:
        """Acquire a dedicated connection and start a transaction on it."""
        connection = await self._pool.acquire()
        try:
            await connection.begin()
        except Exception as exc:
            await self._pool.release(connection)
            raise TransactionError("Failed to begin transaction.") from exc
        logger.debug("Transaction started")
        return TransactionContext(connection)

    async def commit(self, context: TransactionContext) -> None:
        """Commit ``context`` and release its connection."""
        await self._finish(context, TransactionState.COMMITTED)

    async def rollback(self, context: TransactionContext) -> None:
        """Roll back ``context`` and release its connection."""
        await self._finish(context, TransactionState.ROLLED_BACK)

    async def _finish(self, context: TransactionContext, target: TransactionState) -> None:
        connection = context.connection
        context._state = target
        try:
            if target is TransactionState.COMMITTED:
                await connection.commit()
            else:
                await connection.rollback()
        except Exception as exc:
            raise TransactionError(f"Failed to finish transaction as {target.value}.") from exc
        finally:
            await self._pool.release(connection)
        logger.debug("Transaction finished", extra={"state": target.value})

    @asynccontextmanager
    async def scope(self) -> AsyncIterator[TransactionContext]:
        """Yield a transaction that is finished and released on every exit path.

        A context still open when the block ends is committed on normal exit
        and rolled back when the block raises or is cancelled.
        """
        context = await self.begin()
        try:
            yield context
        except BaseException:
            if context.is_open:
                try:
                    await self.rollback(context)
                except TransactionError:
                    logger.exception("Rollback failed while unwinding a transaction scope.")
            raise
        else:
            if context.is_open:
                await self.commit(context)
        finally:
            context._state = TransactionState.CLOSED


__all__ = ["TransactionContext", "TransactionManager", "TransactionState"]
