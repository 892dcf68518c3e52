"""Database abstractions used across the command pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Protocol, Union, runtime_checkable
from uuid import UUID

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .binder import BoundRoutine

ScalarOrNull = Union[None, bool, int, float, Decimal, str, bytes, date, datetime, time, UUID]

Record = dict[str, Any]
Table = list[Record]


@dataclass(slots=True)
class RawResult:
    """Result tables and affected row count returned by a routine."""

    tables: list[Table] = field(default_factory=list)
    rows_affected: int = 0


@runtime_checkable
class RoutineConnection(Protocol):
    """Connection-scoped executor borrowed from a :class:`ConnectionPool`."""

    supports_cancellation: bool

    async def begin(self) -> None:  # pragma: no cover - interface definition
        """Start a transaction on this connection."""

    async def commit(self) -> None:  # pragma: no cover - interface definition
        """Commit the active transaction."""

    async def rollback(self) -> None:  # pragma: no cover - interface definition
        """Roll back the active transaction."""

    async def execute(self, bound: "BoundRoutine") -> RawResult:  # pragma: no cover
        """Execute a bound routine and return every result set."""


@runtime_checkable
class ConnectionPool(Protocol):
    """Minimal pool surface the pipeline borrows connections from."""

    async def acquire(self) -> RoutineConnection:  # pragma: no cover - interface definition
        """Return a usable connection."""

    async def release(self, connection: RoutineConnection) -> None:  # pragma: no cover
        """Give a connection back to the pool."""


__all__ = [
    "ConnectionPool",
    "RawResult",
    "Record",
    "RoutineConnection",
    "ScalarOrNull",
    "Table",
]
