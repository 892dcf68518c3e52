"""Exceptions raised by the database layer.

These carry no HTTP semantics; the command facade classifies them.
"""

from __future__ import annotations

from typing import Any, Mapping


class DatabaseError(Exception):
    """Base class for database layer failures."""


class RoutineBindingError(DatabaseError):
    """A routine name or parameter could not be bound."""


class RoutineExecutionError(DatabaseError):
    """Infrastructure or unexpected SQL fault while executing a routine."""

    def __init__(
        self,
        routine: str,
        parameters: Mapping[str, Any],
        cause: BaseException,
    ) -> None:
        super().__init__(f"Routine {routine} failed: {cause.__class__.__name__}")
        self.routine = routine
        self.parameters = dict(parameters)
        self.cause = cause


class TransactionError(DatabaseError):
    """The driver failed while beginning, committing or rolling back."""


class TransactionClosed(DatabaseError):
    """A committed or rolled back transaction context was used again."""


__all__ = [
    "DatabaseError",
    "RoutineBindingError",
    "RoutineExecutionError",
    "TransactionClosed",
    "TransactionError",
]
