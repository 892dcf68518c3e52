"""Database access layer: binding, invocation, shaping and transactions."""

from __future__ import annotations

from .base import ConnectionPool, RawResult, RoutineConnection, ScalarOrNull
from .binder import BoundRoutine, bind, summarize_parameters
from .exceptions import (
    DatabaseError,
    RoutineBindingError,
    RoutineExecutionError,
    TransactionClosed,
    TransactionError,
)
from .invoker import (
    RoutineBusinessFailure,
    RoutineInfrastructureFailure,
    RoutineInvoker,
    RoutineOk,
    RoutineResult,
)
from .shaper import ExpectedReturn, ShapedResult, shape
from .transaction import TransactionContext, TransactionManager, TransactionState

__all__ = [
    "BoundRoutine",
    "ConnectionPool",
    "DatabaseError",
    "ExpectedReturn",
    "RawResult",
    "RoutineBindingError",
    "RoutineBusinessFailure",
    "RoutineConnection",
    "RoutineExecutionError",
    "RoutineInfrastructureFailure",
    "RoutineInvoker",
    "RoutineOk",
    "RoutineResult",
    "ScalarOrNull",
    "ShapedResult",
    "TransactionClosed",
    "TransactionContext",
    "TransactionError",
    "TransactionManager",
    "TransactionState",
    "bind",
    "shape",
    "summarize_parameters",
]
