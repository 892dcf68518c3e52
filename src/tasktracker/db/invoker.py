"""Execute stored routines and classify their outcome.

The invoker never raises for routine failures. It returns one of
:class:`RoutineOk`, :class:`RoutineBusinessFailure` or
:class:`RoutineInfrastructureFailure` so callers branch on a type instead of
inspecting driver error codes.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass
from typing import Any, Mapping, TypeVar, Union

from .base import ConnectionPool, RawResult, RoutineConnection
from .binder import BoundRoutine, bind, summarize_parameters
from .exceptions import RoutineExecutionError
from .transaction import TransactionContext

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CODE_MARKER_RE = re.compile(r"\((\d{4,6})\)")
_ODBC_PREFIX_RE = re.compile(r"^(?:\s*\[[^\]]*\])+\s*")
_DRIVER_SUFFIX_RE = re.compile(r"\s*(?:\(\d{4,6}\))?\s*(?:\(SQL[A-Za-z]+\))?\s*$")


@dataclass(frozen=True, slots=True)
class RoutineOk:
    """The routine completed and produced ``raw``."""

    raw: RawResult

    def unwrap(self) -> RawResult:
        return self.raw


@dataclass(frozen=True, slots=True)
class RoutineBusinessFailure:
    """The routine rejected the call with a domain rule violation."""

    routine: str
    code: int
    message: str

    def unwrap(self) -> RawResult:
        raise RoutineBusinessFailureError(self)


@dataclass(frozen=True, slots=True)
class RoutineInfrastructureFailure:
    """Connectivity or unexpected SQL fault while running the routine."""

    error: RoutineExecutionError

    def unwrap(self) -> RawResult:
        raise self.error


RoutineResult = Union[RoutineOk, RoutineBusinessFailure, RoutineInfrastructureFailure]


class RoutineBusinessFailureError(Exception):
    """Raised by :meth:`RoutineBusinessFailure.unwrap`."""

    def __init__(self, failure: RoutineBusinessFailure) -> None:
        super().__init__(failure.message)
        self.failure = failure


def _iter_causes(exc: BaseException) -> Iterable[BaseException]:
    """Yield ``exc`` and its wrapped causes, innermost first."""
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and all(current is not seen for seen in chain):
        chain.append(current)
        current = getattr(current, "orig", None) or current.__cause__
    return reversed(chain)


def extract_error_code(exc: BaseException) -> int | None:
    """Return the server error number carried by a driver exception, if any."""
    for candidate in _iter_causes(exc):
        number = getattr(candidate, "number", None)
        if isinstance(number, int):
            return number
        args = getattr(candidate, "args", ())
        if args and isinstance(args[0], int) and not isinstance(args[0], bool):
            return args[0]
        for arg in args:
            if isinstance(arg, str):
                # the driver appends the native number after the routine text
                markers = _CODE_MARKER_RE.findall(arg)
                if markers:
                    return int(markers[-1])
    return None


def extract_error_message(exc: BaseException) -> str:
    """Return the routine's own message with driver decoration removed."""
    for candidate in _iter_causes(exc):
        args = getattr(candidate, "args", ())
        texts = [arg for arg in args if isinstance(arg, str)]
        if texts:
            text = texts[-1]
            text = _ODBC_PREFIX_RE.sub("", text)
            text = _DRIVER_SUFFIX_RE.sub("", text)
            return text.strip()
    return str(exc)


async def _run_to_completion(awaitable: Awaitable[T], *, cancellable: bool) -> T:
    """Await ``awaitable``; if not ``cancellable``, finish it before honouring a cancel."""
    if cancellable:
        return await awaitable
    task = asyncio.ensure_future(awaitable)
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        await asyncio.wait({task})
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Routine failed after the caller was cancelled.", exc_info=task.exception())
        raise


class RoutineInvoker:
    """Run named routines against pooled connections or an open transaction."""

    def __init__(
        self,
        pool: ConnectionPool,
        *,
        business_error_codes: Iterable[int] = (51000,),
    ) -> None:
        self._pool = pool
        self._business_error_codes = frozenset(business_error_codes)

    async def invoke(
        self,
        routine: str,
        parameters: Mapping[str, Any],
        transaction: TransactionContext | None = None,
    ) -> RoutineResult:
        """Execute ``routine`` with ``parameters`` and classify the outcome.

        Binding errors and reuse of a finished transaction are programming
        errors and propagate as :class:`RoutineBindingError` and
        :class:`TransactionClosed`.
        """
        bound = bind(routine, parameters)
        connection = transaction.connection if transaction is not None else None
        try:
            if connection is not None:
                raw = await self._execute(connection, bound)
            else:
                raw = await self._execute_single_use(bound)
        except Exception as exc:
            return self._classify(routine, parameters, exc)
        logger.debug(
            "Routine executed",
            extra={
                "routine": routine,
                "tables": len(raw.tables),
                "rows_affected": raw.rows_affected,
            },
        )
        return RoutineOk(raw)

    async def _execute(self, connection: RoutineConnection, bound: BoundRoutine) -> RawResult:
        return await _run_to_completion(
            connection.execute(bound),
            cancellable=bool(getattr(connection, "supports_cancellation", False)),
        )

    async def _execute_single_use(self, bound: BoundRoutine) -> RawResult:
        connection = await self._pool.acquire()
        try:
            return await self._execute(connection, bound)
        finally:
            await self._pool.release(connection)

    def _classify(
        self,
        routine: str,
        parameters: Mapping[str, Any],
        exc: Exception,
    ) -> RoutineBusinessFailure | RoutineInfrastructureFailure:
        code = extract_error_code(exc)
        if code is not None and code in self._business_error_codes:
            message = extract_error_message(exc)
            logger.info(
                "Routine signalled a business rule violation",
                extra={"routine": routine, "error_code": code},
            )
            return RoutineBusinessFailure(routine=routine, code=code, message=message)

        summary = summarize_parameters(parameters)
        error = RoutineExecutionError(routine, summary, exc)
        error.__cause__ = exc
        logger.error(
            "Routine execution failed",
            extra={"routine": routine, "parameters": summary, "error_code": code},
            exc_info=exc,
        )
        return RoutineInfrastructureFailure(error)


__all__ = [
    "RoutineBusinessFailure",
    "RoutineBusinessFailureError",
    "RoutineInfrastructureFailure",
    "RoutineInvoker",
    "RoutineOk",
    "RoutineResult",
    "extract_error_code",
    "extract_error_message",
]
