"""Single entry point combining the gate, invoker, shaper and transactions."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

from pydantic import BaseModel

from ..core.security import Credential, PermissionRequirement
from ..db.exceptions import DatabaseError
from ..db.invoker import RoutineBusinessFailureError, RoutineInvoker
from ..db.shaper import ExpectedReturn, ShapedResult, coerce_expected_return, result_set_mismatch, shape
from ..db.transaction import TransactionContext, TransactionManager
from ..errors import ApplicationError, RoutineBusinessError, ServerError
from .gate import RequestPayload, RequestSource, ValidationGate

logger = logging.getLogger(__name__)

SchemaType = TypeVar("SchemaType", bound=BaseModel)

ParameterBuilder = Callable[[SchemaType, Credential], Mapping[str, Any]]
CallBuilder = Callable[[SchemaType, Credential], Sequence["RoutineCall"]]


@dataclass(frozen=True, slots=True)
class RoutineCall:
    """One routine invocation built for the current request."""

    name: str
    parameters: Mapping[str, Any] = field(default_factory=dict)
    expected_return: ExpectedReturn | str = ExpectedReturn.SINGLE
    result_set_names: Sequence[str] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "expected_return", coerce_expected_return(self.expected_return))


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Shaped routine data, or the classified error that prevented it."""

    data: Any = None
    error: ApplicationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.data


class CommandFacade:
    """Validate, authorize, execute and shape one command.

    This is the only place that turns database failures into API errors.
    """

    def __init__(
        self,
        invoker: RoutineInvoker,
        transactions: TransactionManager,
        gate: ValidationGate | None = None,
    ) -> None:
        self._invoker = invoker
        self._transactions = transactions
        self._gate = gate or ValidationGate()

    async def execute(
        self,
        *,
        permissions: Sequence[PermissionRequirement],
        source: RequestSource,
        payload: RequestPayload,
        schema: type[SchemaType],
        credential: Credential,
        routine: str,
        build_parameters: ParameterBuilder,
        expected_return: ExpectedReturn | str = ExpectedReturn.SINGLE,
        result_set_names: Sequence[str] | None = None,
        transactional: bool = False,
    ) -> CommandResult:
        """Run a single routine for the request.

        ``transactional`` wraps the call in a transaction scope; single routines
        are expected to be atomic on their own.
        """
        outcome = self._gate.validate(source, payload, schema, permissions, credential)
        if outcome.error is not None:
            return CommandResult(error=outcome.error)

        call = RoutineCall(
            name=routine,
            parameters=build_parameters(outcome.params, credential),
            expected_return=expected_return,
            result_set_names=result_set_names,
        )
        try:
            if transactional:
                async with self._transactions.scope() as transaction:
                    data = await self._run(call, transaction)
            else:
                data = await self._run(call, None)
        except RoutineBusinessFailureError as exc:
            return CommandResult(error=RoutineBusinessError(exc.failure.message, routine=exc.failure.routine))
        except DatabaseError:
            logger.exception("Command failed", extra={"routine": routine})
            return CommandResult(error=ServerError())
        return CommandResult(data=data)

    async def execute_batch(
        self,
        *,
        permissions: Sequence[PermissionRequirement],
        source: RequestSource,
        payload: RequestPayload,
        schema: type[SchemaType],
        credential: Credential,
        build_calls: CallBuilder,
    ) -> CommandResult:
        """Run several routines in one transaction; data is one shaped result per call.

        The first failing routine rolls the whole batch back.
        """
        outcome = self._gate.validate(source, payload, schema, permissions, credential)
        if outcome.error is not None:
            return CommandResult(error=outcome.error)

        calls = list(build_calls(outcome.params, credential))
        results: list[ShapedResult] = []
        try:
            async with self._transactions.scope() as transaction:
                for call in calls:
                    results.append(await self._run(call, transaction))
        except RoutineBusinessFailureError as exc:
            return CommandResult(error=RoutineBusinessError(exc.failure.message, routine=exc.failure.routine))
        except DatabaseError:
            logger.exception(
                "Command batch failed",
                extra={"routines": [call.name for call in calls]},
            )
            return CommandResult(error=ServerError())
        return CommandResult(data=results)

    async def _run(self, call: RoutineCall, transaction: TransactionContext | None) -> ShapedResult:
        result = await self._invoker.invoke(call.name, call.parameters, transaction)
        raw = result.unwrap()
        if call.expected_return is ExpectedReturn.MULTI and result_set_mismatch(raw, call.result_set_names):
            logger.warning(
                "Result set names do not match returned tables",
                extra={
                    "routine": call.name,
                    "names": len(call.result_set_names or ()),
                    "tables": len(raw.tables),
                },
            )
        return shape(raw, call.expected_return, call.result_set_names)


__all__ = ["CallBuilder", "CommandFacade", "CommandResult", "ParameterBuilder", "RoutineCall"]
