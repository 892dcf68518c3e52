from __future__ import annotations

import asyncio

import pytest

from conftest import FakeDriverError, FakePool, rows
from tasktracker.db.exceptions import RoutineBindingError, RoutineExecutionError, TransactionClosed
from tasktracker.db.invoker import (
    RoutineBusinessFailure,
    RoutineBusinessFailureError,
    RoutineInfrastructureFailure,
    RoutineInvoker,
    RoutineOk,
)
from tasktracker.db.transaction import TransactionManager

pytestmark = pytest.mark.asyncio

ROUTINE = "[functional].[spTaskGet]"


async def test_invoke_uses_single_use_connection(pool: FakePool) -> None:
    pool.respond(ROUTINE, rows({"idTask": 42}))
    invoker = RoutineInvoker(pool)

    result = await invoker.invoke(ROUTINE, {"idAccount": 1, "idTask": 42, "note": None})

    assert isinstance(result, RoutineOk)
    assert result.unwrap().tables == [[{"idTask": 42}]]
    assert pool.acquired == 1
    assert pool.outstanding == 0
    bound = pool.calls_to(ROUTINE)[0]
    assert bound.parameter_names == ("idAccount", "idTask", "note")
    assert bound.values == (1, 42, None)


async def test_business_error_is_distinguished(pool: FakePool) -> None:
    pool.respond(ROUTINE, FakeDriverError("Task not found", number=51000))
    invoker = RoutineInvoker(pool, business_error_codes=[51000])

    result = await invoker.invoke(ROUTINE, {"idTask": 9})

    assert isinstance(result, RoutineBusinessFailure)
    assert result.code == 51000
    assert result.message == "Task not found"
    assert pool.outstanding == 0
    with pytest.raises(RoutineBusinessFailureError):
        result.unwrap()


async def test_infrastructure_error_carries_context(pool: FakePool) -> None:
    cause = ConnectionResetError("socket closed")
    pool.respond(ROUTINE, cause)
    invoker = RoutineInvoker(pool)

    result = await invoker.invoke(ROUTINE, {"idTask": 9, "title": "private"})

    assert isinstance(result, RoutineInfrastructureFailure)
    error = result.error
    assert error.routine == ROUTINE
    assert error.parameters == {"idTask": "int", "title": "str"}
    assert error.cause is cause
    assert error.__cause__ is cause
    assert pool.outstanding == 0
    with pytest.raises(RoutineExecutionError):
        result.unwrap()


async def test_unlisted_error_code_is_infrastructure(pool: FakePool) -> None:
    pool.respond(ROUTINE, FakeDriverError("Deadlock victim", number=1205))

    result = await RoutineInvoker(pool).invoke(ROUTINE, {})

    assert isinstance(result, RoutineInfrastructureFailure)


async def test_binding_errors_propagate(pool: FakePool) -> None:
    with pytest.raises(RoutineBindingError):
        await RoutineInvoker(pool).invoke("bad name;", {})
    assert pool.acquired == 0


async def test_invoke_inside_transaction_does_not_finish_it(pool: FakePool) -> None:
    manager = TransactionManager(pool)
    invoker = RoutineInvoker(pool)
    context = await manager.begin()

    result = await invoker.invoke(ROUTINE, {"idTask": 1}, context)

    assert isinstance(result, RoutineOk)
    assert pool.acquired == 1
    connection = pool.connections[0]
    assert connection.events == ["begin"]
    assert connection.calls[0].routine == ROUTINE
    await manager.rollback(context)


async def test_invoke_on_finished_transaction_raises(pool: FakePool) -> None:
    manager = TransactionManager(pool)
    context = await manager.begin()
    await manager.commit(context)

    with pytest.raises(TransactionClosed):
        await RoutineInvoker(pool).invoke(ROUTINE, {}, context)


async def test_cancellation_waits_for_uncancellable_call(pool: FakePool) -> None:
    pool.execute_delay = 0.05
    invoker = RoutineInvoker(pool)

    task = asyncio.create_task(invoker.invoke(ROUTINE, {"idTask": 1}))
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert [call.routine for call in pool.completed] == [ROUTINE]
    assert pool.outstanding == 0


async def test_cancellation_reaches_cancellable_call() -> None:
    pool = FakePool(supports_cancellation=True)
    pool.execute_delay = 0.5
    invoker = RoutineInvoker(pool)

    task = asyncio.create_task(invoker.invoke(ROUTINE, {"idTask": 1}))
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert pool.completed == []
    assert pool.outstanding == 0
