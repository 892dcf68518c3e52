from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from tasktracker.core.security import Permission
from tasktracker.db.binder import bind, summarize_parameters
from tasktracker.db.exceptions import RoutineBindingError


def test_bind_builds_exec_statement_in_mapping_order() -> None:
    bound = bind(
        "[functional].[spTaskCreate]",
        {"idAccount": 1, "title": "Buy milk", "dueDate": date(2026, 10, 20)},
    )

    assert bound.routine == "[functional].[spTaskCreate]"
    assert bound.statement == "EXEC [functional].[spTaskCreate] @idAccount=?, @title=?, @dueDate=?"
    assert bound.values == (1, "Buy milk", date(2026, 10, 20))
    assert bound.parameter_names == ("idAccount", "title", "dueDate")


def test_bind_keeps_null_parameters() -> None:
    bound = bind("functional.spTaskList", {"idAccount": 1, "priority": None, "completed": None})

    assert bound.parameter_names == ("idAccount", "priority", "completed")
    assert bound.values == (1, None, None)


def test_bind_without_parameters() -> None:
    bound = bind("spHealth", {})

    assert bound.statement == "EXEC spHealth"
    assert bound.values == ()


def test_bind_unwraps_enum_values() -> None:
    bound = bind("spAudit", {"permission": Permission.DELETE, "amount": Decimal("1.50")})

    assert bound.values == ("DELETE", Decimal("1.50"))


@pytest.mark.parametrize(
    "routine",
    ["", "spTask; DROP TABLE tasks", "[functional].[spTask] --", "a.b.c", "[functional]].[x]"],
)
def test_bind_rejects_unsafe_routine_names(routine: str) -> None:
    with pytest.raises(RoutineBindingError):
        bind(routine, {})


def test_bind_rejects_invalid_parameter_names() -> None:
    with pytest.raises(RoutineBindingError):
        bind("spTaskGet", {"id Task": 1})


def test_bind_fails_on_first_unsupported_value() -> None:
    with pytest.raises(RoutineBindingError) as exc_info:
        bind("spTaskCreate", {"title": "ok", "tags": ["a", "b"], "meta": {"x": 1}})

    assert "'tags'" in str(exc_info.value)


def test_summarize_parameters_redacts_values() -> None:
    summary = summarize_parameters({"title": "secret title", "idAccount": 7, "description": None})

    assert summary == {"title": "str", "idAccount": "int", "description": None}
