"""Bind keyword parameters onto a stored routine invocation."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping
from uuid import UUID

from .base import ScalarOrNull
from .exceptions import RoutineBindingError

_IDENTIFIER = r"(?:\[[A-Za-z_][A-Za-z0-9_]*\]|[A-Za-z_][A-Za-z0-9_]*)"
_ROUTINE_NAME_RE = re.compile(rf"^(?:{_IDENTIFIER}\.)?{_IDENTIFIER}$")
_PARAMETER_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_SCALAR_TYPES = (bool, int, float, Decimal, str, bytes, date, datetime, time, UUID)


@dataclass(frozen=True, slots=True)
class BoundRoutine:
    """A routine statement ready for a qmark-style DBAPI cursor."""

    routine: str
    statement: str
    values: tuple[ScalarOrNull, ...]
    parameter_names: tuple[str, ...]


def _coerce_value(name: str, value: Any) -> ScalarOrNull:
    if value is None:
        return None
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, _SCALAR_TYPES):
        return value
    raise RoutineBindingError(
        f"Parameter {name!r} has unsupported type {type(value).__name__}."
    )


def bind(routine: str, parameters: Mapping[str, Any]) -> BoundRoutine:
    """Map ``parameters`` onto an ``EXEC`` statement for ``routine``.

    Every key is bound, ``None`` included, so the routine always sees its full
    arity. Values are checked in order and the first unsupported one raises
    :class:`RoutineBindingError`.
    """
    if not _ROUTINE_NAME_RE.match(routine):
        raise RoutineBindingError(f"Invalid routine name {routine!r}.")

    names: list[str] = []
    values: list[ScalarOrNull] = []
    for name, value in parameters.items():
        if not _PARAMETER_NAME_RE.match(name):
            raise RoutineBindingError(f"Invalid parameter name {name!r}.")
        names.append(name)
        values.append(_coerce_value(name, value))

    assignments = ", ".join(f"@{name}=?" for name in names)
    statement = f"EXEC {routine} {assignments}" if assignments else f"EXEC {routine}"
    return BoundRoutine(
        routine=routine,
        statement=statement,
        values=tuple(values),
        parameter_names=tuple(names),
    )


def summarize_parameters(parameters: Mapping[str, Any]) -> dict[str, str | None]:
    """Return a redacted view of ``parameters`` exposing only value types."""
    return {
        name: None if value is None else type(value).__name__
        for name, value in parameters.items()
    }


__all__ = ["BoundRoutine", "bind", "summarize_parameters"]
