"""Shape raw routine result sets into the caller's expected form.

``Multi`` results addressed by name follow a positional policy: tables beyond
the supplied names are dropped and names beyond the returned tables map to an
empty table. :func:`result_set_mismatch` lets callers report when that policy
kicked in.
"""

from __future__ import annotations

from enum import Enum
from typing import Sequence, Union

from .base import RawResult, Table


class ExpectedReturn(str, Enum):
    """Declared shape of a routine's response."""

    SINGLE = "Single"
    MULTI = "Multi"
    NONE = "None"


ShapedResult = Union[Table, list[Table], dict[str, Table], int]


def coerce_expected_return(expected_return: object) -> ExpectedReturn:
    """Return ``expected_return`` as an :class:`ExpectedReturn`, ``Single`` when unrecognised."""
    if isinstance(expected_return, ExpectedReturn):
        return expected_return
    try:
        return ExpectedReturn(expected_return)
    except (TypeError, ValueError):
        return ExpectedReturn.SINGLE


def shape(
    raw: RawResult,
    expected_return: ExpectedReturn | str | None = ExpectedReturn.SINGLE,
    result_set_names: Sequence[str] | None = None,
) -> ShapedResult:
    """Convert ``raw`` according to ``expected_return``.

    Unknown modes fall back to ``Single``.
    """
    mode = coerce_expected_return(expected_return)

    if mode is ExpectedReturn.NONE:
        return raw.rows_affected

    if mode is ExpectedReturn.MULTI:
        if result_set_names:
            return {
                name: list(raw.tables[index]) if index < len(raw.tables) else []
                for index, name in enumerate(result_set_names)
            }
        return [list(table) for table in raw.tables]

    return list(raw.tables[0]) if raw.tables else []


def result_set_mismatch(raw: RawResult, result_set_names: Sequence[str] | None) -> bool:
    """Return ``True`` when named result sets and returned tables differ in count."""
    if not result_set_names:
        return False
    return len(result_set_names) != len(raw.tables)


__all__ = ["ExpectedReturn", "ShapedResult", "coerce_expected_return", "result_set_mismatch", "shape"]
