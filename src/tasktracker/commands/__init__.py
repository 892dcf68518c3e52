"""Generic command pipeline shared by every entity service."""

from __future__ import annotations

from .facade import CommandFacade, CommandResult, RoutineCall
from .gate import RequestPayload, RequestSource, ValidationGate, ValidationOutcome

__all__ = [
    "CommandFacade",
    "CommandResult",
    "RequestPayload",
    "RequestSource",
    "RoutineCall",
    "ValidationGate",
    "ValidationOutcome",
]
