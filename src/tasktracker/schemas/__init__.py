"""Pydantic schemas for public interfaces."""

from __future__ import annotations

from .system import (
    ErrorBody,
    HealthCheckResponse,
    ResponseEnvelope,
    RootResponse,
    error_response,
    success_response,
)
from .task import TaskCreate, TaskIdParams, TaskListQuery, TaskRead, TaskUpdate

__all__ = [
    "ErrorBody",
    "HealthCheckResponse",
    "ResponseEnvelope",
    "RootResponse",
    "TaskCreate",
    "TaskIdParams",
    "TaskListQuery",
    "TaskRead",
    "TaskUpdate",
    "error_response",
    "success_response",
]
