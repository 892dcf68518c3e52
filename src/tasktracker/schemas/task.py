"""Task-related Pydantic schemas.

Field names are exposed in camelCase to match the stored routine parameters.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

TASK_READ_EXAMPLE = {
    "idTask": 42,
    "idUser": 1,
    "title": "Buy milk",
    "description": None,
    "dueDate": "2026-10-20",
    "priority": 1,
    "recurrence": None,
    "attachments": None,
    "tags": None,
    "estimatedTime": 15,
    "assignedUsers": None,
    "completed": False,
    "dateCreated": "2026-10-19T08:30:00Z",
    "dateModified": "2026-10-19T08:30:00Z",
}


class TaskSchema(BaseModel):
    """Base configuration shared by task schemas."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskFields(TaskSchema):
    """Optional descriptive fields accepted on create and update.

    Body integers are strict: ``"1"`` is rejected where ``1`` is expected.
    Route and query values arrive as text and stay lax.
    """

    description: str | None = Field(default=None, max_length=1000)
    due_date: date | None = None
    recurrence: str | None = None
    attachments: str | None = None
    tags: str | None = None
    estimated_time: int | None = Field(default=None, ge=5, le=1440, strict=True)
    assigned_users: str | None = None


class TaskCreate(TaskFields):
    """Payload for creating a new task."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"title": "Buy milk", "priority": 1}},
    )

    title: str = Field(min_length=3, max_length=100)
    priority: int = Field(default=1, ge=0, le=2, strict=True)


class TaskUpdate(TaskFields):
    """Payload for replacing an existing task, route ``id`` included."""

    id: int = Field(gt=0)
    title: str = Field(min_length=3, max_length=100)
    priority: int = Field(ge=0, le=2, strict=True)
    completed: int = Field(ge=0, le=1, strict=True)


class TaskIdParams(TaskSchema):
    """Route parameters addressing a single task."""

    id: int = Field(gt=0)


class TaskListQuery(TaskSchema):
    """Optional filters for listing tasks."""

    completed: int | None = Field(default=None, ge=0, le=1)
    priority: int | None = Field(default=None, ge=0, le=2)
    due_date_from: date | None = None
    due_date_to: date | None = None


class TaskRead(TaskSchema):
    """Task row as returned by the task routines."""

    model_config = ConfigDict(json_schema_extra={"example": TASK_READ_EXAMPLE})

    id_task: int
    id_user: int | None = None
    title: str
    description: str | None = None
    due_date: datetime | date | None = None
    priority: int = 1
    recurrence: str | None = None
    attachments: str | None = None
    tags: str | None = None
    estimated_time: int | None = None
    assigned_users: str | None = None
    completed: bool = False
    date_created: datetime | None = None
    date_modified: datetime | None = None


__all__ = [
    "TaskCreate",
    "TaskIdParams",
    "TaskListQuery",
    "TaskRead",
    "TaskUpdate",
]
