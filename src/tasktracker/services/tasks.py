"""Service layer mapping task requests onto the task stored routines."""

from __future__ import annotations

from typing import Any

from ..commands import CommandFacade, CommandResult, RequestPayload, RequestSource
from ..core.security import CallerIdentity, Permission, PermissionRequirement
from ..schemas.task import TaskCreate, TaskIdParams, TaskListQuery, TaskRead, TaskUpdate

SECURABLE = "TASK"

TASK_CREATE_ROUTINE = "[functional].[spTaskCreate]"
TASK_LIST_ROUTINE = "[functional].[spTaskList]"
TASK_GET_ROUTINE = "[functional].[spTaskGet]"
TASK_UPDATE_ROUTINE = "[functional].[spTaskUpdate]"
TASK_DELETE_ROUTINE = "[functional].[spTaskDelete]"


def _requires(permission: Permission) -> list[PermissionRequirement]:
    return [PermissionRequirement(securable=SECURABLE, permission=permission)]


def create_parameters(params: TaskCreate, credential: CallerIdentity) -> dict[str, Any]:
    return {
        "idAccount": credential.id_account,
        "idUser": credential.id_user,
        "title": params.title,
        "description": params.description or None,
        "dueDate": params.due_date,
        "priority": params.priority,
        "recurrence": params.recurrence or None,
        "attachments": params.attachments or None,
        "tags": params.tags or None,
        "estimatedTime": params.estimated_time,
        "assignedUsers": params.assigned_users or None,
    }


def list_parameters(params: TaskListQuery, credential: CallerIdentity) -> dict[str, Any]:
    return {
        "idAccount": credential.id_account,
        "idUser": credential.id_user,
        "completed": params.completed,
        "priority": params.priority,
        "dueDateFrom": params.due_date_from,
        "dueDateTo": params.due_date_to,
    }


def get_parameters(params: TaskIdParams, credential: CallerIdentity) -> dict[str, Any]:
    return {"idAccount": credential.id_account, "idTask": params.id}


def update_parameters(params: TaskUpdate, credential: CallerIdentity) -> dict[str, Any]:
    return {
        "idAccount": credential.id_account,
        "idTask": params.id,
        "title": params.title,
        "description": params.description or None,
        "dueDate": params.due_date,
        "priority": params.priority,
        "recurrence": params.recurrence or None,
        "attachments": params.attachments or None,
        "tags": params.tags or None,
        "estimatedTime": params.estimated_time,
        "assignedUsers": params.assigned_users or None,
        "completed": params.completed,
    }


def delete_parameters(params: TaskIdParams, credential: CallerIdentity) -> dict[str, Any]:
    return {"idAccount": credential.id_account, "idTask": params.id}


def _first_row(result: CommandResult) -> CommandResult:
    if not result.ok:
        return result
    rows = result.data or []
    return CommandResult(data=rows[0] if rows else None)


def _as_task(row: dict[str, Any]) -> dict[str, Any]:
    return TaskRead.model_validate(row).model_dump(by_alias=True)


class TaskService:
    """Task operations expressed as commands over the task routines."""

    def __init__(self, commands: CommandFacade) -> None:
        self._commands = commands

    async def create_task(self, payload: RequestPayload, credential: CallerIdentity) -> CommandResult:
        """Create a task from the request body; data is ``{"idTask": ...}``."""
        result = await self._commands.execute(
            permissions=_requires(Permission.CREATE),
            source=RequestSource.BODY,
            payload=payload,
            schema=TaskCreate,
            credential=credential,
            routine=TASK_CREATE_ROUTINE,
            build_parameters=create_parameters,
        )
        return _first_row(result)

    async def list_tasks(self, payload: RequestPayload, credential: CallerIdentity) -> CommandResult:
        """List tasks matching the query string filters."""
        result = await self._commands.execute(
            permissions=_requires(Permission.READ),
            source=RequestSource.QUERY,
            payload=payload,
            schema=TaskListQuery,
            credential=credential,
            routine=TASK_LIST_ROUTINE,
            build_parameters=list_parameters,
        )
        if not result.ok:
            return result
        return CommandResult(data=[_as_task(row) for row in result.data])

    async def get_task(self, payload: RequestPayload, credential: CallerIdentity) -> CommandResult:
        """Fetch a single task addressed by the route ``id``; data is ``None`` if absent."""
        result = _first_row(
            await self._commands.execute(
                permissions=_requires(Permission.READ),
                source=RequestSource.PARAMS,
                payload=payload,
                schema=TaskIdParams,
                credential=credential,
                routine=TASK_GET_ROUTINE,
                build_parameters=get_parameters,
            )
        )
        if not result.ok or result.data is None:
            return result
        return CommandResult(data=_as_task(result.data))

    async def update_task(self, payload: RequestPayload, credential: CallerIdentity) -> CommandResult:
        result = await self._commands.execute(
            permissions=_requires(Permission.UPDATE),
            source=RequestSource.MERGED,
            payload=payload,
            schema=TaskUpdate,
            credential=credential,
            routine=TASK_UPDATE_ROUTINE,
            build_parameters=update_parameters,
        )
        return _first_row(result)

    async def delete_task(self, payload: RequestPayload, credential: CallerIdentity) -> CommandResult:
        result = await self._commands.execute(
            permissions=_requires(Permission.DELETE),
            source=RequestSource.PARAMS,
            payload=payload,
            schema=TaskIdParams,
            credential=credential,
            routine=TASK_DELETE_ROUTINE,
            build_parameters=delete_parameters,
        )
        return _first_row(result)


__all__ = [
    "SECURABLE",
    "TASK_CREATE_ROUTINE",
    "TASK_DELETE_ROUTINE",
    "TASK_GET_ROUTINE",
    "TASK_LIST_ROUTINE",
    "TASK_UPDATE_ROUTINE",
    "TaskService",
]
