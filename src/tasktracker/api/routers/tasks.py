"""Routes exposing task commands."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from ...deps import CredentialDependency, RequestPayloadDependency, TaskServiceDependency
from ...schemas.system import success_response

router = APIRouter(prefix="/task", tags=["tasks"])


@router.post("", summary="Create task")
async def create_task(
    payload: RequestPayloadDependency,
    credential: CredentialDependency,
    service: TaskServiceDependency,
) -> dict[str, Any]:
    """Create a task and return its identifier."""
    result = await service.create_task(payload, credential)
    return success_response(result.unwrap())


@router.get("", summary="List tasks")
async def list_tasks(
    payload: RequestPayloadDependency,
    credential: CredentialDependency,
    service: TaskServiceDependency,
) -> dict[str, Any]:
    """List tasks filtered by completion, priority and due date range."""
    result = await service.list_tasks(payload, credential)
    return success_response(result.unwrap())


@router.get("/{id}", summary="Get task")
async def read_task(
    payload: RequestPayloadDependency,
    credential: CredentialDependency,
    service: TaskServiceDependency,
) -> dict[str, Any]:
    result = await service.get_task(payload, credential)
    return success_response(result.unwrap())


@router.put("/{id}", summary="Update task")
async def update_task(
    payload: RequestPayloadDependency,
    credential: CredentialDependency,
    service: TaskServiceDependency,
) -> dict[str, Any]:
    result = await service.update_task(payload, credential)
    return success_response(result.unwrap())


@router.delete("/{id}", summary="Delete task")
async def delete_task(
    payload: RequestPayloadDependency,
    credential: CredentialDependency,
    service: TaskServiceDependency,
) -> dict[str, Any]:
    result = await service.delete_task(payload, credential)
    return success_response(result.unwrap())
