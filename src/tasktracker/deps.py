"""Reusable FastAPI dependencies."""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, Request

from .commands import CommandFacade, RequestPayload
from .core.config import Settings
from .core.security import WILDCARD, CallerIdentity
from .db.base import ConnectionPool
from .db.invoker import RoutineInvoker
from .db.transaction import TransactionManager
from .errors import FieldViolation, ValidationError
from .services import TaskService


def get_app_settings(request: Request) -> Settings:
    """Return the settings the running application was created with."""
    return request.app.state.settings


SettingsDependency = Annotated[Settings, Depends(get_app_settings)]


def get_pool(request: Request) -> ConnectionPool:
    """Return the connection pool owned by the application lifespan."""
    return request.app.state.pool


PoolDependency = Annotated[ConnectionPool, Depends(get_pool)]


def get_command_facade(pool: PoolDependency, settings: SettingsDependency) -> CommandFacade:
    invoker = RoutineInvoker(pool, business_error_codes=settings.business_error_codes)
    return CommandFacade(invoker, TransactionManager(pool))


CommandFacadeDependency = Annotated[CommandFacade, Depends(get_command_facade)]


def get_task_service(commands: CommandFacadeDependency) -> TaskService:
    return TaskService(commands)


TaskServiceDependency = Annotated[TaskService, Depends(get_task_service)]


def get_credential(settings: SettingsDependency) -> CallerIdentity:
    """Return the caller's credential.

    Authentication is not wired in; every request acts as the configured
    account and user with all capabilities.
    """
    return CallerIdentity.with_grants(
        settings.default_account_id,
        settings.default_user_id,
        [(WILDCARD, WILDCARD)],
    )


CredentialDependency = Annotated[CallerIdentity, Depends(get_credential)]


async def get_request_payload(request: Request) -> RequestPayload:
    """Collect the body, route parameters and query string of ``request``."""
    body: Any = None
    if await request.body():
        try:
            body = await request.json()
        except ValueError as exc:
            raise ValidationError([FieldViolation(field="body", reason="Malformed JSON body.")]) from exc
    return RequestPayload(
        body=body,
        params=dict(request.path_params),
        query=dict(request.query_params),
    )


RequestPayloadDependency = Annotated[RequestPayload, Depends(get_request_payload)]


__all__ = [
    "CommandFacadeDependency",
    "CredentialDependency",
    "PoolDependency",
    "RequestPayloadDependency",
    "SettingsDependency",
    "TaskServiceDependency",
    "get_app_settings",
    "get_command_facade",
    "get_credential",
    "get_pool",
    "get_request_payload",
    "get_task_service",
]
