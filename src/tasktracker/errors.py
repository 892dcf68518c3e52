"""Application-level error taxonomy and exception handling helpers."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from contextvars import Token
from dataclasses import asdict, dataclass
from typing import Any, Mapping

from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

from .core.logging import REQUEST_ID_HEADER, bind_request_id, reset_request_id
from .schemas.system import error_response

logger = logging.getLogger(__name__)

GENERIC_SERVER_MESSAGE = "Internal Server Error"


@dataclass(frozen=True, slots=True)
class FieldViolation:
    """A single schema violation on an input field."""

    field: str
    reason: str


class ApplicationError(Exception):
    """Base class for errors surfaced to API callers."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "application_error",
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details


class ValidationError(ApplicationError):
    """Input failed schema or business-rule validation."""

    def __init__(
        self,
        violations: Sequence[FieldViolation],
        message: str = "Validation failed.",
    ) -> None:
        self.violations = list(violations)
        super().__init__(
            message,
            code="validation_error",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"errors": [asdict(violation) for violation in self.violations]},
        )

    @property
    def fields(self) -> list[str]:
        return [violation.field for violation in self.violations]


class UnauthorizedError(ApplicationError):
    """The caller lacks a required capability; no capability detail is exposed."""

    def __init__(self, message: str = "Not enough permissions.") -> None:
        super().__init__(message, code="forbidden", status_code=status.HTTP_403_FORBIDDEN)


class RoutineBusinessError(ApplicationError):
    """A stored routine rejected the request; its message is shown verbatim."""

    def __init__(self, message: str, *, routine: str | None = None) -> None:
        super().__init__(
            message,
            code="business_rule_violation",
            status_code=status.HTTP_400_BAD_REQUEST,
        )
        self.routine = routine


class ServerError(ApplicationError):
    """Unexpected server failure; details stay in the logs."""

    def __init__(self, message: str = GENERIC_SERVER_MESSAGE) -> None:
        super().__init__(
            message,
            code="server_error",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


def _bind_request_context(request: Request) -> Token[str] | None:
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        return None
    return bind_request_id(request_id)


def _reset_request_context(token: Token[str] | None) -> None:
    if token is not None:
        reset_request_id(token)


def _error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: Any | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    response = JSONResponse(
        status_code=status_code,
        content=error_response(code, message, details),
    )
    if headers:
        response.headers.update(headers)
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        response.headers.setdefault(REQUEST_ID_HEADER, request_id)
    return response


def _validation_violations(exc: RequestValidationError) -> list[FieldViolation]:
    violations: list[FieldViolation] = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        violations.append(FieldViolation(field=".".join(location) or "body", reason=error.get("msg", "")))
    return violations


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with the provided FastAPI app."""

    @app.exception_handler(ApplicationError)
    async def _handle_application_error(
        request: Request,
        exc: ApplicationError,
    ) -> JSONResponse:
        token = _bind_request_context(request)
        try:
            log = logger.error if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else logger.warning
            log(
                "Application error encountered",
                extra={"code": exc.code, "status_code": exc.status_code},
            )
            return _error_response(
                request,
                status_code=exc.status_code,
                code=exc.code,
                message=exc.message,
                details=exc.details,
            )
        finally:
            _reset_request_context(token)

    @app.exception_handler(RequestValidationError)
    async def _handle_request_validation_error(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        error = ValidationError(_validation_violations(exc))
        return await _handle_application_error(request, error)

    @app.exception_handler(StarletteHTTPException)
    async def _handle_http_exception(
        request: Request,
        exc: StarletteHTTPException,
    ) -> JSONResponse:
        token = _bind_request_context(request)
        try:
            if exc.status_code == status.HTTP_404_NOT_FOUND:
                code = "not_found"
                message = f"Route {request.method} {request.url.path} not found"
                details: Any | None = {"path": request.url.path, "method": request.method}
            else:
                code = "http_error"
                message = exc.detail if isinstance(exc.detail, str) else "HTTP error"
                details = None
            logger.warning(
                "HTTP exception raised",
                extra={"code": code, "status_code": exc.status_code, "path": str(request.url.path)},
            )
            return _error_response(
                request,
                status_code=exc.status_code,
                code=code,
                message=message,
                details=details,
                headers=exc.headers or None,
            )
        finally:
            _reset_request_context(token)

    @app.exception_handler(Exception)
    async def _handle_unhandled_exception(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        token = _bind_request_context(request)
        try:
            logger.exception("Unhandled application error.")
            return _error_response(
                request,
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                code="server_error",
                message=GENERIC_SERVER_MESSAGE,
            )
        finally:
            _reset_request_context(token)


__all__ = [
    "ApplicationError",
    "FieldViolation",
    "RoutineBusinessError",
    "ServerError",
    "UnauthorizedError",
    "ValidationError",
    "register_exception_handlers",
]
