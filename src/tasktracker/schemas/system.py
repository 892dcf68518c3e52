"""Common system-level response models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RootResponse(BaseModel):
    """Metadata payload returned by the root endpoint."""

    name: str = Field(description="Human-friendly service name")
    environment: str = Field(description="Deployment environment identifier")
    version: str = Field(description="Semantic version of the service")
    api_prefix: str = Field(description="Base path for API routes")


class HealthCheckResponse(BaseModel):
    """Payload returned by the health check endpoint."""

    status: str = Field(default="ok", description="Service health indicator")
    database: str = Field(default="ok", description="Connection pool readiness")


class ErrorBody(BaseModel):
    """Error section of the response envelope."""

    code: str = Field(description="Machine-readable error identifier")
    message: str = Field(description="Human-readable error message")
    details: Any | None = Field(
        default=None,
        description="Optional structured metadata describing the error context.",
    )


class ResponseEnvelope(BaseModel):
    """Uniform wrapper for every API response."""

    success: bool
    data: Any | None = None
    error: ErrorBody | None = None
    timestamp: datetime = Field(default_factory=_utcnow)


def _dump(envelope: ResponseEnvelope) -> dict[str, Any]:
    payload = envelope.model_dump(mode="json")
    if envelope.error is None:
        payload.pop("error")
    else:
        payload.pop("data")
        if envelope.error.details is None:
            payload["error"].pop("details")
    return payload


def success_response(data: Any) -> dict[str, Any]:
    """Return a serialisable success envelope around ``data``."""
    return _dump(ResponseEnvelope(success=True, data=data))


def error_response(code: str, message: str, details: Any | None = None) -> dict[str, Any]:
    """Return a serialisable error envelope."""
    envelope = ResponseEnvelope(
        success=False,
        error=ErrorBody(code=code, message=message, details=details),
    )
    return _dump(envelope)


__all__ = [
    "ErrorBody",
    "HealthCheckResponse",
    "ResponseEnvelope",
    "RootResponse",
    "error_response",
    "success_response",
]
