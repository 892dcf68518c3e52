"""Authorize a request and validate its payload against a declared schema."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..core.security import Credential, PermissionRequirement, missing_requirements
from ..errors import ApplicationError, FieldViolation, UnauthorizedError, ValidationError

logger = logging.getLogger(__name__)

SchemaType = TypeVar("SchemaType", bound=BaseModel)


class RequestSource(str, Enum):
    """Part of the inbound request a schema is applied to."""

    BODY = "body"
    PARAMS = "params"
    QUERY = "query"
    MERGED = "merged"


@dataclass(slots=True)
class RequestPayload:
    """Raw request parts handed over by the HTTP boundary."""

    body: Any = None
    params: Mapping[str, Any] = field(default_factory=dict)
    query: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ValidationOutcome(Generic[SchemaType]):
    """Either validated ``params`` with the caller's credential, or an ``error``."""

    params: SchemaType | None = None
    credential: Credential | None = None
    error: ApplicationError | None = None

    def __post_init__(self) -> None:
        if (self.error is None) == (self.params is None):
            raise ValueError("ValidationOutcome requires exactly one of params or error.")

    @property
    def ok(self) -> bool:
        return self.error is None


def _violations(exc: PydanticValidationError) -> list[FieldViolation]:
    return [
        FieldViolation(
            field=".".join(str(part) for part in error["loc"]) or "body",
            reason=error["msg"],
        )
        for error in exc.errors()
    ]


class ValidationGate:
    """Run permission checks, then schema validation, without touching the database."""

    def select(self, source: RequestSource, payload: RequestPayload) -> Any:
        """Return the request part ``source`` designates."""
        if source is RequestSource.BODY:
            return payload.body if payload.body is not None else {}
        if source is RequestSource.PARAMS:
            return dict(payload.params)
        if source is RequestSource.QUERY:
            return dict(payload.query)
        body = payload.body if payload.body is not None else {}
        if not isinstance(body, Mapping):
            return body
        return {**payload.params, **body}

    def validate(
        self,
        source: RequestSource,
        payload: RequestPayload,
        schema: type[SchemaType],
        permissions: Sequence[PermissionRequirement],
        credential: Credential,
    ) -> ValidationOutcome[SchemaType]:
        """Validate ``payload`` for ``credential``.

        Every requirement is checked before the schema runs; any miss yields an
        :class:`UnauthorizedError` outcome. Schema violations are collected in a
        single pass.
        """
        missing = missing_requirements(credential, permissions)
        if missing:
            logger.warning(
                "Permission check failed",
                extra={"missing": [f"{item.securable}:{item.permission.value}" for item in missing]},
            )
            return ValidationOutcome(error=UnauthorizedError())

        data = self.select(source, payload)
        if not isinstance(data, Mapping):
            violation = FieldViolation(field=source.value, reason="Expected an object.")
            return ValidationOutcome(error=ValidationError([violation]))

        try:
            params = schema.model_validate(data)
        except PydanticValidationError as exc:
            return ValidationOutcome(error=ValidationError(_violations(exc)))
        return ValidationOutcome(params=params, credential=credential)


__all__ = [
    "RequestPayload",
    "RequestSource",
    "ValidationGate",
    "ValidationOutcome",
]
