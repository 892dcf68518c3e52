from __future__ import annotations

import pytest

from tasktracker.commands.gate import RequestPayload, RequestSource, ValidationGate, ValidationOutcome
from tasktracker.core.security import CallerIdentity, Permission, PermissionRequirement
from tasktracker.errors import UnauthorizedError, ValidationError
from tasktracker.schemas.task import TaskCreate, TaskIdParams, TaskListQuery, TaskUpdate

CREATE = [PermissionRequirement("TASK", Permission.CREATE)]


@pytest.fixture
def gate() -> ValidationGate:
    return ValidationGate()


def test_valid_body_is_defaulted(gate: ValidationGate, credential: CallerIdentity) -> None:
    outcome = gate.validate(
        RequestSource.BODY,
        RequestPayload(body={"title": "Buy milk"}),
        TaskCreate,
        CREATE,
        credential,
    )

    assert outcome.ok
    assert outcome.error is None
    assert outcome.credential is credential
    assert outcome.params.title == "Buy milk"
    assert outcome.params.priority == 1
    assert outcome.params.description is None
    assert outcome.params.due_date is None


def test_every_violation_is_reported(gate: ValidationGate, credential: CallerIdentity) -> None:
    outcome = gate.validate(
        RequestSource.BODY,
        RequestPayload(body={"title": "no", "priority": 7, "estimatedTime": 2}),
        TaskCreate,
        CREATE,
        credential,
    )

    assert not outcome.ok
    assert outcome.params is None
    assert isinstance(outcome.error, ValidationError)
    assert sorted(outcome.error.fields) == ["estimatedTime", "priority", "title"]
    assert all(violation.reason for violation in outcome.error.violations)


def test_missing_required_field_on_merged_source(gate: ValidationGate, credential: CallerIdentity) -> None:
    outcome = gate.validate(
        RequestSource.MERGED,
        RequestPayload(body={"priority": 1, "completed": 0}, params={"id": "7"}),
        TaskUpdate,
        [PermissionRequirement("TASK", Permission.UPDATE)],
        credential,
    )

    assert isinstance(outcome.error, ValidationError)
    assert outcome.error.fields == ["title"]


def test_merged_source_keeps_route_id_lax_and_body_integers_strict(
    gate: ValidationGate, credential: CallerIdentity
) -> None:
    update = [PermissionRequirement("TASK", Permission.UPDATE)]
    payload = RequestPayload(body={"title": "Buy milk", "priority": 1, "completed": "0"}, params={"id": "7"})

    outcome = gate.validate(RequestSource.MERGED, payload, TaskUpdate, update, credential)

    assert isinstance(outcome.error, ValidationError)
    assert outcome.error.fields == ["completed"]

    payload.body["completed"] = 0
    accepted = gate.validate(RequestSource.MERGED, payload, TaskUpdate, update, credential)
    assert accepted.params.id == 7
    assert accepted.params.completed == 0


def test_merged_source_prefers_body_over_route(gate: ValidationGate) -> None:
    payload = RequestPayload(body={"id": 9, "title": "x"}, params={"id": "7", "extra": "y"})

    assert gate.select(RequestSource.MERGED, payload) == {"id": 9, "title": "x", "extra": "y"}


def test_params_and_query_sources_are_coerced(gate: ValidationGate, credential: CallerIdentity) -> None:
    by_id = gate.validate(
        RequestSource.PARAMS,
        RequestPayload(params={"id": "42"}),
        TaskIdParams,
        [PermissionRequirement("TASK", Permission.READ)],
        credential,
    )
    listing = gate.validate(
        RequestSource.QUERY,
        RequestPayload(query={"priority": "2", "dueDateFrom": "2026-01-01"}),
        TaskListQuery,
        [PermissionRequirement("TASK", Permission.READ)],
        credential,
    )

    assert by_id.params.id == 42
    assert listing.params.priority == 2
    assert listing.params.due_date_from.isoformat() == "2026-01-01"
    assert listing.params.completed is None


def test_out_of_range_query_is_rejected(gate: ValidationGate, credential: CallerIdentity) -> None:
    outcome = gate.validate(
        RequestSource.QUERY,
        RequestPayload(query={"priority": "5"}),
        TaskListQuery,
        [PermissionRequirement("TASK", Permission.READ)],
        credential,
    )

    assert isinstance(outcome.error, ValidationError)
    assert outcome.error.fields == ["priority"]


def test_non_object_body_is_a_single_violation(gate: ValidationGate, credential: CallerIdentity) -> None:
    outcome = gate.validate(
        RequestSource.BODY,
        RequestPayload(body=["Buy milk"]),
        TaskCreate,
        CREATE,
        credential,
    )

    assert isinstance(outcome.error, ValidationError)
    assert outcome.error.fields == ["body"]


def test_missing_capability_is_unauthorized_before_parsing(gate: ValidationGate) -> None:
    reader = CallerIdentity.with_grants(1, 1, [("TASK", Permission.READ)])

    class ExplodingSchema(TaskCreate):
        @classmethod
        def model_validate(cls, *args, **kwargs):  # pragma: no cover - must not run
            raise AssertionError("schema must not be parsed for unauthorized callers")

    outcome = gate.validate(
        RequestSource.BODY,
        RequestPayload(body={"title": "Buy milk"}),
        ExplodingSchema,
        [
            PermissionRequirement("TASK", Permission.READ),
            PermissionRequirement("TASK", Permission.CREATE),
        ],
        reader,
    )

    assert isinstance(outcome.error, UnauthorizedError)
    assert outcome.error.status_code == 403
    assert "CREATE" not in outcome.error.message


def test_outcome_requires_exactly_one_of_params_or_error(credential: CallerIdentity) -> None:
    with pytest.raises(ValueError):
        ValidationOutcome()
    with pytest.raises(ValueError):
        ValidationOutcome(
            params=TaskIdParams(id=1),
            credential=credential,
            error=UnauthorizedError(),
        )


def test_caller_identity_capabilities() -> None:
    identity = CallerIdentity.with_grants(1, 2, [("TASK", Permission.READ), ("*", "DELETE")])

    assert identity.has_capability("TASK", Permission.READ)
    assert identity.has_capability("USER", Permission.DELETE)
    assert not identity.has_capability("TASK", Permission.UPDATE)
    assert not CallerIdentity(id_account=1, id_user=1).has_capability("TASK", Permission.READ)
