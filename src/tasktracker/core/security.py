"""Caller credentials and capability checks."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Protocol, runtime_checkable

WILDCARD = "*"


class Permission(str, Enum):
    """Operations a caller may be granted on a securable."""

    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LIST = "LIST"


@dataclass(frozen=True, slots=True)
class PermissionRequirement:
    """A capability a request needs before it may run."""

    securable: str
    permission: Permission


@runtime_checkable
class Credential(Protocol):
    """Anything able to answer capability questions for the current caller."""

    def has_capability(self, securable: str, permission: Permission) -> bool:  # pragma: no cover
        """Return ``True`` when the caller holds ``permission`` on ``securable``."""


@dataclass(frozen=True, slots=True)
class CallerIdentity:
    """Account-scoped caller with a set of ``(securable, permission)`` grants.

    Either side of a grant may be ``"*"``.
    """

    id_account: int
    id_user: int
    capabilities: frozenset[tuple[str, str]] = field(default_factory=frozenset)

    @classmethod
    def with_grants(
        cls,
        id_account: int,
        id_user: int,
        grants: Iterable[tuple[str, Permission | str]],
    ) -> "CallerIdentity":
        normalised = frozenset(
            (securable, permission.value if isinstance(permission, Permission) else permission)
            for securable, permission in grants
        )
        return cls(id_account=id_account, id_user=id_user, capabilities=normalised)

    def has_capability(self, securable: str, permission: Permission) -> bool:
        wanted = permission.value if isinstance(permission, Permission) else str(permission)
        for granted_securable, granted_permission in self.capabilities:
            if granted_securable not in (WILDCARD, securable):
                continue
            if granted_permission in (WILDCARD, wanted):
                return True
        return False


def missing_requirements(
    credential: Credential,
    requirements: Iterable[PermissionRequirement],
) -> list[PermissionRequirement]:
    """Return every requirement ``credential`` does not satisfy."""
    return [
        requirement
        for requirement in requirements
        if not credential.has_capability(requirement.securable, requirement.permission)
    ]


__all__ = [
    "CallerIdentity",
    "Credential",
    "Permission",
    "PermissionRequirement",
    "WILDCARD",
    "missing_requirements",
]
