"""
Access-scoping policy.

Key helpers:
- decide(actor, kind, operation) -> Scope
- authorize_mutation(actor, kind, operation, record, changes)

``decide`` is a pure function of the actor and the request shape; it never
touches storage. ``authorize_mutation`` is the independent second check run
at the mutation call site against the loaded record and the requested
changes. Both must pass before a write reaches a repository.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from salesdesk.errors import Forbidden, ForbiddenReason
from salesdesk.utils.role_permissions import (
    ALLOWED_ROLES,
    PROTECTED_FROM_MANAGER,
    ROLE_MANAGER,
    ROLE_SUPERADMIN,
    disallowed_fields,
)
from salesdesk.utils.scopes import (
    CLIENT,
    FORM_SUBMISSION,
    FORM_TEMPLATE,
    ORGANIZATION,
    OWNERSHIP_FIELDS,
    PROPOSAL,
    REFERENCE_KINDS,
    UNRESTRICTED,
    USER,
    Scope,
    by_creator,
    by_organization,
    denied,
    ensure_in_scope,
    raise_if_denied,
)


class Operation(str, Enum):
    LIST = "list"
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


READ_OPERATIONS = frozenset({Operation.LIST, Operation.READ})
WRITE_OPERATIONS = frozenset({Operation.CREATE, Operation.UPDATE, Operation.DELETE})


@dataclass(frozen=True)
class Actor:
    """The identity performing an operation; ``id`` is None for anonymous callers."""

    id: Optional[str] = None
    role: Optional[str] = None
    organization_id: Optional[int] = None

    @property
    def is_anonymous(self) -> bool:
        return self.id is None

    @property
    def is_superadmin(self) -> bool:
        return self.role == ROLE_SUPERADMIN

    @classmethod
    def from_user(cls, user: Any) -> "Actor":
        return cls(id=str(user.id), role=user.role, organization_id=user.organization_id)


ANONYMOUS = Actor()

# What an anonymous caller may do at all; the active-template check is the
# caller's job.
_PUBLIC = frozenset({(FORM_TEMPLATE, Operation.READ), (FORM_SUBMISSION, Operation.CREATE)})

_ORG_SCOPED_FOR_MANAGER = frozenset({CLIENT, PROPOSAL, USER, FORM_TEMPLATE, FORM_SUBMISSION})


def _own_organization(actor: Actor) -> Scope:
    if actor.organization_id is None:
        return denied(ForbiddenReason.ROLE_NOT_PERMITTED, "Your account is not attached to an organization")
    return by_organization(actor.organization_id)


def _role_denied(message: Optional[str] = None) -> Scope:
    return denied(ForbiddenReason.ROLE_NOT_PERMITTED, message)


def _agent_scope(actor: Actor, kind: str, operation: Operation) -> Scope:
    if kind in (CLIENT, PROPOSAL):
        return by_creator(actor.id)
    if kind == USER:
        if operation == Operation.CREATE:
            return _role_denied("Agents cannot create user accounts")
        if operation == Operation.DELETE:
            return _role_denied("Agents cannot delete user accounts")
        return by_creator(actor.id)
    if kind == FORM_TEMPLATE:
        if operation in (Operation.UPDATE, Operation.DELETE):
            return by_creator(actor.id)
        return _own_organization(actor)
    if kind == FORM_SUBMISSION:
        if operation == Operation.DELETE:
            return _role_denied("Agents cannot delete form submissions")
        return _own_organization(actor)
    return _role_denied()


def decide(actor: Actor, kind: str, operation: Operation) -> Scope:
    """Compute the query shape ``actor`` may use for ``operation`` on ``kind``."""
    operation = Operation(operation)
    if actor is None or actor.is_anonymous:
        if (kind, operation) in _PUBLIC:
            return UNRESTRICTED
        return denied(ForbiddenReason.UNAUTHENTICATED)
    if actor.role not in ALLOWED_ROLES:
        return _role_denied()
    if actor.role == ROLE_SUPERADMIN:
        return UNRESTRICTED

    # Anyone may post a form; the public path does not depend on the role.
    if kind == FORM_SUBMISSION and operation == Operation.CREATE:
        return UNRESTRICTED
    if kind in REFERENCE_KINDS:
        if operation in READ_OPERATIONS:
            return UNRESTRICTED
        return _role_denied("Only superadmins can change reference data")
    if kind == ORGANIZATION:
        if operation in READ_OPERATIONS:
            return _own_organization(actor)
        return _role_denied("Only superadmins can manage organizations")

    if actor.role == ROLE_MANAGER:
        if kind in _ORG_SCOPED_FOR_MANAGER:
            return _own_organization(actor)
        return _role_denied()
    return _agent_scope(actor, kind, operation)


def _value(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _same(a: Any, b: Any) -> bool:
    return a is not None and b is not None and str(a) == str(b)


def _check_organization(actor: Actor, kind: str, record: Any) -> None:
    org_field, _ = OWNERSHIP_FIELDS.get(kind, (None, None))
    if org_field is None or record is None:
        return
    if not _same(_value(record, org_field), actor.organization_id):
        raise Forbidden(ForbiddenReason.WRONG_ORGANIZATION)


def _check_fields(actor: Actor, kind: str, fields: Iterable[str]) -> None:
    blocked = disallowed_fields(kind, actor.role, fields)
    if blocked:
        raise Forbidden(
            ForbiddenReason.ROLE_NOT_PERMITTED,
            f"You do not have permission to update these fields: {', '.join(blocked)}",
        )


def _check_user_changes(actor: Actor, changes: Mapping[str, Any]) -> None:
    if actor.role != ROLE_MANAGER:
        return
    if changes.get("role") == ROLE_SUPERADMIN:
        raise Forbidden(ForbiddenReason.ROLE_NOT_PERMITTED, "Only superadmins can promote users to superadmin")
    if "organization_id" in changes and not _same(changes["organization_id"], actor.organization_id):
        raise Forbidden(ForbiddenReason.WRONG_ORGANIZATION, "You cannot move users to another organization")


def _check_user_delete(actor: Actor, record: Any) -> None:
    if _same(_value(record, "id"), actor.id):
        raise Forbidden(ForbiddenReason.ROLE_NOT_PERMITTED, "You cannot delete your own account")
    if actor.role == ROLE_MANAGER and _value(record, "role") in PROTECTED_FROM_MANAGER:
        raise Forbidden(ForbiddenReason.ROLE_NOT_PERMITTED, "You cannot delete managers or superadmins")


def authorize_mutation(
    actor: Actor,
    kind: str,
    operation: Operation,
    record: Any = None,
    changes: Optional[Mapping[str, Any]] = None,
) -> Scope:
    """Second enforcement point for a write; returns the scope to pass on.

    ``record`` is the stored row for update/delete and the prepared payload
    for create. Raises Forbidden with the most specific reason available.
    """
    operation = Operation(operation)
    scope = decide(actor, kind, operation)
    raise_if_denied(scope)
    changes = dict(changes or {})

    if kind == USER and operation == Operation.DELETE and record is not None:
        _check_user_delete(actor, record)
    if actor.is_anonymous or actor.is_superadmin:
        return scope
    if kind == FORM_SUBMISSION and operation == Operation.CREATE:
        return scope

    # Writes never cross tenants, whatever the list scope says.
    _check_organization(actor, kind, record)
    if record is not None:
        ensure_in_scope(scope, kind, record)

    if operation == Operation.UPDATE:
        _check_fields(actor, kind, changes)
        if kind == USER:
            _check_user_changes(actor, changes)
        elif "organization_id" in changes and not _same(changes["organization_id"], actor.organization_id):
            raise Forbidden(ForbiddenReason.WRONG_ORGANIZATION)
    if operation == Operation.CREATE and kind == USER:
        _check_user_changes(actor, record or {})
    return scope


def ensure_role(actor: Actor, *roles: str) -> None:
    """Raise Forbidden unless ``actor`` holds one of ``roles``."""
    if actor is None or actor.is_anonymous:
        raise Forbidden(ForbiddenReason.UNAUTHENTICATED)
    if actor.role not in roles:
        raise Forbidden(ForbiddenReason.ROLE_NOT_PERMITTED)


__all__ = [
    "Operation",
    "Actor",
    "ANONYMOUS",
    "READ_OPERATIONS",
    "WRITE_OPERATIONS",
    "decide",
    "authorize_mutation",
    "ensure_role",
]
