"""
Access scope values and helpers.

A scope is the query shape an actor is allowed to use for one entity kind:
unrestricted, narrowed to an organization, narrowed to the actor's own
records, or denied outright.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from salesdesk.db.criteria import Criterion, eq
from salesdesk.errors import Forbidden, ForbiddenReason


class ScopeKind(str, Enum):
    UNRESTRICTED = "unrestricted"
    ORGANIZATION = "organization"
    CREATOR = "creator"
    DENIED = "denied"


# Entity kinds
ORGANIZATION = "organization"
USER = "user"
CLIENT = "client"
PROPOSAL = "proposal"
PRODUCT = "product"
AGREEMENT = "agreement"
BANK = "bank"
FORM_TEMPLATE = "form_template"
FORM_SUBMISSION = "form_submission"

REFERENCE_KINDS = frozenset({PRODUCT, AGREEMENT, BANK})

# (organization field, creator field) per kind; None when the kind has no such owner.
OWNERSHIP_FIELDS: Dict[str, Tuple[Optional[str], Optional[str]]] = {
    ORGANIZATION: ("id", None),
    USER: ("organization_id", "id"),
    CLIENT: ("organization_id", "created_by_id"),
    PROPOSAL: ("organization_id", "created_by_id"),
    FORM_TEMPLATE: ("organization_id", "created_by_id"),
    FORM_SUBMISSION: ("organization_id", None),
    PRODUCT: (None, None),
    AGREEMENT: (None, None),
    BANK: (None, None),
}


@dataclass(frozen=True)
class Scope:
    kind: ScopeKind
    value: Any = None
    reason: Optional[ForbiddenReason] = None
    message: Optional[str] = None

    @property
    def is_denied(self) -> bool:
        return self.kind is ScopeKind.DENIED

    @property
    def is_unrestricted(self) -> bool:
        return self.kind is ScopeKind.UNRESTRICTED


UNRESTRICTED = Scope(ScopeKind.UNRESTRICTED)


def by_organization(organization_id: Any) -> Scope:
    return Scope(ScopeKind.ORGANIZATION, organization_id)


def by_creator(user_id: Any) -> Scope:
    return Scope(ScopeKind.CREATOR, user_id)


def denied(reason: ForbiddenReason, message: Optional[str] = None) -> Scope:
    return Scope(ScopeKind.DENIED, None, reason, message)


def raise_if_denied(scope: Scope) -> None:
    if scope.is_denied:
        raise Forbidden(scope.reason or ForbiddenReason.ROLE_NOT_PERMITTED, scope.message)


def scope_criteria(scope: Scope, entity_kind: str) -> List[Criterion]:
    """Translate a scope into filter criteria for ``entity_kind``.

    Raises Forbidden for a denied scope or a scope shape the entity cannot
    be narrowed by.
    """
    raise_if_denied(scope)
    if scope.is_unrestricted:
        return []
    org_field, creator_field = OWNERSHIP_FIELDS[entity_kind]
    if scope.kind is ScopeKind.ORGANIZATION and org_field:
        return [eq(org_field, scope.value)]
    if scope.kind is ScopeKind.CREATOR and creator_field:
        return [eq(creator_field, scope.value)]
    raise Forbidden(ForbiddenReason.ROLE_NOT_PERMITTED)


def _field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def ensure_in_scope(scope: Scope, entity_kind: str, record: Any) -> None:
    """Raise Forbidden with a specific reason when ``record`` falls outside ``scope``."""
    raise_if_denied(scope)
    if scope.is_unrestricted:
        return
    org_field, creator_field = OWNERSHIP_FIELDS[entity_kind]
    if scope.kind is ScopeKind.ORGANIZATION:
        if not org_field:
            raise Forbidden(ForbiddenReason.ROLE_NOT_PERMITTED)
        if scope.value is None or str(_field(record, org_field)) != str(scope.value):
            raise Forbidden(ForbiddenReason.WRONG_ORGANIZATION)
        return
    if scope.kind is ScopeKind.CREATOR:
        if not creator_field:
            raise Forbidden(ForbiddenReason.ROLE_NOT_PERMITTED)
        if str(_field(record, creator_field)) != str(scope.value):
            raise Forbidden(ForbiddenReason.NOT_CREATOR)
        return
