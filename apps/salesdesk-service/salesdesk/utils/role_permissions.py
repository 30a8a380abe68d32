"""
Role constants and per-role field allow-lists.

Central definitions for the three account roles and for which fields each
role may change on each entity, so handlers never re-implement these lists.
"""

from typing import Dict, FrozenSet, Optional
from enum import Enum


ROLE_AGENT = "agent"
ROLE_MANAGER = "manager"
ROLE_SUPERADMIN = "superadmin"

ALLOWED_ROLES: FrozenSet[str] = frozenset({ROLE_AGENT, ROLE_MANAGER, ROLE_SUPERADMIN})

# Roles a manager is not allowed to delete
PROTECTED_FROM_MANAGER: FrozenSet[str] = frozenset({ROLE_MANAGER, ROLE_SUPERADMIN})


class RoleEnum(str, Enum):
    """Enum for account roles used in schemas and validation."""
    agent = ROLE_AGENT
    manager = ROLE_MANAGER
    superadmin = ROLE_SUPERADMIN


class UserSector(str, Enum):
    commercial = "Comercial"
    operational = "Operacional"
    financial = "Financeiro"


# None means "every field of the entity".
USER_UPDATE_FIELDS: Dict[str, Optional[FrozenSet[str]]] = {
    ROLE_AGENT: frozenset({"name", "email", "phone", "sector"}),
    ROLE_MANAGER: frozenset({"name", "email", "phone", "sector", "role", "organization_id"}),
    ROLE_SUPERADMIN: None,
}

CLIENT_UPDATE_FIELDS: Dict[str, Optional[FrozenSet[str]]] = {
    ROLE_AGENT: frozenset({
        "name", "cpf", "phone", "email", "birth_date", "company", "contact", "agreement_id",
    }),
    ROLE_MANAGER: frozenset({
        "name", "cpf", "phone", "email", "birth_date", "company", "contact", "agreement_id",
    }),
    ROLE_SUPERADMIN: frozenset({
        "name", "cpf", "phone", "email", "birth_date", "company", "contact", "agreement_id",
        "organization_id",
    }),
}

_PROPOSAL_FIELDS = frozenset({
    "client_id", "product_id", "agreement_id", "bank_id", "value", "comments", "status",
})
PROPOSAL_UPDATE_FIELDS: Dict[str, Optional[FrozenSet[str]]] = {
    ROLE_AGENT: _PROPOSAL_FIELDS,
    ROLE_MANAGER: _PROPOSAL_FIELDS,
    ROLE_SUPERADMIN: _PROPOSAL_FIELDS,
}

_TEMPLATE_FIELDS = frozenset({"name", "description", "fields", "active"})
FORM_TEMPLATE_UPDATE_FIELDS: Dict[str, Optional[FrozenSet[str]]] = {
    ROLE_AGENT: _TEMPLATE_FIELDS,
    ROLE_MANAGER: _TEMPLATE_FIELDS,
    ROLE_SUPERADMIN: _TEMPLATE_FIELDS | {"organization_id"},
}

UPDATE_ALLOW_LISTS: Dict[str, Dict[str, Optional[FrozenSet[str]]]] = {
    "user": USER_UPDATE_FIELDS,
    "client": CLIENT_UPDATE_FIELDS,
    "proposal": PROPOSAL_UPDATE_FIELDS,
    "form_template": FORM_TEMPLATE_UPDATE_FIELDS,
}


def disallowed_fields(kind: str, role: str, fields) -> list[str]:
    """Return the sorted subset of ``fields`` the role may not change on ``kind``.

    Entities without an allow-list table accept any field for any role that
    passed the scope check.
    """
    table = UPDATE_ALLOW_LISTS.get(kind)
    if table is None:
        return []
    allowed = table.get(role, frozenset())
    if allowed is None:
        return []
    return sorted(f for f in fields if f not in allowed)
