"""
Row-store base shared by the three backend adapters.

``RowRepository`` implements the full Repository contract (validation,
scope re-checks, uniqueness and dependency guards, cascades, ordering and
the proposal detail join) on top of a few storage primitives that exchange
canonical dict rows. Adapters only implement those primitives and translate
their backend's failures into typed outcomes.
"""
from __future__ import annotations

import logging
from abc import abstractmethod
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Type

from pydantic import BaseModel, ValidationError

from salesdesk.db import schemas
from salesdesk.db.criteria import Criterion, eq, in_
from salesdesk.db.field_mapping import COLLECTIONS, ENTITY_MODELS, FieldMapping
from salesdesk.db.models.base import new_user_id, now_utc
from salesdesk.db.repository import Payload, Repository
from salesdesk.errors import (
    AlreadyProcessed,
    Conflict,
    ConflictReason,
    NotFound,
    ValidationFailed,
)
from salesdesk.utils.currency import parse_currency
from salesdesk.utils.role_permissions import ROLE_SUPERADMIN
from salesdesk.utils.scopes import (
    AGREEMENT,
    BANK,
    CLIENT,
    FORM_SUBMISSION,
    FORM_TEMPLATE,
    ORGANIZATION,
    PRODUCT,
    PROPOSAL,
    UNRESTRICTED,
    USER,
    Scope,
    ensure_in_scope,
    raise_if_denied,
    scope_criteria,
)

logger = logging.getLogger(__name__)

CREATE_MODELS: Dict[str, Type[BaseModel]] = {
    ORGANIZATION: schemas.OrganizationCreate,
    USER: schemas.UserCreate,
    CLIENT: schemas.ClientCreate,
    PRODUCT: schemas.ProductCreate,
    AGREEMENT: schemas.AgreementCreate,
    BANK: schemas.BankCreate,
    PROPOSAL: schemas.ProposalCreate,
    FORM_TEMPLATE: schemas.FormTemplateCreate,
    FORM_SUBMISSION: schemas.FormSubmissionCreate,
}

UPDATE_MODELS: Dict[str, Type[BaseModel]] = {
    ORGANIZATION: schemas.OrganizationUpdate,
    USER: schemas.UserUpdate,
    CLIENT: schemas.ClientUpdate,
    PRODUCT: schemas.ProductUpdate,
    AGREEMENT: schemas.AgreementUpdate,
    BANK: schemas.BankUpdate,
    PROPOSAL: schemas.ProposalUpdate,
    FORM_TEMPLATE: schemas.FormTemplateUpdate,
}

# Foreign keys checked on every write: field -> referenced kind
REFERENCES: Dict[str, Dict[str, str]] = {
    USER: {"organization_id": ORGANIZATION},
    CLIENT: {"agreement_id": AGREEMENT, "created_by_id": USER, "organization_id": ORGANIZATION},
    PROPOSAL: {
        "client_id": CLIENT,
        "product_id": PRODUCT,
        "agreement_id": AGREEMENT,
        "bank_id": BANK,
        "created_by_id": USER,
        "organization_id": ORGANIZATION,
    },
    FORM_TEMPLATE: {"created_by_id": USER, "organization_id": ORGANIZATION},
    FORM_SUBMISSION: {"form_template_id": FORM_TEMPLATE, "client_id": CLIENT},
}

# Rows that block deletion: kind -> [(dependent kind, referencing field)]
DEPENDENTS: Dict[str, List[tuple]] = {
    ORGANIZATION: [
        (USER, "organization_id"),
        (CLIENT, "organization_id"),
        (PROPOSAL, "organization_id"),
        (FORM_TEMPLATE, "organization_id"),
        (FORM_SUBMISSION, "organization_id"),
    ],
    USER: [
        (CLIENT, "created_by_id"),
        (PROPOSAL, "created_by_id"),
        (FORM_TEMPLATE, "created_by_id"),
        (FORM_SUBMISSION, "processed_by_id"),
    ],
    PRODUCT: [(PROPOSAL, "product_id")],
    AGREEMENT: [(CLIENT, "agreement_id"), (PROPOSAL, "agreement_id")],
    BANK: [(PROPOSAL, "bank_id")],
    FORM_TEMPLATE: [(FORM_SUBMISSION, "form_template_id")],
}

DEFAULT_ORDER = ("id",)
ORDERING: Dict[str, Sequence[str]] = {USER: ("created_at", "id")}

DETAIL_LINKS = {"client_id": CLIENT, "product_id": PRODUCT, "agreement_id": AGREEMENT, "bank_id": BANK}


def _field_errors(kind: str, exc: ValidationError) -> Dict[str, str]:
    errors = {}
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        msg = err.get("msg", "invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        errors[f"{kind}.{loc}" if loc else kind] = msg
    return errors


def validate_payload(kind: str, model_cls: Type[BaseModel], payload: Payload, partial: bool = False) -> Dict[str, Any]:
    """Validate ``payload`` against ``model_cls`` and return storable canonical values.

    With ``partial`` only the fields the caller supplied are returned.
    """
    if isinstance(payload, model_cls):
        model = payload
    else:
        raw = payload.model_dump(exclude_unset=partial) if isinstance(payload, BaseModel) else dict(payload or {})
        unknown = sorted(set(raw) - set(model_cls.model_fields))
        if unknown:
            raise ValidationFailed({f"{kind}.{name}": "unknown field" for name in unknown})
        try:
            model = model_cls.model_validate(raw)
        except ValidationError as exc:
            raise ValidationFailed(_field_errors(kind, exc))
    return model.model_dump(mode="json", exclude_unset=partial)


def _ts_key(value: Optional[datetime]):
    if value is None:
        return (1, datetime.min)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return (0, value)


def _ordered(kind: str, entities: List[Any]) -> List[Any]:
    if kind == USER:
        return sorted(entities, key=lambda u: (_ts_key(u.created_at), u.id))
    return sorted(entities, key=lambda e: e.id)


def _as_decimal(value: Any, label: str) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    parsed = parse_currency(value)
    if parsed is None:
        raise ValidationFailed({f"proposal.{label}": "must be a number"})
    return parsed


def _label(kind: str) -> str:
    return kind.replace("_", " ")


class RowRepository(Repository):
    """Repository contract over canonical dict rows."""

    backend = "rows"
    detail_workers = 4

    def __init__(self, mapping: FieldMapping):
        mapping.validate()
        self.mapping = mapping

    # ------------------------------------------------------------------
    # storage primitives
    # ------------------------------------------------------------------
    @abstractmethod
    def _fetch(
        self, kind: str, criteria: Sequence[Criterion] = (), order_by: Sequence[str] = DEFAULT_ORDER
    ) -> List[Dict[str, Any]]:
        """Rows of ``kind`` matching every criterion, canonical field names."""

    @abstractmethod
    def _insert(self, kind: str, row: Mapping[str, Any]) -> Dict[str, Any]:
        """Store ``row`` and return it as read back, including the assigned id."""

    @abstractmethod
    def _patch(
        self, kind: str, record_id: Any, changes: Mapping[str, Any], guard: Sequence[Criterion] = ()
    ) -> Optional[Dict[str, Any]]:
        """Apply ``changes`` if the row exists and satisfies ``guard``; otherwise None."""

    @abstractmethod
    def _remove(self, kind: str, record_id: Any) -> bool: ...

    def _fetch_one(self, kind: str, record_id: Any) -> Optional[Dict[str, Any]]:
        rows = self._fetch(kind, [eq("id", record_id)])
        return rows[0] if rows else None

    def _count(self, kind: str, criteria: Sequence[Criterion] = ()) -> int:
        return len(self._fetch(kind, criteria))

    def _remove_where(self, kind: str, criteria: Sequence[Criterion]) -> int:
        removed = 0
        for row in self._fetch(kind, criteria):
            if self._remove(kind, row["id"]):
                removed += 1
        return removed

    def _remove_superadmin(self, user_id: str) -> bool:
        """Delete a superadmin unless it is the last one.

        Backends that can express the count guard in the delete itself
        override this; here it is a check followed by the delete.
        """
        if self._count(USER, [eq("role", ROLE_SUPERADMIN)]) <= 1:
            raise Conflict(ConflictReason.LAST_ADMIN, "Cannot delete the last superadmin account")
        return self._remove(USER, user_id)

    @contextmanager
    def _unit(self):
        """Group several primitives into one unit of work where the backend supports it."""
        yield

    # ------------------------------------------------------------------
    # shared helpers
    # ------------------------------------------------------------------
    def _entity(self, kind: str, row: Mapping[str, Any]):
        return ENTITY_MODELS[kind].model_validate(dict(row))

    def _list(self, kind: str, scope: Scope = UNRESTRICTED, criteria: Iterable[Criterion] = ()) -> List[Any]:
        where = scope_criteria(scope, kind) + list(criteria)
        rows = self._fetch(kind, where, ORDERING.get(kind, DEFAULT_ORDER))
        return _ordered(kind, [self._entity(kind, r) for r in rows])

    def _require(self, kind: str, record_id: Any, scope: Scope = UNRESTRICTED) -> Dict[str, Any]:
        raise_if_denied(scope)
        row = self._fetch_one(kind, record_id)
        if row is None:
            raise NotFound(kind, record_id)
        ensure_in_scope(scope, kind, row)
        return row

    def _get(self, kind: str, record_id: Any, scope: Scope = UNRESTRICTED):
        return self._entity(kind, self._require(kind, record_id, scope))

    def _check_references(self, kind: str, row: Mapping[str, Any]) -> None:
        errors = {}
        for name, target in REFERENCES.get(kind, {}).items():
            value = row.get(name)
            if value is None or value == "":
                continue
            if self._fetch_one(target, value) is None:
                errors[f"{kind}.{name}"] = f"unknown {_label(target)} {value}"
        if errors:
            raise ValidationFailed(errors)

    def _ensure_no_dependents(self, kind: str, record_id: Any) -> None:
        for dep_kind, name in DEPENDENTS.get(kind, ()):
            if self._count(dep_kind, [eq(name, record_id)]):
                raise Conflict(
                    ConflictReason.HAS_DEPENDENTS,
                    f"{_label(kind).capitalize()} {record_id} is still referenced by {COLLECTIONS[dep_kind]}",
                )

    @staticmethod
    def _stamp_create(kind: str, row: Dict[str, Any]) -> None:
        fields = ENTITY_MODELS[kind].model_fields
        now = now_utc()
        for name in ("created_at", "updated_at"):
            if name in fields:
                row[name] = now

    def _create(
        self,
        kind: str,
        payload: Payload,
        scope: Scope = UNRESTRICTED,
        prepare: Optional[Callable[[Dict[str, Any]], None]] = None,
    ):
        raise_if_denied(scope)
        row = validate_payload(kind, CREATE_MODELS[kind], payload)
        if prepare is not None:
            prepare(row)
        ensure_in_scope(scope, kind, row)
        self._check_references(kind, row)
        self._stamp_create(kind, row)
        logger.debug("%s: create %s", self.backend, kind)
        return self._entity(kind, self._insert(kind, row))

    def _update(
        self,
        kind: str,
        record_id: Any,
        changes: Payload,
        scope: Scope = UNRESTRICTED,
        before_write: Optional[Callable[[Dict[str, Any], Dict[str, Any]], None]] = None,
    ):
        current = self._require(kind, record_id, scope)
        data = validate_payload(kind, UPDATE_MODELS[kind], changes, partial=True)
        if not data:
            return self._entity(kind, current)
        # the row must stay inside the caller's scope after the change too
        ensure_in_scope(scope, kind, {**current, **data})
        self._check_references(kind, data)
        if before_write is not None:
            before_write(current, data)
        if "updated_at" in ENTITY_MODELS[kind].model_fields:
            data["updated_at"] = now_utc()
        logger.debug("%s: update %s %s fields=%s", self.backend, kind, record_id, sorted(data))
        updated = self._patch(kind, record_id, data)
        if updated is None:
            raise NotFound(kind, record_id)
        return self._entity(kind, updated)

    def _delete(self, kind: str, record_id: Any, scope: Scope = UNRESTRICTED) -> None:
        self._require(kind, record_id, scope)
        self._ensure_no_dependents(kind, record_id)
        logger.debug("%s: delete %s %s", self.backend, kind, record_id)
        if not self._remove(kind, record_id):
            raise NotFound(kind, record_id)

    # ------------------------------------------------------------------
    # organizations
    # ------------------------------------------------------------------
    def list_organizations(self, scope=UNRESTRICTED):
        return self._list(ORGANIZATION, scope)

    def get_organization(self, organization_id, scope=UNRESTRICTED):
        return self._get(ORGANIZATION, organization_id, scope)

    def create_organization(self, payload, scope=UNRESTRICTED):
        return self._create(ORGANIZATION, payload, scope)

    def update_organization(self, organization_id, changes, scope=UNRESTRICTED):
        return self._update(ORGANIZATION, organization_id, changes, scope)

    def delete_organization(self, organization_id, scope=UNRESTRICTED):
        self._delete(ORGANIZATION, organization_id, scope)

    # ------------------------------------------------------------------
    # users
    # ------------------------------------------------------------------
    def list_users(self, scope=UNRESTRICTED):
        return self._list(USER, scope)

    def list_users_by_organization(self, organization_id):
        return self._list(USER, criteria=[eq("organization_id", organization_id)])

    def get_user(self, user_id, scope=UNRESTRICTED):
        return self._get(USER, user_id, scope)

    def get_user_by_email(self, email):
        cleaned = (email or "").strip().lower()
        if not cleaned:
            return None
        rows = self._fetch(USER, [eq("email", cleaned)])
        return self._entity(USER, rows[0]) if rows else None

    def _ensure_email_free(self, email: str, except_id: Optional[str] = None) -> None:
        existing = self.get_user_by_email(email)
        if existing is not None and existing.id != except_id:
            raise Conflict(ConflictReason.DUPLICATE_EMAIL, f"Email {email} is already registered")

    @staticmethod
    def _ensure_organization_for_role(role: Optional[str], organization_id: Any) -> None:
        if role != ROLE_SUPERADMIN and organization_id is None:
            raise ValidationFailed({"user.organization_id": "required for non-superadmin accounts"})

    def create_user(self, payload, scope=UNRESTRICTED):
        def prepare(row):
            self._ensure_organization_for_role(row.get("role"), row.get("organization_id"))
            self._ensure_email_free(row["email"])
            row["id"] = new_user_id()

        return self._create(USER, payload, scope, prepare)

    def update_user(self, user_id, changes, scope=UNRESTRICTED):
        def before_write(current, data):
            if "email" in data and data["email"] != current.get("email"):
                self._ensure_email_free(data["email"], except_id=current["id"])
            role = data.get("role", current.get("role"))
            self._ensure_organization_for_role(role, data.get("organization_id", current.get("organization_id")))
            if current.get("role") == ROLE_SUPERADMIN and role != ROLE_SUPERADMIN:
                if self._count(USER, [eq("role", ROLE_SUPERADMIN)]) <= 1:
                    raise Conflict(ConflictReason.LAST_ADMIN, "Cannot demote the last superadmin account")

        return self._update(USER, user_id, changes, scope, before_write)

    def delete_user(self, user_id, scope=UNRESTRICTED):
        row = self._require(USER, user_id, scope)
        if row.get("role") == ROLE_SUPERADMIN and self._count(USER, [eq("role", ROLE_SUPERADMIN)]) <= 1:
            raise Conflict(ConflictReason.LAST_ADMIN, "Cannot delete the last superadmin account")
        self._ensure_no_dependents(USER, user_id)
        logger.debug("%s: delete user %s", self.backend, user_id)
        if row.get("role") == ROLE_SUPERADMIN:
            removed = self._remove_superadmin(user_id)
        else:
            removed = self._remove(USER, user_id)
        if not removed:
            raise NotFound(USER, user_id)

    # ------------------------------------------------------------------
    # clients
    # ------------------------------------------------------------------
    def list_clients(self, scope=UNRESTRICTED):
        return self._list(CLIENT, scope)

    def list_clients_by_creator(self, creator_id):
        return self._list(CLIENT, criteria=[eq("created_by_id", creator_id)])

    def list_clients_by_organization(self, organization_id):
        return self._list(CLIENT, criteria=[eq("organization_id", organization_id)])

    def get_client(self, client_id, scope=UNRESTRICTED):
        return self._get(CLIENT, client_id, scope)

    def create_client(self, payload, scope=UNRESTRICTED):
        return self._create(CLIENT, payload, scope)

    def update_client(self, client_id, changes, scope=UNRESTRICTED):
        return self._update(CLIENT, client_id, changes, scope)

    def delete_client(self, client_id, scope=UNRESTRICTED):
        self._require(CLIENT, client_id, scope)
        with self._unit():
            dropped = self._remove_where(PROPOSAL, [eq("client_id", client_id)])
            for sub in self._fetch(FORM_SUBMISSION, [eq("client_id", client_id)]):
                self._patch(FORM_SUBMISSION, sub["id"], {"client_id": None, "updated_at": now_utc()})
            if not self._remove(CLIENT, client_id):
                raise NotFound(CLIENT, client_id)
        logger.debug("%s: deleted client %s with %d proposals", self.backend, client_id, dropped)

    # ------------------------------------------------------------------
    # reference data
    # ------------------------------------------------------------------
    def list_products(self):
        return self._list(PRODUCT)

    def get_product(self, product_id):
        return self._get(PRODUCT, product_id)

    def create_product(self, payload, scope=UNRESTRICTED):
        return self._create(PRODUCT, payload, scope)

    def update_product(self, product_id, changes, scope=UNRESTRICTED):
        return self._update(PRODUCT, product_id, changes, scope)

    def delete_product(self, product_id, scope=UNRESTRICTED):
        self._delete(PRODUCT, product_id, scope)

    def list_agreements(self):
        return self._list(AGREEMENT)

    def get_agreement(self, agreement_id):
        return self._get(AGREEMENT, agreement_id)

    def create_agreement(self, payload, scope=UNRESTRICTED):
        return self._create(AGREEMENT, payload, scope)

    def update_agreement(self, agreement_id, changes, scope=UNRESTRICTED):
        return self._update(AGREEMENT, agreement_id, changes, scope)

    def delete_agreement(self, agreement_id, scope=UNRESTRICTED):
        self._delete(AGREEMENT, agreement_id, scope)

    def list_banks(self):
        return self._list(BANK)

    def get_bank(self, bank_id):
        return self._get(BANK, bank_id)

    def create_bank(self, payload, scope=UNRESTRICTED):
        return self._create(BANK, payload, scope)

    def update_bank(self, bank_id, changes, scope=UNRESTRICTED):
        return self._update(BANK, bank_id, changes, scope)

    def delete_bank(self, bank_id, scope=UNRESTRICTED):
        self._delete(BANK, bank_id, scope)

    # ------------------------------------------------------------------
    # proposals
    # ------------------------------------------------------------------
    def list_proposals(self, scope=UNRESTRICTED):
        return self._list(PROPOSAL, scope)

    def list_proposals_by_creator(self, creator_id):
        return self._list(PROPOSAL, criteria=[eq("created_by_id", creator_id)])

    def list_proposals_by_organization(self, organization_id):
        return self._list(PROPOSAL, criteria=[eq("organization_id", organization_id)])

    def list_proposals_by_client(self, client_id, scope=UNRESTRICTED):
        return self._list(PROPOSAL, scope, [eq("client_id", client_id)])

    def list_proposals_by_product(self, product_id, scope=UNRESTRICTED):
        return self._list(PROPOSAL, scope, [eq("product_id", product_id)])

    def list_proposals_by_status(self, status, scope=UNRESTRICTED):
        return self._list(PROPOSAL, scope, [eq("status", status)])

    def list_proposals_by_value_range(self, min_value, max_value=None, scope=UNRESTRICTED):
        try:
            low = _as_decimal(min_value, "min_value")
            high = _as_decimal(max_value, "max_value")
        except InvalidOperation:
            raise ValidationFailed({"proposal.value": "must be a number"})
        if low is None:
            low = Decimal(0)
        if high is not None and high < low:
            raise ValidationFailed({"proposal.max_value": "must not be below min_value"})
        picked = []
        for proposal in self.list_proposals(scope):
            value = parse_currency(proposal.value)
            if value is None or value < low or (high is not None and value > high):
                continue
            picked.append((value, proposal.id, proposal))
        picked.sort(key=lambda item: (item[0], item[1]))
        return [p for _, _, p in picked]

    def _load_related(self, kind: str, ids: List[Any]) -> Dict[Any, Any]:
        if not ids:
            return {}
        rows = self._fetch(kind, [in_("id", ids)])
        return {entity.id: entity for entity in (self._entity(kind, r) for r in rows)}

    def list_proposals_with_details(self, scope=UNRESTRICTED):
        proposals = self.list_proposals(scope)
        # one request per related collection, over distinct foreign ids only
        wanted = {
            kind: sorted({getattr(p, name) for p in proposals if getattr(p, name) is not None})
            for name, kind in DETAIL_LINKS.items()
        }
        with ThreadPoolExecutor(max_workers=self.detail_workers) as pool:
            futures = {kind: pool.submit(self._load_related, kind, ids) for kind, ids in wanted.items()}
            related = {kind: future.result() for kind, future in futures.items()}
        return [
            schemas.ProposalWithDetails.model_validate({
                **p.model_dump(),
                "client": related[CLIENT].get(p.client_id),
                "product": related[PRODUCT].get(p.product_id),
                "agreement": related[AGREEMENT].get(p.agreement_id),
                "bank": related[BANK].get(p.bank_id),
            })
            for p in proposals
        ]

    def get_proposal(self, proposal_id, scope=UNRESTRICTED):
        return self._get(PROPOSAL, proposal_id, scope)

    def create_proposal(self, payload, scope=UNRESTRICTED):
        return self._create(PROPOSAL, payload, scope)

    def update_proposal(self, proposal_id, changes, scope=UNRESTRICTED):
        return self._update(PROPOSAL, proposal_id, changes, scope)

    def delete_proposal(self, proposal_id, scope=UNRESTRICTED):
        self._delete(PROPOSAL, proposal_id, scope)

    # ------------------------------------------------------------------
    # form templates
    # ------------------------------------------------------------------
    def list_form_templates(self, scope=UNRESTRICTED):
        return self._list(FORM_TEMPLATE, scope)

    def list_form_templates_by_organization(self, organization_id):
        return self._list(FORM_TEMPLATE, criteria=[eq("organization_id", organization_id)])

    def get_form_template(self, template_id, scope=UNRESTRICTED):
        return self._get(FORM_TEMPLATE, template_id, scope)

    def create_form_template(self, payload, scope=UNRESTRICTED):
        return self._create(FORM_TEMPLATE, payload, scope)

    def update_form_template(self, template_id, changes, scope=UNRESTRICTED):
        return self._update(FORM_TEMPLATE, template_id, changes, scope)

    def delete_form_template(self, template_id, scope=UNRESTRICTED):
        self._delete(FORM_TEMPLATE, template_id, scope)

    # ------------------------------------------------------------------
    # form submissions
    # ------------------------------------------------------------------
    def list_form_submissions(self, scope=UNRESTRICTED):
        return self._list(FORM_SUBMISSION, scope)

    def list_form_submissions_by_template(self, template_id, scope=UNRESTRICTED):
        return self._list(FORM_SUBMISSION, scope, [eq("form_template_id", template_id)])

    def list_form_submissions_by_status(self, status, scope=UNRESTRICTED):
        return self._list(FORM_SUBMISSION, scope, [eq("status", status)])

    def list_form_submissions_by_organization(self, organization_id):
        return self._list(FORM_SUBMISSION, criteria=[eq("organization_id", organization_id)])

    def get_form_submission(self, submission_id, scope=UNRESTRICTED):
        return self._get(FORM_SUBMISSION, submission_id, scope)

    def create_form_submission(self, payload):
        row = validate_payload(FORM_SUBMISSION, CREATE_MODELS[FORM_SUBMISSION], payload)
        template = self._fetch_one(FORM_TEMPLATE, row["form_template_id"])
        if template is None:
            raise NotFound(FORM_TEMPLATE, row["form_template_id"])
        if not template.get("active", True):
            raise ValidationFailed({"form_submission.form_template_id": "form template is not accepting submissions"})
        row["organization_id"] = template.get("organization_id")
        row["status"] = schemas.SubmissionStatus.pending.value
        self._stamp_create(FORM_SUBMISSION, row)
        logger.debug("%s: create form_submission for template %s", self.backend, row["form_template_id"])
        return self._entity(FORM_SUBMISSION, self._insert(FORM_SUBMISSION, row))

    def mark_submission_processed(self, submission_id, processed_by_id, client_id):
        current = self._fetch_one(FORM_SUBMISSION, submission_id)
        if current is None:
            raise NotFound(FORM_SUBMISSION, submission_id)
        if current.get("status") != schemas.SubmissionStatus.pending.value:
            raise AlreadyProcessed(submission_id)
        now = now_utc()
        changes = {
            "status": schemas.SubmissionStatus.processed.value,
            "processed_by_id": processed_by_id,
            "processed_at": now,
            "client_id": client_id,
            "updated_at": now,
        }
        updated = self._patch(
            FORM_SUBMISSION, submission_id, changes,
            guard=[eq("status", schemas.SubmissionStatus.pending.value)],
        )
        if updated is None:
            raise AlreadyProcessed(submission_id)
        return self._entity(FORM_SUBMISSION, updated)

    def delete_form_submission(self, submission_id, scope=UNRESTRICTED):
        self._delete(FORM_SUBMISSION, submission_id, scope)
