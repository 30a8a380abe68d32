"""
Scoped record operations used by the API handlers.

Every method takes the acting ``Actor``, derives the scope from the access
policy, runs the mutation check at the call site and then hands the scope to
the repository, which checks the stored row against it once more.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional

from salesdesk.api.permissions import ANONYMOUS, Actor, Operation, authorize_mutation, decide
from salesdesk.db import schemas
from salesdesk.db.repository import Repository
from salesdesk.errors import NotFound, ValidationFailed
from salesdesk.services.auth_service import check_password_strength
from salesdesk.utils.passwords import hash_password
from salesdesk.utils.scopes import (
    AGREEMENT,
    BANK,
    CLIENT,
    FORM_SUBMISSION,
    FORM_TEMPLATE,
    ORGANIZATION,
    PRODUCT,
    PROPOSAL,
    USER,
    Scope,
    raise_if_denied,
)

logger = logging.getLogger(__name__)

# repository method stem per reference kind
_REFERENCE_METHODS = {PRODUCT: "product", AGREEMENT: "agreement", BANK: "bank"}


class RecordService:
    def __init__(self, repository: Repository):
        self.repo = repository

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _scope(actor: Actor, kind: str, operation: Operation) -> Scope:
        scope = decide(actor, kind, operation)
        raise_if_denied(scope)
        return scope

    def _update(
        self,
        actor: Actor,
        kind: str,
        record_id: Any,
        changes: Mapping[str, Any],
        getter: Callable[..., Any],
        updater: Callable[..., Any],
    ):
        scope = self._scope(actor, kind, Operation.UPDATE)
        current = getter(record_id, scope)
        authorize_mutation(actor, kind, Operation.UPDATE, current, changes)
        return updater(record_id, dict(changes), scope)

    def _delete(self, actor: Actor, kind: str, record_id: Any, getter, deleter) -> None:
        scope = self._scope(actor, kind, Operation.DELETE)
        current = getter(record_id, scope)
        authorize_mutation(actor, kind, Operation.DELETE, current)
        deleter(record_id, scope)
        logger.info("%s %s deleted by %s", kind, record_id, actor.id)

    @staticmethod
    def _owned(actor: Actor, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Stamp creator and tenant onto a new scoped record."""
        data = dict(payload)
        data["created_by_id"] = actor.id
        if data.get("organization_id") is None:
            data["organization_id"] = actor.organization_id
        return data

    # ------------------------------------------------------------------
    # organizations
    # ------------------------------------------------------------------
    def list_organizations(self, actor: Actor) -> List[schemas.Organization]:
        return self.repo.list_organizations(self._scope(actor, ORGANIZATION, Operation.LIST))

    def get_organization(self, actor: Actor, organization_id: int) -> schemas.Organization:
        return self.repo.get_organization(organization_id, self._scope(actor, ORGANIZATION, Operation.READ))

    def create_organization(self, actor: Actor, payload: Mapping[str, Any]) -> schemas.Organization:
        scope = authorize_mutation(actor, ORGANIZATION, Operation.CREATE)
        return self.repo.create_organization(dict(payload), scope)

    def update_organization(self, actor: Actor, organization_id: int, changes: Mapping[str, Any]):
        return self._update(
            actor, ORGANIZATION, organization_id, changes,
            self.repo.get_organization, self.repo.update_organization,
        )

    def delete_organization(self, actor: Actor, organization_id: int) -> None:
        self._delete(actor, ORGANIZATION, organization_id, self.repo.get_organization, self.repo.delete_organization)

    # ------------------------------------------------------------------
    # users
    # ------------------------------------------------------------------
    def list_users(self, actor: Actor) -> List[schemas.User]:
        return self.repo.list_users(self._scope(actor, USER, Operation.LIST))

    def get_user(self, actor: Actor, user_id: str) -> schemas.User:
        return self.repo.get_user(user_id, self._scope(actor, USER, Operation.READ))

    def create_user(self, actor: Actor, payload: Mapping[str, Any]) -> schemas.User:
        """Create an account from a payload carrying the plaintext ``password``."""
        data = dict(payload)
        password = data.pop("password", None)
        if not actor.is_superadmin and data.get("organization_id") is None:
            data["organization_id"] = actor.organization_id
        scope = authorize_mutation(actor, USER, Operation.CREATE, data)
        check_password_strength(password)
        data["password_hash"] = hash_password(password)
        user = self.repo.create_user(data, scope)
        logger.info("User %s created by %s", user.id, actor.id)
        return user

    def update_user(self, actor: Actor, user_id: str, changes: Mapping[str, Any]) -> schemas.User:
        if "password" in changes or "password_hash" in changes:
            raise ValidationFailed({"user.password": "change passwords through the password endpoint"})
        return self._update(actor, USER, user_id, changes, self.repo.get_user, self.repo.update_user)

    def delete_user(self, actor: Actor, user_id: str) -> None:
        self._delete(actor, USER, user_id, self.repo.get_user, self.repo.delete_user)

    # ------------------------------------------------------------------
    # clients
    # ------------------------------------------------------------------
    def list_clients(self, actor: Actor) -> List[schemas.Client]:
        return self.repo.list_clients(self._scope(actor, CLIENT, Operation.LIST))

    def get_client(self, actor: Actor, client_id: int) -> schemas.Client:
        return self.repo.get_client(client_id, self._scope(actor, CLIENT, Operation.READ))

    def create_client(self, actor: Actor, payload: Mapping[str, Any]) -> schemas.Client:
        data = self._owned(actor, payload)
        scope = authorize_mutation(actor, CLIENT, Operation.CREATE, data)
        return self.repo.create_client(data, scope)

    def update_client(self, actor: Actor, client_id: int, changes: Mapping[str, Any]) -> schemas.Client:
        return self._update(actor, CLIENT, client_id, changes, self.repo.get_client, self.repo.update_client)

    def delete_client(self, actor: Actor, client_id: int) -> None:
        self._delete(actor, CLIENT, client_id, self.repo.get_client, self.repo.delete_client)

    # ------------------------------------------------------------------
    # reference data
    # ------------------------------------------------------------------
    def _reference_method(self, action: str, kind: str):
        stem = _REFERENCE_METHODS[kind]
        name = f"list_{stem}s" if action == "list" else f"{action}_{stem}"
        return getattr(self.repo, name)

    def list_reference(self, actor: Actor, kind: str) -> List[Any]:
        self._scope(actor, kind, Operation.LIST)
        return self._reference_method("list", kind)()

    def get_reference(self, actor: Actor, kind: str, record_id: int):
        self._scope(actor, kind, Operation.READ)
        return self._reference_method("get", kind)(record_id)

    def create_reference(self, actor: Actor, kind: str, payload: Mapping[str, Any]):
        scope = authorize_mutation(actor, kind, Operation.CREATE, dict(payload))
        return self._reference_method("create", kind)(dict(payload), scope)

    def update_reference(self, actor: Actor, kind: str, record_id: int, changes: Mapping[str, Any]):
        scope = authorize_mutation(actor, kind, Operation.UPDATE, None, changes)
        return self._reference_method("update", kind)(record_id, dict(changes), scope)

    def delete_reference(self, actor: Actor, kind: str, record_id: int) -> None:
        scope = authorize_mutation(actor, kind, Operation.DELETE)
        self._reference_method("delete", kind)(record_id, scope)

    # ------------------------------------------------------------------
    # proposals
    # ------------------------------------------------------------------
    def list_proposals(
        self,
        actor: Actor,
        status: Optional[str] = None,
        client_id: Optional[int] = None,
        product_id: Optional[int] = None,
        min_value: Optional[Decimal] = None,
        max_value: Optional[Decimal] = None,
    ) -> List[schemas.Proposal]:
        """Proposals in the actor's scope; filters combine with AND."""
        scope = self._scope(actor, PROPOSAL, Operation.LIST)
        if status is not None and status not in schemas.PROPOSAL_STATUSES:
            raise ValidationFailed({"proposal.status": f"must be one of {', '.join(schemas.PROPOSAL_STATUSES)}"})
        if min_value is not None or max_value is not None:
            results = self.repo.list_proposals_by_value_range(min_value or Decimal(0), max_value, scope)
        elif status is not None:
            results = self.repo.list_proposals_by_status(status, scope)
        elif client_id is not None:
            results = self.repo.list_proposals_by_client(client_id, scope)
        elif product_id is not None:
            results = self.repo.list_proposals_by_product(product_id, scope)
        else:
            results = self.repo.list_proposals(scope)
        return [
            p for p in results
            if (status is None or p.status == status)
            and (client_id is None or p.client_id == client_id)
            and (product_id is None or p.product_id == product_id)
        ]

    def list_proposals_with_details(self, actor: Actor) -> List[schemas.ProposalWithDetails]:
        return self.repo.list_proposals_with_details(self._scope(actor, PROPOSAL, Operation.LIST))

    def get_proposal(self, actor: Actor, proposal_id: int) -> schemas.Proposal:
        return self.repo.get_proposal(proposal_id, self._scope(actor, PROPOSAL, Operation.READ))

    def _visible_client(self, actor: Actor, client_id: Any) -> Optional[schemas.Client]:
        """The referenced client when it exists; Forbidden when it is outside the actor's scope."""
        if client_id is None:
            return None
        try:
            return self.repo.get_client(client_id, self._scope(actor, CLIENT, Operation.READ))
        except NotFound:
            # the repository reports the dangling reference as a field error
            return None

    def create_proposal(self, actor: Actor, payload: Mapping[str, Any]) -> schemas.Proposal:
        data = dict(payload)
        client = self._visible_client(actor, data.get("client_id"))
        if actor.is_superadmin and data.get("organization_id") is None and client is not None:
            data["organization_id"] = client.organization_id
        data = self._owned(actor, data)
        scope = authorize_mutation(actor, PROPOSAL, Operation.CREATE, data)
        return self.repo.create_proposal(data, scope)

    def update_proposal(self, actor: Actor, proposal_id: int, changes: Mapping[str, Any]) -> schemas.Proposal:
        if changes.get("client_id") is not None:
            self._visible_client(actor, changes["client_id"])
        return self._update(actor, PROPOSAL, proposal_id, changes, self.repo.get_proposal, self.repo.update_proposal)

    def delete_proposal(self, actor: Actor, proposal_id: int) -> None:
        self._delete(actor, PROPOSAL, proposal_id, self.repo.get_proposal, self.repo.delete_proposal)

    # ------------------------------------------------------------------
    # form templates
    # ------------------------------------------------------------------
    def list_form_templates(self, actor: Actor) -> List[schemas.FormTemplate]:
        return self.repo.list_form_templates(self._scope(actor, FORM_TEMPLATE, Operation.LIST))

    def get_form_template(self, actor: Actor, template_id: int) -> schemas.FormTemplate:
        return self.repo.get_form_template(template_id, self._scope(actor, FORM_TEMPLATE, Operation.READ))

    def get_public_form_template(self, template_id: int) -> schemas.FormTemplate:
        """Template as shown to anonymous visitors; inactive ones do not exist for them."""
        template = self.repo.get_form_template(template_id, self._scope(ANONYMOUS, FORM_TEMPLATE, Operation.READ))
        if not template.active:
            raise NotFound(FORM_TEMPLATE, template_id)
        return template

    def create_form_template(self, actor: Actor, payload: Mapping[str, Any]) -> schemas.FormTemplate:
        data = self._owned(actor, payload)
        scope = authorize_mutation(actor, FORM_TEMPLATE, Operation.CREATE, data)
        return self.repo.create_form_template(data, scope)

    def update_form_template(self, actor: Actor, template_id: int, changes: Mapping[str, Any]):
        return self._update(
            actor, FORM_TEMPLATE, template_id, changes,
            self.repo.get_form_template, self.repo.update_form_template,
        )

    def delete_form_template(self, actor: Actor, template_id: int) -> None:
        self._delete(actor, FORM_TEMPLATE, template_id, self.repo.get_form_template, self.repo.delete_form_template)

    # ------------------------------------------------------------------
    # form submissions
    # ------------------------------------------------------------------
    def submit_form(self, payload: Mapping[str, Any]) -> schemas.FormSubmission:
        """Public entry point; no actor is required."""
        self._scope(ANONYMOUS, FORM_SUBMISSION, Operation.CREATE)
        submission = self.repo.create_form_submission(dict(payload))
        logger.info("Form submission %s received for template %s", submission.id, submission.form_template_id)
        return submission

    def list_form_submissions(
        self,
        actor: Actor,
        template_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> List[schemas.FormSubmission]:
        scope = self._scope(actor, FORM_SUBMISSION, Operation.LIST)
        if template_id is not None:
            results = self.repo.list_form_submissions_by_template(template_id, scope)
        elif status is not None:
            results = self.repo.list_form_submissions_by_status(status, scope)
        else:
            results = self.repo.list_form_submissions(scope)
        return [s for s in results if status is None or s.status == status]

    def get_form_submission(self, actor: Actor, submission_id: int) -> schemas.FormSubmission:
        return self.repo.get_form_submission(submission_id, self._scope(actor, FORM_SUBMISSION, Operation.READ))

    def delete_form_submission(self, actor: Actor, submission_id: int) -> None:
        self._delete(
            actor, FORM_SUBMISSION, submission_id,
            self.repo.get_form_submission, self.repo.delete_form_submission,
        )
