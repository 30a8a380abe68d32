"""
Form submission processor.

Turns a pending FormSubmission into a Client and moves the submission to
``processed``. The only transition is pending -> processed, and it happens
at most once per submission.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from salesdesk.api.permissions import Actor, Operation, authorize_mutation, decide
from salesdesk.db import schemas
from salesdesk.db.repository import Repository
from salesdesk.errors import AlreadyProcessed, NotFound, RepositoryError, ValidationFailed
from salesdesk.utils.scopes import CLIENT, FORM_SUBMISSION, ensure_in_scope, raise_if_denied

logger = logging.getLogger(__name__)

# client field <- submission keys it is read from (compared case-insensitively)
FIELD_ALIASES: Dict[str, tuple] = {
    "name": ("name", "nome", "full_name"),
    "email": ("email", "e_mail"),
    "phone": ("phone", "telefone", "celular"),
    "cpf": ("cpf", "documento", "tax_id"),
    "company": ("company", "empresa"),
    "contact": ("contact", "contato"),
}


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value).strip()


def client_fields_from(data: Mapping[str, Any]) -> Dict[str, str]:
    """Map submission data onto client fields; unrecognized keys are dropped."""
    lowered = {str(k).strip().lower(): v for k, v in (data or {}).items()}
    fields = {}
    for target, aliases in FIELD_ALIASES.items():
        for alias in aliases:
            value = _text(lowered.get(alias))
            if value:
                fields[target] = value
                break
    return fields


class SubmissionProcessor:
    def __init__(self, repository: Repository):
        self.repo = repository

    def _owning_organization(self, submission: schemas.FormSubmission) -> Optional[int]:
        if submission.form_template_id is None:
            return submission.organization_id
        try:
            template = self.repo.get_form_template(submission.form_template_id)
        except NotFound:
            return submission.organization_id
        return template.organization_id

    def process(self, submission_id: int, actor: Actor) -> schemas.Client:
        """Create the client for a pending submission and mark it processed.

        Checks, in order: the submission exists (NotFound), it is still pending
        (AlreadyProcessed) and the actor's scope covers its organization
        (Forbidden). If the status change fails after the client was created,
        the client is removed again and the failure is raised.
        """
        submission = self.repo.get_form_submission(submission_id)
        if submission.status != schemas.SubmissionStatus.pending.value:
            raise AlreadyProcessed(submission_id)

        scope = decide(actor, FORM_SUBMISSION, Operation.UPDATE)
        raise_if_denied(scope)
        ensure_in_scope(scope, FORM_SUBMISSION, {"organization_id": self._owning_organization(submission)})

        fields = client_fields_from(submission.data)
        if not fields.get("name"):
            raise ValidationFailed({"form_submission.data": "submission has no client name"})
        # the client belongs where the submission was filed
        organization_id = submission.organization_id
        if organization_id is None:
            organization_id = self._owning_organization(submission)
        payload = {**fields, "created_by_id": actor.id, "organization_id": organization_id}
        client_scope = authorize_mutation(actor, CLIENT, Operation.CREATE, payload)
        client = self.repo.create_client(payload, client_scope)

        try:
            self.repo.mark_submission_processed(submission_id, actor.id, client.id)
        except RepositoryError as exc:
            logger.warning(
                "Submission %s could not be marked processed (%s); removing client %s",
                submission_id, exc.code, client.id,
            )
            self._discard(client.id)
            raise
        logger.info("Submission %s processed by %s into client %s", submission_id, actor.id, client.id)
        return client

    def _discard(self, client_id: int) -> None:
        try:
            self.repo.delete_client(client_id)
        except RepositoryError as exc:
            logger.error("Could not remove client %s after a failed transition: %s", client_id, exc.code)
