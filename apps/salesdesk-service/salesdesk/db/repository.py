"""
The storage contract shared by every backend adapter.

Return values are entity models from ``salesdesk.db.schemas``. Failures are
raised as the typed outcomes in ``salesdesk.errors``; no driver or HTTP
exception crosses this interface.

Ordering of every list method is creation order ascending (users: created_at
then id) unless the method documents otherwise. Mutating methods take the
caller's ``Scope`` and check the stored row against it before writing.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel

from salesdesk.db import schemas
from salesdesk.utils.scopes import UNRESTRICTED, Scope

Payload = Union[BaseModel, Dict[str, Any]]


class Repository(ABC):
    backend: str = "abstract"

    # organizations
    @abstractmethod
    def list_organizations(self, scope: Scope = UNRESTRICTED) -> List[schemas.Organization]: ...

    @abstractmethod
    def get_organization(self, organization_id: int, scope: Scope = UNRESTRICTED) -> schemas.Organization: ...

    @abstractmethod
    def create_organization(self, payload: Payload, scope: Scope = UNRESTRICTED) -> schemas.Organization: ...

    @abstractmethod
    def update_organization(
        self, organization_id: int, changes: Payload, scope: Scope = UNRESTRICTED
    ) -> schemas.Organization: ...

    @abstractmethod
    def delete_organization(self, organization_id: int, scope: Scope = UNRESTRICTED) -> None:
        """Conflict(has_dependents) while any user or scoped record references it."""

    # users
    @abstractmethod
    def list_users(self, scope: Scope = UNRESTRICTED) -> List[schemas.User]: ...

    @abstractmethod
    def list_users_by_organization(self, organization_id: int) -> List[schemas.User]: ...

    @abstractmethod
    def get_user(self, user_id: str, scope: Scope = UNRESTRICTED) -> schemas.User: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[schemas.User]:
        """Case-insensitive lookup; None when no account uses ``email``."""

    @abstractmethod
    def create_user(self, payload: Payload, scope: Scope = UNRESTRICTED) -> schemas.User:
        """Conflict(duplicate_email) when the address is taken by any account."""

    @abstractmethod
    def update_user(self, user_id: str, changes: Payload, scope: Scope = UNRESTRICTED) -> schemas.User: ...

    @abstractmethod
    def delete_user(self, user_id: str, scope: Scope = UNRESTRICTED) -> None:
        """Conflict(last_admin) when removing the only superadmin."""

    # clients
    @abstractmethod
    def list_clients(self, scope: Scope = UNRESTRICTED) -> List[schemas.Client]: ...

    @abstractmethod
    def list_clients_by_creator(self, creator_id: str) -> List[schemas.Client]: ...

    @abstractmethod
    def list_clients_by_organization(self, organization_id: int) -> List[schemas.Client]: ...

    @abstractmethod
    def get_client(self, client_id: int, scope: Scope = UNRESTRICTED) -> schemas.Client: ...

    @abstractmethod
    def create_client(self, payload: Payload, scope: Scope = UNRESTRICTED) -> schemas.Client: ...

    @abstractmethod
    def update_client(self, client_id: int, changes: Payload, scope: Scope = UNRESTRICTED) -> schemas.Client: ...

    @abstractmethod
    def delete_client(self, client_id: int, scope: Scope = UNRESTRICTED) -> None:
        """Deletes the client's proposals with it."""

    # reference data
    @abstractmethod
    def list_products(self) -> List[schemas.Product]: ...

    @abstractmethod
    def get_product(self, product_id: int) -> schemas.Product: ...

    @abstractmethod
    def create_product(self, payload: Payload, scope: Scope = UNRESTRICTED) -> schemas.Product: ...

    @abstractmethod
    def update_product(self, product_id: int, changes: Payload, scope: Scope = UNRESTRICTED) -> schemas.Product: ...

    @abstractmethod
    def delete_product(self, product_id: int, scope: Scope = UNRESTRICTED) -> None: ...

    @abstractmethod
    def list_agreements(self) -> List[schemas.Agreement]: ...

    @abstractmethod
    def get_agreement(self, agreement_id: int) -> schemas.Agreement: ...

    @abstractmethod
    def create_agreement(self, payload: Payload, scope: Scope = UNRESTRICTED) -> schemas.Agreement: ...

    @abstractmethod
    def update_agreement(
        self, agreement_id: int, changes: Payload, scope: Scope = UNRESTRICTED
    ) -> schemas.Agreement: ...

    @abstractmethod
    def delete_agreement(self, agreement_id: int, scope: Scope = UNRESTRICTED) -> None: ...

    @abstractmethod
    def list_banks(self) -> List[schemas.Bank]: ...

    @abstractmethod
    def get_bank(self, bank_id: int) -> schemas.Bank: ...

    @abstractmethod
    def create_bank(self, payload: Payload, scope: Scope = UNRESTRICTED) -> schemas.Bank: ...

    @abstractmethod
    def update_bank(self, bank_id: int, changes: Payload, scope: Scope = UNRESTRICTED) -> schemas.Bank: ...

    @abstractmethod
    def delete_bank(self, bank_id: int, scope: Scope = UNRESTRICTED) -> None: ...

    # proposals
    @abstractmethod
    def list_proposals(self, scope: Scope = UNRESTRICTED) -> List[schemas.Proposal]: ...

    @abstractmethod
    def list_proposals_by_creator(self, creator_id: str) -> List[schemas.Proposal]: ...

    @abstractmethod
    def list_proposals_by_organization(self, organization_id: int) -> List[schemas.Proposal]: ...

    @abstractmethod
    def list_proposals_by_client(self, client_id: int, scope: Scope = UNRESTRICTED) -> List[schemas.Proposal]: ...

    @abstractmethod
    def list_proposals_by_product(self, product_id: int, scope: Scope = UNRESTRICTED) -> List[schemas.Proposal]: ...

    @abstractmethod
    def list_proposals_by_status(self, status: str, scope: Scope = UNRESTRICTED) -> List[schemas.Proposal]: ...

    @abstractmethod
    def list_proposals_by_value_range(
        self,
        min_value: Decimal,
        max_value: Optional[Decimal] = None,
        scope: Scope = UNRESTRICTED,
    ) -> List[schemas.Proposal]:
        """Proposals whose parsed value lies in [min_value, max_value], by value then id."""

    @abstractmethod
    def list_proposals_with_details(self, scope: Scope = UNRESTRICTED) -> List[schemas.ProposalWithDetails]: ...

    @abstractmethod
    def get_proposal(self, proposal_id: int, scope: Scope = UNRESTRICTED) -> schemas.Proposal: ...

    @abstractmethod
    def create_proposal(self, payload: Payload, scope: Scope = UNRESTRICTED) -> schemas.Proposal: ...

    @abstractmethod
    def update_proposal(
        self, proposal_id: int, changes: Payload, scope: Scope = UNRESTRICTED
    ) -> schemas.Proposal: ...

    @abstractmethod
    def delete_proposal(self, proposal_id: int, scope: Scope = UNRESTRICTED) -> None: ...

    # form templates
    @abstractmethod
    def list_form_templates(self, scope: Scope = UNRESTRICTED) -> List[schemas.FormTemplate]: ...

    @abstractmethod
    def list_form_templates_by_organization(self, organization_id: int) -> List[schemas.FormTemplate]: ...

    @abstractmethod
    def get_form_template(self, template_id: int, scope: Scope = UNRESTRICTED) -> schemas.FormTemplate: ...

    @abstractmethod
    def create_form_template(self, payload: Payload, scope: Scope = UNRESTRICTED) -> schemas.FormTemplate: ...

    @abstractmethod
    def update_form_template(
        self, template_id: int, changes: Payload, scope: Scope = UNRESTRICTED
    ) -> schemas.FormTemplate: ...

    @abstractmethod
    def delete_form_template(self, template_id: int, scope: Scope = UNRESTRICTED) -> None:
        """Conflict(has_dependents) while submissions reference the template."""

    # form submissions
    @abstractmethod
    def list_form_submissions(self, scope: Scope = UNRESTRICTED) -> List[schemas.FormSubmission]: ...

    @abstractmethod
    def list_form_submissions_by_template(
        self, template_id: int, scope: Scope = UNRESTRICTED
    ) -> List[schemas.FormSubmission]: ...

    @abstractmethod
    def list_form_submissions_by_status(
        self, status: str, scope: Scope = UNRESTRICTED
    ) -> List[schemas.FormSubmission]: ...

    @abstractmethod
    def list_form_submissions_by_organization(self, organization_id: int) -> List[schemas.FormSubmission]: ...

    @abstractmethod
    def get_form_submission(self, submission_id: int, scope: Scope = UNRESTRICTED) -> schemas.FormSubmission: ...

    @abstractmethod
    def create_form_submission(self, payload: Payload) -> schemas.FormSubmission:
        """Accepts anonymous submissions against an existing, active template.

        The organization is copied from the template and the status starts
        as pending.
        """

    @abstractmethod
    def mark_submission_processed(
        self, submission_id: int, processed_by_id: str, client_id: int
    ) -> schemas.FormSubmission:
        """Move a submission pending -> processed in one conditional write.

        Raises AlreadyProcessed when the submission is no longer pending,
        including when a concurrent caller won the transition.
        """

    @abstractmethod
    def delete_form_submission(self, submission_id: int, scope: Scope = UNRESTRICTED) -> None: ...

    # identity
    def request_password_recovery(self, email: str) -> bool:
        """Hand a password reset to the backend's own identity service.

        Returns False when the backend has none; the caller then issues a
        new password itself.
        """
        return False

    # lifecycle
    def close(self) -> None:
        """Release connections held by the adapter."""

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False
