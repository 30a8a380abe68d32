"""
Pydantic entity model and create/update payloads, split by domain.
"""

from .base import Record
from .organizations import OrganizationBase, OrganizationCreate, OrganizationUpdate, Organization
from .users import UserBase, UserCreate, UserUpdate, User, UserRegistration, PasswordChange
from .clients import ClientBase, ClientCreate, ClientUpdate, Client
from .reference import (
    ReferenceBase,
    ReferenceCreate,
    ReferenceUpdate,
    ReferenceRecord,
    Product,
    ProductCreate,
    ProductUpdate,
    Agreement,
    AgreementCreate,
    AgreementUpdate,
    Bank,
    BankCreate,
    BankUpdate,
)
from .proposals import (
    ProposalStatus,
    PROPOSAL_STATUSES,
    ProposalBase,
    ProposalCreate,
    ProposalUpdate,
    Proposal,
    ProposalWithDetails,
)
from .forms import (
    FormFieldType,
    FormFieldOption,
    FormField,
    SubmissionStatus,
    FormTemplateBase,
    FormTemplateCreate,
    FormTemplateUpdate,
    FormTemplate,
    FormSubmissionCreate,
    FormSubmission,
)

__all__ = [
    "Record",
    # organizations / users
    "OrganizationBase",
    "OrganizationCreate",
    "OrganizationUpdate",
    "Organization",
    "UserBase",
    "UserCreate",
    "UserUpdate",
    "User",
    "UserRegistration",
    "PasswordChange",
    # clients / proposals
    "ClientBase",
    "ClientCreate",
    "ClientUpdate",
    "Client",
    "ProposalStatus",
    "PROPOSAL_STATUSES",
    "ProposalBase",
    "ProposalCreate",
    "ProposalUpdate",
    "Proposal",
    "ProposalWithDetails",
    # reference
    "ReferenceBase",
    "ReferenceCreate",
    "ReferenceUpdate",
    "ReferenceRecord",
    "Product",
    "ProductCreate",
    "ProductUpdate",
    "Agreement",
    "AgreementCreate",
    "AgreementUpdate",
    "Bank",
    "BankCreate",
    "BankUpdate",
    # forms
    "FormFieldType",
    "FormFieldOption",
    "FormField",
    "SubmissionStatus",
    "FormTemplateBase",
    "FormTemplateCreate",
    "FormTemplateUpdate",
    "FormTemplate",
    "FormSubmissionCreate",
    "FormSubmission",
]
