"""
Domain-split SQLAlchemy models for the relational adapter.

Exposes `Base`, `now_utc` and all ORM classes.
"""

from .base import Base, now_utc, new_user_id  # re-export

from .organizations import Organization
from .users import User
from .reference import Product, Convenio, Bank
from .sales import Client, Proposal
from .forms import FormTemplate, FormSubmission

__all__ = [
    # base
    "Base",
    "now_utc",
    "new_user_id",
    # tenancy
    "Organization",
    "User",
    # reference
    "Product",
    "Convenio",
    "Bank",
    # sales
    "Client",
    "Proposal",
    # forms
    "FormTemplate",
    "FormSubmission",
]
