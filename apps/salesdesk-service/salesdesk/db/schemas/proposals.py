from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator

from salesdesk.utils.currency import parse_currency
from .base import Record
from .clients import Client
from .reference import Agreement, Bank, Product


class ProposalStatus(str, Enum):
    negotiating = "negotiating"
    accepted = "accepted"
    under_review = "under_review"
    declined = "declined"


PROPOSAL_STATUSES = tuple(s.value for s in ProposalStatus)


def _check_value(v: str) -> str:
    if v is None or not str(v).strip():
        return ""
    if parse_currency(v) is None:
        raise ValueError("value must be a currency amount")
    return str(v).strip()


class ProposalBase(BaseModel):
    client_id: int
    product_id: int
    agreement_id: Optional[int] = None
    bank_id: Optional[int] = None
    value: str = ""
    comments: str = ""
    status: ProposalStatus = ProposalStatus.negotiating


class ProposalCreate(ProposalBase):
    created_by_id: Optional[str] = None
    organization_id: Optional[int] = None

    @field_validator("value")
    @classmethod
    def _value_is_currency(cls, v: str):
        return _check_value(v)


class ProposalUpdate(BaseModel):
    client_id: Optional[int] = None
    product_id: Optional[int] = None
    agreement_id: Optional[int] = None
    bank_id: Optional[int] = None
    value: Optional[str] = None
    comments: Optional[str] = None
    status: Optional[ProposalStatus] = None

    @field_validator("value")
    @classmethod
    def _value_is_currency(cls, v: Optional[str]):
        return None if v is None else _check_value(v)


class Proposal(Record):
    id: int
    client_id: Optional[int] = None
    product_id: Optional[int] = None
    agreement_id: Optional[int] = None
    bank_id: Optional[int] = None
    value: str = ""
    comments: str = ""
    status: str = ProposalStatus.negotiating.value
    created_by_id: Optional[str] = None
    organization_id: Optional[int] = None
    created_at: Optional[datetime] = None


class ProposalWithDetails(Proposal):
    """Proposal joined with its client and reference rows at read time."""

    client: Optional[Client] = None
    product: Optional[Product] = None
    agreement: Optional[Agreement] = None
    bank: Optional[Bank] = None
